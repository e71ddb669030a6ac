from typing import List

import httpx
import structlog
from pydantic import TypeAdapter

from errors import LookupFailure
from schemas import ProductSnapshot

logger = structlog.get_logger()

_snapshots = TypeAdapter(List[ProductSnapshot])


def make_client(settings, transport=None):
    """Shared client for the sales backend."""
    return httpx.AsyncClient(
        base_url=settings.api_url,
        timeout=settings.http_timeout,
        headers={"Accept": "application/json"},
        transport=transport,
    )


async def search_products(client, term=""):
    """Search the catalogue by name or id. An empty term lists everything."""
    term = (term or "").strip()
    try:
        resp = await client.get("/products/search", params={"term": term})
        resp.raise_for_status()
        products = _snapshots.validate_python(resp.json())
    except httpx.HTTPError as e:
        logger.warning("product_search_failed", term=term, error=str(e))
        raise LookupFailure() from e
    except ValueError as e:
        # bad JSON or a document that is not a product list
        logger.warning("product_search_bad_response", term=term, error=str(e))
        raise LookupFailure() from e
    logger.debug("product_search", term=term, results=len(products))
    return products
