import httpx
import structlog

from errors import SubmissionFailure
from schemas import SaleResult

logger = structlog.get_logger()


def _error_from(resp):
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None


async def create_sale(client, payload):
    """
    Send the sale to the backend, e.g.
        {"lineItems": [{"productId": 1, "quantity": 2}], "paymentMethod": "CASH"}

    Returns the SaleResult; a backend that says ``success: false`` is a normal
    result. Transport errors and unreadable answers raise SubmissionFailure.
    """
    body = payload.model_dump(by_alias=True, mode="json")
    try:
        resp = await client.post("/sales", json=body)
    except httpx.HTTPError as e:
        logger.warning("sale_submission_failed", error=str(e))
        raise SubmissionFailure() from e

    if resp.is_error:
        message = _error_from(resp)
        logger.warning("sale_submission_rejected", status=resp.status_code, error=message)
        raise SubmissionFailure(message)

    try:
        result = SaleResult.model_validate(resp.json())
    except ValueError as e:
        logger.warning("sale_submission_bad_response", error=str(e))
        raise SubmissionFailure() from e
    logger.info("sale_submitted", success=result.success, sale_id=result.sale_id,
                lines=len(payload.line_items))
    return result
