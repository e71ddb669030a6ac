import base64
import binascii
import os

import structlog

logger = structlog.get_logger()


def decode_receipt(encoded):
    """Bytes of the base64 receipt the backend sent, or None if it can't be read."""
    if not encoded:
        return None
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.warning("receipt_decode_failed", error=str(e), size=len(encoded))
        return None


def receipt_path(receipts_dir, display_id):
    return os.path.join(receipts_dir, f"receipt_{display_id}.pdf")


def save_receipt(document, display_id, receipts_dir):
    """Write the receipt document the backend returned and return its path.

    Returns None when there is nothing to save or the file can't be written;
    the sale itself already went through at that point.
    """
    if not document:
        return None
    path = receipt_path(receipts_dir, display_id)
    try:
        os.makedirs(receipts_dir, exist_ok=True)
        with open(path, 'wb') as fh:
            fh.write(document)
    except OSError as e:
        logger.warning("receipt_save_failed", path=path, error=str(e))
        return None
    logger.info("receipt_saved", path=path, size=len(document))
    return path
