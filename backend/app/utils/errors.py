from typing import Dict, Optional
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Optional[Dict[str, str]] = None,
    code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    field_errors = field_errors or {}
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


def error_body(detail) -> dict:
    """Flatten an ``HTTPException.detail`` into the ``{"error": ...}`` wire shape."""
    if isinstance(detail, dict):
        body = {"error": detail.get("message") or detail.get("error") or "Error"}
        if detail.get("field_errors"):
            body["field_errors"] = detail["field_errors"]
        for key in ("details",):
            if key in detail:
                body[key] = detail[key]
        return body
    return {"error": str(detail)}
