import os
import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import ORJSONResponse

from ..core.config import settings
from ..models import User
from ..schemas.places import PlaceDetails, PlaceSearchResponse
from .dependencies import get_current_active_user

router = APIRouter(tags=["places"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)

TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
DETAIL_FIELDS = (
    "place_id",
    "name",
    "formatted_address",
    "formatted_phone_number",
    "website",
    "editorial_summary",
    "address_components",
)


def _api_key() -> str:
    return (os.getenv("GOOGLE_MAPS_API_KEY") or settings.GOOGLE_MAPS_API_KEY or "").strip()


def _missing_key() -> ORJSONResponse:
    logger.error("GOOGLE_MAPS_API_KEY is not configured")
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Google Maps API key not configured"},
    )


def _upstream_error(message: str, data: dict) -> ORJSONResponse:
    details = data.get("error_message") or data.get("status")
    logger.error("%s: %s", message, details)
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message, "details": details},
    )


def _fetch(url: str, params: dict) -> dict:
    resp = httpx.get(url, params=params, timeout=settings.PLACES_TIMEOUT)
    resp.raise_for_status()
    return resp.json()


@router.get("/search", response_model=PlaceSearchResponse)
def search_places(
    query: str = Query(""),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Proxy Google Places Text Search for the venue/organization pickers."""
    if not query.strip():
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Query parameter is required"},
        )
    api_key = _api_key()
    if not api_key:
        return _missing_key()

    try:
        data = _fetch(TEXT_SEARCH_URL, {"query": query.strip(), "key": api_key})
    except Exception as exc:  # pragma: no cover - network failure
        logger.error("Places search request failed: %s", exc, exc_info=True)
        return ORJSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Failed to search places"},
        )

    if data.get("status") not in ("OK", "ZERO_RESULTS"):
        return _upstream_error("Failed to search places", data)

    results = [
        {
            "place_id": place.get("place_id"),
            "name": place.get("name"),
            "formatted_address": place.get("formatted_address"),
        }
        for place in (data.get("results") or [])[: settings.PLACES_RESULT_LIMIT]
    ]
    return {"results": results}


@router.get("/{place_id}", response_model=PlaceDetails)
def place_details(
    place_id: str,
    current_user: User = Depends(get_current_active_user),
) -> Any:
    api_key = _api_key()
    if not api_key:
        return _missing_key()

    params = {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS), "key": api_key}
    try:
        data = _fetch(DETAILS_URL, params)
    except Exception as exc:  # pragma: no cover - network failure
        logger.error("Place details request failed: %s", exc, exc_info=True)
        return ORJSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Failed to fetch place details"},
        )

    if data.get("status") != "OK":
        return _upstream_error("Failed to fetch place details", data)

    result = data.get("result") or {}
    return {
        "place_id": result.get("place_id") or place_id,
        "name": result.get("name"),
        "formatted_address": result.get("formatted_address"),
        "formatted_phone_number": result.get("formatted_phone_number"),
        "website": result.get("website"),
        "editorial_summary": result.get("editorial_summary"),
        "address_components": result.get("address_components") or [],
    }
