from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class PlaceSummary(BaseModel):
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None


class PlaceSearchResponse(BaseModel):
    results: List[PlaceSummary]


class PlaceDetails(BaseModel):
    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    formatted_phone_number: Optional[str] = None
    website: Optional[str] = None
    editorial_summary: Optional[Dict[str, Any]] = None
    address_components: List[Dict[str, Any]] = []
