from datetime import datetime
from typing import Optional, List, Any

from pydantic import BaseModel, Field


class CoordinateRequest(BaseModel):
    """Body of /api/coordinate-to-address and /api/static-map."""
    # Out-of-range coordinates are rejected here instead of being passed upstream
    lat: float = Field(strict=True, ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(strict=True, ge=-180, le=180, allow_inf_nan=False)


class AddressResponse(BaseModel):
    address: str
    lat: float
    lng: float
    usageCount: int


class UsageResponse(BaseModel):
    count: int
    limit: int
    date: str


class ErrorResponse(BaseModel):
    message: str
    errors: Optional[List[Any]] = None


class UsageRecord(BaseModel):
    """One counter per (client identifier, calendar day)."""
    id: str
    client_id: str
    date: str
    count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime


class LocationSelection(BaseModel):
    """Client-side selection; lives only for the page session."""
    lat: float
    lng: float
    address: Optional[str] = None
