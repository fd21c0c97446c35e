# Shared request/response pieces: geocoded points and redacted people

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class GeoPoint(BaseModel):
    """Geocoded point. Output of the geocoder and of every stored location."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = Field(..., max_length=300)


class LocationOut(GeoPoint):
    radius: Optional[float] = None


class PersonOut(BaseModel):
    """
    A user as seen by someone else. email/phone are None unless the visibility
    rules for the surrounding record allow them.
    """

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_visible: bool = False


class Page(BaseModel, Generic[T]):
    """One page of a filtered, sorted list (1-based)."""

    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int
