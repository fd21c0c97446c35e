# Carpool API request/response schemas

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.carpool import MAX_PASSENGERS, MIN_PASSENGERS
from app.schemas.common import GeoPoint, PersonOut

CarpoolStatusLiteral = Literal["active", "full", "cancelled", "completed"]


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PlaceIn(BaseModel):
    """
    Origin/destination as typed by the user. Without coordinates the address
    is geocoded before the carpool is created.
    """

    address: str = Field(..., min_length=1, max_length=300)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def _both_or_neither(self) -> "PlaceIn":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self

    def as_point(self) -> Optional[GeoPoint]:
        if self.latitude is None:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude, address=self.address)


class CarpoolCreate(BaseModel):
    """Carpool offer. The driver is the authenticated caller."""

    origin: PlaceIn
    destination: PlaceIn
    departure_time: datetime
    max_passengers: int = Field(..., ge=MIN_PASSENGERS, le=MAX_PASSENGERS)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("departure_time")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class PassengerBody(BaseModel):
    """Join/leave body. user_id defaults to the caller; a driver may name a passenger to remove."""

    user_id: Optional[int] = None


class CarpoolOut(BaseModel):
    """Carpool after the visibility rules were applied for the requesting viewer."""

    id: int
    driver_id: int
    driver: Optional[PersonOut] = None
    origin: GeoPoint
    destination: GeoPoint
    departure_time: datetime
    max_passengers: int
    current_passengers: List[int] = []
    passengers: List[PersonOut] = []
    seats_available: int
    status: CarpoolStatusLiteral = "active"
    description: Optional[str] = None
    created_at: Optional[datetime] = None
