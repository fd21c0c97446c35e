# Carpool model: a driver-offered ride with a fixed seat capacity

from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base

MIN_PASSENGERS = 1
MAX_PASSENGERS = 8


class CarpoolStatus(str, PyEnum):
    """Carpool status. ACTIVE <-> FULL follow seat usage; CANCELLED/COMPLETED accept no joins."""

    ACTIVE = "active"
    FULL = "full"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Stored as String(20); compared as CarpoolStatus in application code.
STATUS_DEFAULT = CarpoolStatus.ACTIVE.value


class Carpool(Base):
    """Carpool table. origin/destination are geocoded points kept as lat/lng/address columns."""

    __tablename__ = "carpools"

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    origin_lat = Column(Float, nullable=False)
    origin_lng = Column(Float, nullable=False)
    origin_address = Column(String(300), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)
    destination_address = Column(String(300), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False, index=True)
    max_passengers = Column(Integer, nullable=False)
    # Seat counter mirrored from carpool_passengers; incremented only by a conditional UPDATE
    passenger_count = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(String(20), nullable=False, default=STATUS_DEFAULT, server_default=STATUS_DEFAULT, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    passengers = relationship(
        "CarpoolPassenger",
        back_populates="carpool",
        cascade="all, delete-orphan",
        order_by="CarpoolPassenger.id",
    )

    __table_args__ = (
        CheckConstraint(
            f"max_passengers BETWEEN {MIN_PASSENGERS} AND {MAX_PASSENGERS}",
            name="ck_carpools_max_passengers_range",
        ),
        CheckConstraint("passenger_count <= max_passengers", name="ck_carpools_passenger_count_capacity"),
        Index("ix_carpools_status_departure", "status", "departure_time"),
    )

    @property
    def current_passengers(self) -> list[int]:
        """Passenger user ids in join order."""
        return [p.user_id for p in self.passengers]
