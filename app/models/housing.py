# HousingOffer model: temporary housing offered by a host

from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class HousingStatus(str, PyEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    EXPIRED = "expired"


class HousingOffer(Base):
    __tablename__ = "housing_offers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    address = Column(String(300), nullable=False)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    max_occupancy = Column(Integer, nullable=False)
    is_shared = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=HousingStatus.AVAILABLE.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="housing_offers")
