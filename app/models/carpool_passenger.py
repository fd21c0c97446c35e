# CarpoolPassenger model: one seat taken in a carpool

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class CarpoolPassenger(Base):
    """Membership row. The autoincrement id gives the join order."""

    __tablename__ = "carpool_passengers"

    id = Column(Integer, primary_key=True, index=True)
    carpool_id = Column(Integer, ForeignKey("carpools.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    carpool = relationship("Carpool", back_populates="passengers")

    __table_args__ = (UniqueConstraint("carpool_id", "user_id", name="uq_carpool_passenger_user"),)
