# User model: volunteers, assistance seekers and housing hosts share one table

from enum import Enum as PyEnum

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class UserRole(str, PyEnum):
    VOLUNTEER = "voluntario"
    REQUESTER = "solicitante"


class User(Base):
    """Account plus public profile. Location is an optional geocoded point."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=True, unique=True, index=True)
    password_hash = Column(String(128), nullable=True)
    phone = Column(String(40), nullable=True)
    roles = Column(JSON, nullable=False, default=list)  # ["voluntario", "solicitante"]
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    location_address = Column(String(300), nullable=True)
    location_radius_km = Column(Float, nullable=True)
    has_account = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    skills = relationship(
        "VolunteerSkill",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="VolunteerSkill.id",
    )
    assistance_requests = relationship(
        "AssistanceRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="AssistanceRequest.id",
    )
    housing_offers = relationship(
        "HousingOffer",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="HousingOffer.id",
    )

    def add_role(self, role: UserRole) -> None:
        # JSON columns do not track in-place mutation, assign a new list
        current = list(self.roles or [])
        if role.value not in current:
            self.roles = current + [role.value]

    def has_role(self, role: UserRole) -> bool:
        return role.value in (self.roles or [])
