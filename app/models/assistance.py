# AssistanceRequest model

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class AssistanceRequest(Base):
    """Help request filed by a user (role solicitante)."""

    __tablename__ = "assistance_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(60), nullable=False, index=True)
    subcategories = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=False, default="")
    urgency = Column(String(10), nullable=False, default="media")  # baja | media | alta
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    user = relationship("User", back_populates="assistance_requests")
