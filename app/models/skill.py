# VolunteerSkill model

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.models.base import Base


class VolunteerSkill(Base):
    """One skill category a volunteer offers (rescate_primeros_auxilios, apoyo_medico, ...)."""

    __tablename__ = "volunteer_skills"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(60), nullable=False, index=True)
    subcategories = Column(JSON, nullable=False, default=list)
    has_experience = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="skills")
