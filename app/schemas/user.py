# User, volunteer, assistance and housing schemas

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.services.catalog import ASSISTANCE_CATEGORIES, VOLUNTEER_CATEGORIES, check_subcategories
from app.schemas.common import GeoPoint, LocationOut, PersonOut

RoleLiteral = Literal["voluntario", "solicitante"]
UrgencyLiteral = Literal["baja", "media", "alta"]
HousingStatusLiteral = Literal["available", "occupied", "expired"]


class LocationIn(GeoPoint):
    radius: Optional[float] = Field(None, ge=0)


class RegisterBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(None, max_length=40)
    roles: List[RoleLiteral] = []
    location: Optional[LocationIn] = None


class LoginBody(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserUpdate(BaseModel):
    """Partial profile update. Only fields that are sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    location: Optional[LocationIn] = None


class SkillIn(BaseModel):
    category: str
    subcategories: List[str] = []
    has_experience: bool = False

    @model_validator(mode="after")
    def _known_category(self) -> "SkillIn":
        check_subcategories(VOLUNTEER_CATEGORIES, self.category, self.subcategories)
        return self


class SkillsBody(BaseModel):
    skills: List[SkillIn] = Field(..., min_length=1)


class SkillOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    subcategories: List[str] = []
    has_experience: bool = False


class AssistanceIn(BaseModel):
    category: str
    subcategories: List[str] = []
    description: str = Field("", max_length=2000)
    urgency: UrgencyLiteral = "media"

    @model_validator(mode="after")
    def _known_category(self) -> "AssistanceIn":
        check_subcategories(ASSISTANCE_CATEGORIES, self.category, self.subcategories)
        return self


class HousingIn(BaseModel):
    address: str = Field(..., min_length=1, max_length=300)
    location: Optional[LocationIn] = None
    start_date: date
    end_date: date
    max_occupancy: int = Field(..., ge=1, le=50)
    is_shared: bool = False
    description: Optional[str] = Field(None, max_length=2000)
    status: HousingStatusLiteral = "available"

    @model_validator(mode="after")
    def _date_order(self) -> "HousingIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AssistanceOut(BaseModel):
    id: int
    category: str
    subcategories: List[str] = []
    description: str = ""
    urgency: UrgencyLiteral = "media"
    created_at: Optional[datetime] = None
    requester: Optional[PersonOut] = None


class HousingOut(BaseModel):
    id: int
    address: str
    location: Optional[GeoPoint] = None
    start_date: date
    end_date: date
    max_occupancy: int
    is_shared: bool
    description: Optional[str] = None
    status: HousingStatusLiteral
    host: Optional[PersonOut] = None


class VolunteerOut(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_visible: bool = False
    location: Optional[LocationOut] = None
    skills: List[SkillOut] = []


class UserOut(BaseModel):
    """Own profile: always unredacted, never carries the password hash."""

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    roles: List[RoleLiteral] = []
    location: Optional[LocationOut] = None
    skills: List[SkillOut] = []
    assistance_requests: List[AssistanceOut] = []
    housing: List[HousingOut] = []
    has_account: bool = True
    created_at: Optional[datetime] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class StatsOut(BaseModel):
    volunteers: int
    assistance_requests: int
    housing_offers: int
    active_carpools: int
