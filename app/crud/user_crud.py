# User CRUD: accounts, profile, volunteer skills, assistance requests, housing offers
#
# ⚠️ Nothing here commits or rolls back. The caller (router) owns the transaction.

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.assistance import AssistanceRequest
from app.models.carpool import Carpool
from app.models.housing import HousingOffer, HousingStatus
from app.models.skill import VolunteerSkill
from app.models.user import User, UserRole
from app.schemas.user import AssistanceIn, HousingIn, LocationIn, RegisterBody, SkillIn, UserUpdate
from app.security import hash_password, verify_password
from app.services.carpool_status import JOINABLE_STATUSES

logger = logging.getLogger(__name__)


def _apply_location(user: User, location: Optional[LocationIn]) -> None:
    if location is None:
        return
    user.location_lat = location.latitude
    user.location_lng = location.longitude
    user.location_address = location.address
    user.location_radius_km = location.radius


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def register_user(db: Session, body: RegisterBody) -> User:
    """New account. Email is unique (case-insensitive)."""
    email = body.email.lower()
    if db.query(User).filter(func.lower(User.email) == email).first() is not None:
        raise ValidationError("Email is already registered")

    user = User(
        name=body.name,
        email=email,
        password_hash=hash_password(body.password),
        phone=body.phone,
        roles=sorted(set(body.roles)),
        has_account=True,
    )
    _apply_location(user, body.location)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # concurrent registration with the same email
        raise ValidationError("Email is already registered")
    logger.info("User %s registered", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(func.lower(User.email) == email.lower()).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise AuthorizationError("Invalid login credentials", status_code=401)
    return user


def _owned_user(db: Session, user_id: int, requester_id: int) -> User:
    user = get_user(db, user_id)
    if user.id != requester_id:
        raise AuthorizationError("Users can only modify their own record")
    return user


def update_user(db: Session, user_id: int, requester_id: int, changes: UserUpdate) -> User:
    user = _owned_user(db, user_id, requester_id)
    data = changes.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        user.name = data["name"]
    if "phone" in data:
        user.phone = data["phone"]
    if "location" in data:
        if changes.location is None:
            user.location_lat = user.location_lng = user.location_address = user.location_radius_km = None
        else:
            _apply_location(user, changes.location)
    db.flush()
    return user


def add_skills(db: Session, user_id: int, requester_id: int, skills: Iterable[SkillIn]) -> User:
    """Append volunteer skills; the user becomes a voluntario."""
    user = _owned_user(db, user_id, requester_id)
    for s in skills:
        user.skills.append(
            VolunteerSkill(category=s.category, subcategories=list(s.subcategories), has_experience=s.has_experience)
        )
    user.add_role(UserRole.VOLUNTEER)
    db.flush()
    return user


def add_assistance_request(db: Session, user_id: int, requester_id: int, body: AssistanceIn) -> User:
    """Append a help request; the user becomes a solicitante."""
    user = _owned_user(db, user_id, requester_id)
    user.assistance_requests.append(
        AssistanceRequest(
            category=body.category,
            subcategories=list(body.subcategories),
            description=body.description,
            urgency=body.urgency,
        )
    )
    user.add_role(UserRole.REQUESTER)
    db.flush()
    return user


def add_housing(db: Session, user_id: int, requester_id: int, body: HousingIn) -> User:
    user = _owned_user(db, user_id, requester_id)
    user.housing_offers.append(
        HousingOffer(
            address=body.address,
            lat=body.location.latitude if body.location else None,
            lng=body.location.longitude if body.location else None,
            start_date=body.start_date,
            end_date=body.end_date,
            max_occupancy=body.max_occupancy,
            is_shared=body.is_shared,
            description=body.description,
            status=body.status,
        )
    )
    db.flush()
    return user


def list_volunteers(
    db: Session,
    categories: Optional[Set[str]] = None,
    subcategories: Optional[Set[str]] = None,
    experienced_only: bool = False,
) -> List[User]:
    """
    Volunteers with at least one skill matching the filters, newest first.
    A category match and a subcategory match may come from different skills.
    """
    users = (
        db.query(User)
        .options(selectinload(User.skills))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    result = []
    for user in users:
        if not user.has_role(UserRole.VOLUNTEER) or not user.skills:
            continue
        if categories and not any(s.category in categories for s in user.skills):
            continue
        if subcategories and not any(set(s.subcategories or []) & subcategories for s in user.skills):
            continue
        if experienced_only and not any(s.has_experience for s in user.skills):
            continue
        result.append(user)
    return result


def list_assistance_requests(
    db: Session,
    categories: Optional[Set[str]] = None,
    subcategories: Optional[Set[str]] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    user_id: Optional[int] = None,
) -> List[AssistanceRequest]:
    """Requests across all users, most recent first."""
    q = db.query(AssistanceRequest).options(selectinload(AssistanceRequest.user))
    if categories:
        q = q.filter(AssistanceRequest.category.in_(categories))
    if start is not None:
        q = q.filter(AssistanceRequest.created_at >= start)
    if end is not None:
        q = q.filter(AssistanceRequest.created_at <= end)
    if user_id is not None:
        q = q.filter(AssistanceRequest.user_id == user_id)
    requests = q.order_by(AssistanceRequest.created_at.desc(), AssistanceRequest.id.desc()).all()
    if subcategories:
        # JSON array membership is not portable across backends; filter here
        requests = [r for r in requests if set(r.subcategories or []) & subcategories]
    return requests


def list_housing(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    occupancy_range: Tuple[Optional[int], Optional[int]] = (None, None),
    shared: Optional[bool] = None,
    user_id: Optional[int] = None,
) -> List[HousingOffer]:
    """
    Available offers only. A date range matches when it overlaps the offer's stay.
    shared=True -> shared rooms only, shared=False -> private only.
    """
    min_occupancy, max_occupancy = occupancy_range
    q = (
        db.query(HousingOffer)
        .options(selectinload(HousingOffer.user))
        .filter(HousingOffer.status == HousingStatus.AVAILABLE.value)
    )
    if start is not None:
        q = q.filter(HousingOffer.end_date >= start)
    if end is not None:
        q = q.filter(HousingOffer.start_date <= end)
    if min_occupancy is not None:
        q = q.filter(HousingOffer.max_occupancy >= min_occupancy)
    if max_occupancy is not None:
        q = q.filter(HousingOffer.max_occupancy <= max_occupancy)
    if shared is not None:
        q = q.filter(HousingOffer.is_shared == shared)
    if user_id is not None:
        q = q.filter(HousingOffer.user_id == user_id)
    return q.order_by(HousingOffer.created_at.desc(), HousingOffer.start_date.asc(), HousingOffer.id.desc()).all()


def stats(db: Session) -> dict:
    """
    Dashboard counters. Housing counts every offer regardless of status;
    carpools count while they are still running (active or full).
    """
    volunteers = sum(1 for (roles,) in db.query(User.roles).all() if UserRole.VOLUNTEER.value in (roles or []))
    return {
        "volunteers": volunteers,
        "assistance_requests": db.query(func.count(AssistanceRequest.id)).scalar() or 0,
        "housing_offers": db.query(func.count(HousingOffer.id)).scalar() or 0,
        "active_carpools": db.query(func.count(Carpool.id))
        .filter(Carpool.status.in_([s.value for s in JOINABLE_STATUSES]))
        .scalar()
        or 0,
    }
