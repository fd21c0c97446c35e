# Accounts and own-profile API
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.crud import user_crud
from app.database import get_db
from app.errors import ReliefError
from app.models.user import User
from app.schemas.user import (
    AssistanceIn,
    HousingIn,
    LoginBody,
    RegisterBody,
    SkillsBody,
    TokenOut,
    UserOut,
    UserUpdate,
)
from app.security import create_access_token, get_current_user
from app.services.visibility import profile_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _commit_profile(db: Session, action, *args) -> UserOut:
    """Run a user_crud mutation, commit, and return the refreshed own profile."""
    try:
        user = action(db, *args)
        db.commit()
        db.refresh(user)
    except ReliefError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("User update failed (%s)", getattr(action, "__name__", action))
        raise HTTPException(status_code=500, detail="Failed to update user")
    return profile_view(user)


@router.post("/register", response_model=TokenOut, status_code=201)
def register(body: RegisterBody, db: Session = Depends(get_db)) -> TokenOut:
    profile = _commit_profile(db, user_crud.register_user, body)
    return TokenOut(access_token=create_access_token(profile.id), user=profile)


@router.post("/login", response_model=TokenOut)
def login(body: LoginBody, db: Session = Depends(get_db)) -> TokenOut:
    try:
        user = user_crud.authenticate(db, body.email, body.password)
    except ReliefError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return TokenOut(access_token=create_access_token(user.id), user=profile_view(user))


@router.get("/profile", response_model=UserOut)
def get_profile(current_user: User = Depends(get_current_user)) -> UserOut:
    return profile_view(current_user)


@router.patch("/{user_id}", response_model=UserOut)
def patch_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    return _commit_profile(db, user_crud.update_user, user_id, current_user.id, body)


@router.post("/{user_id}/skills", response_model=UserOut)
def post_skills(
    user_id: int,
    body: SkillsBody,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    """Register as a volunteer (adds role voluntario)."""
    return _commit_profile(db, user_crud.add_skills, user_id, current_user.id, body.skills)


@router.post("/{user_id}/assistance", response_model=UserOut)
def post_assistance(
    user_id: int,
    body: AssistanceIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    """File a help request (adds role solicitante)."""
    return _commit_profile(db, user_crud.add_assistance_request, user_id, current_user.id, body)


@router.post("/{user_id}/housing", response_model=UserOut)
def post_housing(
    user_id: int,
    body: HousingIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    return _commit_profile(db, user_crud.add_housing, user_id, current_user.id, body)
