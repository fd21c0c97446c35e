# Public listings: volunteers, assistance requests, temporary housing, dashboard stats
# Contact fields follow the any-authenticated-viewer rule (see services/visibility.py).
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.config import PAGE_SIZE
from app.crud import user_crud
from app.database import get_db
from app.schemas.carpool import to_utc
from app.schemas.common import Page
from app.schemas.user import AssistanceOut, HousingOut, StatsOut, VolunteerOut
from app.security import get_viewer
from app.services.pagination import paginate
from app.services.visibility import Viewer, assistance_view, housing_view, volunteer_view

router = APIRouter(tags=["Directory"])


def _as_set(values: Optional[List[str]]) -> Optional[set]:
    return set(values) if values else None


@router.get("/volunteers", response_model=Page[VolunteerOut])
def get_volunteers(
    category: Optional[List[str]] = Query(None),
    subcategory: Optional[List[str]] = Query(None),
    experienced_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
) -> Page[VolunteerOut]:
    volunteers = user_crud.list_volunteers(db, _as_set(category), _as_set(subcategory), experienced_only)
    items, total_pages = paginate(volunteers, page, page_size)
    return Page[VolunteerOut](
        items=[volunteer_view(u, viewer) for u in items],
        total=len(volunteers),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get("/assistance", response_model=Page[AssistanceOut])
def get_assistance_requests(
    category: Optional[List[str]] = Query(None),
    subcategory: Optional[List[str]] = Query(None),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    user_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
) -> Page[AssistanceOut]:
    """Help requests, most recent first."""
    requests = user_crud.list_assistance_requests(
        db,
        categories=_as_set(category),
        subcategories=_as_set(subcategory),
        start=to_utc(start) if start else None,
        end=to_utc(end) if end else None,
        user_id=user_id,
    )
    items, total_pages = paginate(requests, page, page_size)
    return Page[AssistanceOut](
        items=[assistance_view(r, viewer) for r in items],
        total=len(requests),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get("/housing", response_model=Page[HousingOut])
def get_housing(
    start: Optional[date] = None,
    end: Optional[date] = None,
    min_occupancy: Optional[int] = Query(None, ge=1),
    max_occupancy: Optional[int] = Query(None, ge=1),
    shared: Optional[bool] = Query(None, description="true: shared only, false: private only"),
    user_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
) -> Page[HousingOut]:
    """Available temporary housing whose stay overlaps [start, end]."""
    offers = user_crud.list_housing(
        db,
        start=start,
        end=end,
        occupancy_range=(min_occupancy, max_occupancy),
        shared=shared,
        user_id=user_id,
    )
    items, total_pages = paginate(offers, page, page_size)
    return Page[HousingOut](
        items=[housing_view(h, viewer) for h in items],
        total=len(offers),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get("/stats", response_model=StatsOut)
def get_stats(db: Session = Depends(get_db)) -> StatsOut:
    return StatsOut(**user_crud.stats(db))
