# Carpool API: create / list / detail / join / leave / delete + live stream
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.config import PAGE_SIZE
from app.crud.carpool_crud import (
    CarpoolFilter,
    create_carpool,
    delete_carpool,
    get_carpool,
    join_carpool,
    leave_carpool,
    list_carpools,
    load_people,
)
from app.database import get_db
from app.errors import AuthorizationError, ReliefError
from app.integrations.mapbox_geocoding import resolve_address
from app.models.carpool import Carpool, CarpoolStatus
from app.models.user import User
from app.realtime.sse_pubsub import publish_carpool_deleted, publish_carpool_updated, stream_carpool_events
from app.schemas.carpool import CarpoolCreate, CarpoolOut, CarpoolStatusLiteral, PassengerBody, PlaceIn, to_utc
from app.schemas.common import GeoPoint, Page
from app.security import get_current_user, get_viewer
from app.services.pagination import paginate
from app.services.visibility import Viewer, carpool_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carpools", tags=["Carpools"])


async def _resolve_place(place: PlaceIn) -> Optional[GeoPoint]:
    """Typed coordinates win; otherwise ask the geocoder."""
    point = place.as_point()
    if point is not None:
        return point
    return await resolve_address(place.address)


def _view(db: Session, carpool: Carpool, viewer: Viewer) -> CarpoolOut:
    return carpool_view(carpool, load_people(db, [carpool]), viewer)


async def _publish_updated(carpool: Carpool, action: str) -> None:
    await publish_carpool_updated(
        carpool.id,
        carpool.status,
        carpool.passenger_count,
        carpool.max_passengers,
        action=action,
    )


@router.post("", response_model=CarpoolOut, status_code=201)
async def post_carpool(
    body: CarpoolCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CarpoolOut:
    """Offer a ride. Addresses without coordinates are geocoded first; a failed lookup is a 400."""
    origin = await _resolve_place(body.origin)
    destination = await _resolve_place(body.destination)
    try:
        carpool = create_carpool(
            db,
            driver_id=current_user.id,
            origin=origin,
            destination=destination,
            departure_time=body.departure_time,
            max_passengers=body.max_passengers,
            description=body.description,
        )
        db.commit()  # ✅ the router owns the transaction
        db.refresh(carpool)
    except ReliefError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("Failed to create carpool")
        raise HTTPException(status_code=500, detail="Failed to create carpool")

    await _publish_updated(carpool, "created")
    return _view(db, carpool, Viewer(current_user.id))


@router.get("", response_model=Page[CarpoolOut])
def get_carpools(
    start: Optional[datetime] = Query(None, description="earliest departure (inclusive)"),
    end: Optional[datetime] = Query(None, description="latest departure (inclusive)"),
    mine: bool = Query(False, description="only carpools where the caller drives or rides"),
    status: Optional[CarpoolStatusLiteral] = None,
    near_lat: Optional[float] = Query(None, ge=-90, le=90),
    near_lng: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: float = Query(25.0, gt=0),
    page: int = Query(1, ge=1),
    page_size: int = Query(PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
) -> Page[CarpoolOut]:
    """Carpools sorted by departure (latest first), each redacted for the caller."""
    if mine and not viewer.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if (near_lat is None) != (near_lng is None):
        raise HTTPException(status_code=400, detail="near_lat and near_lng must be given together")

    flt = CarpoolFilter(
        start=to_utc(start) if start else None,
        end=to_utc(end) if end else None,
        user_id=viewer.viewer_id,
        mine=mine,
        status=CarpoolStatus(status) if status else None,
        near_lat=near_lat,
        near_lng=near_lng,
        radius_km=radius_km if near_lat is not None else None,
    )
    carpools = list_carpools(db, flt)
    items, total_pages = paginate(carpools, page, page_size)
    people = load_people(db, items)
    return Page[CarpoolOut](
        items=[carpool_view(c, people, viewer) for c in items],
        total=len(carpools),
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get("/stream")
async def get_carpool_stream():
    """SSE: carpool_updated / carpool_deleted events for live list refresh."""
    return StreamingResponse(
        stream_carpool_events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/{carpool_id}", response_model=CarpoolOut)
def get_carpool_detail(
    carpool_id: int,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
) -> CarpoolOut:
    try:
        carpool = get_carpool(db, carpool_id)
    except ReliefError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _view(db, carpool, viewer)


@router.post("/{carpool_id}/join", response_model=CarpoolOut)
async def post_join(
    carpool_id: int,
    body: Optional[PassengerBody] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CarpoolOut:
    """Take a seat as the authenticated user. 409 when the carpool is full."""
    try:
        if body is not None and body.user_id is not None and body.user_id != current_user.id:
            raise AuthorizationError("Users can only join carpools for themselves")
        carpool = join_carpool(db, carpool_id, current_user.id)
        db.commit()  # ✅ the router owns the transaction
        db.refresh(carpool)
    except ReliefError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("Failed to join carpool %s", carpool_id)
        raise HTTPException(status_code=500, detail="Failed to join carpool")

    await _publish_updated(carpool, "joined")
    return _view(db, carpool, Viewer(current_user.id))


@router.post("/{carpool_id}/leave", response_model=CarpoolOut)
async def post_leave(
    carpool_id: int,
    body: Optional[PassengerBody] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CarpoolOut:
    """
    Leave a carpool. The driver may pass another user's id to remove that
    passenger; everyone else can only remove themselves.
    """
    target_id = body.user_id if body is not None and body.user_id is not None else current_user.id
    try:
        if target_id != current_user.id:
            if get_carpool(db, carpool_id).driver_id != current_user.id:
                raise AuthorizationError("Only the driver can remove other passengers")
        carpool = leave_carpool(db, carpool_id, target_id)
        db.commit()  # ✅ the router owns the transaction
        db.refresh(carpool)
    except ReliefError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("Failed to leave carpool %s", carpool_id)
        raise HTTPException(status_code=500, detail="Failed to leave carpool")

    await _publish_updated(carpool, "left")
    return _view(db, carpool, Viewer(current_user.id))


@router.delete("/{carpool_id}")
async def delete_carpool_route(
    carpool_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict:
    """Driver-only hard delete."""
    try:
        delete_carpool(db, carpool_id, current_user.id)
        db.commit()
    except ReliefError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("Failed to delete carpool %s", carpool_id)
        raise HTTPException(status_code=500, detail="Failed to delete carpool")

    await publish_carpool_deleted(carpool_id)
    return {"message": "Carpool deleted successfully"}
