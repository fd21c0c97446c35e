# Carpool lifecycle CRUD: create / join / leave / delete / list
#
# Seat bookkeeping runs under a row lock (SELECT ... FOR UPDATE) and the seat
# counter is only ever bumped by a conditional UPDATE, so two concurrent joins
# on the last seat cannot both succeed.
#
# ⚠️ Nothing here commits or rolls back. The caller (router) owns the transaction.

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.errors import AuthorizationError, CapacityError, NotFoundError, ValidationError
from app.models.carpool import MAX_PASSENGERS, MIN_PASSENGERS, Carpool, CarpoolStatus
from app.models.carpool_passenger import CarpoolPassenger
from app.models.user import User
from app.schemas.common import GeoPoint
from app.services.carpool_status import as_status, check_join_allowed, status_after_join, status_after_leave
from app.services.geo import within_radius_km
from app.services.visibility import users_index

logger = logging.getLogger(__name__)


@dataclass
class CarpoolFilter:
    """List filters. Every field is optional; date bounds are inclusive."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    user_id: Optional[int] = None
    mine: bool = False
    status: Optional[CarpoolStatus] = None
    near_lat: Optional[float] = None
    near_lng: Optional[float] = None
    radius_km: Optional[float] = None


def _lock_carpool(db: Session, carpool_id: int) -> Carpool:
    carpool = (
        db.query(Carpool)
        .filter(Carpool.id == carpool_id)
        .with_for_update()
        .first()
    )
    if carpool is None:
        raise NotFoundError("Carpool not found")
    return carpool


def _ensure_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_carpool(db: Session, carpool_id: int) -> Carpool:
    carpool = (
        db.query(Carpool)
        .options(selectinload(Carpool.passengers))
        .filter(Carpool.id == carpool_id)
        .first()
    )
    if carpool is None:
        raise NotFoundError("Carpool not found")
    return carpool


def create_carpool(
    db: Session,
    driver_id: int,
    origin: Optional[GeoPoint],
    destination: Optional[GeoPoint],
    departure_time: datetime,
    max_passengers: int,
    description: Optional[str] = None,
) -> Carpool:
    """
    New carpool: status=active, no passengers.
    origin/destination are None when geocoding failed upstream.
    """
    if not MIN_PASSENGERS <= max_passengers <= MAX_PASSENGERS:
        raise ValidationError(f"max_passengers must be between {MIN_PASSENGERS} and {MAX_PASSENGERS}")
    if origin is None:
        raise ValidationError("Origin address could not be geocoded")
    if destination is None:
        raise ValidationError("Destination address could not be geocoded")
    _ensure_user(db, driver_id)

    carpool = Carpool(
        driver_id=driver_id,
        origin_lat=origin.latitude,
        origin_lng=origin.longitude,
        origin_address=origin.address,
        destination_lat=destination.latitude,
        destination_lng=destination.longitude,
        destination_address=destination.address,
        departure_time=departure_time,
        max_passengers=max_passengers,
        passenger_count=0,
        status=CarpoolStatus.ACTIVE.value,
        description=description,
    )
    db.add(carpool)
    db.flush()
    logger.info("Carpool %s created by driver %s (%s seats)", carpool.id, driver_id, max_passengers)
    return carpool


def join_carpool(db: Session, carpool_id: int, user_id: int) -> Carpool:
    """
    Take a seat.

    - NotFoundError: unknown carpool or user
    - ValidationError: carpool cancelled/completed, user is the driver, or already a passenger
    - CapacityError: no seat left (record unchanged)

    Fills the last seat -> status=full. Returns the updated carpool.
    """
    carpool = _lock_carpool(db, carpool_id)

    blocked = check_join_allowed(carpool.status)
    if blocked is not None:
        logger.warning("Join rejected on carpool %s for user %s: %s", carpool_id, user_id, blocked)
        raise ValidationError(blocked)

    if user_id == carpool.driver_id:
        raise ValidationError("The driver cannot join their own carpool")

    _ensure_user(db, user_id)

    if user_id in carpool.current_passengers:
        raise ValidationError("Already joined this carpool")

    if carpool.passenger_count >= carpool.max_passengers:
        logger.warning("Join rejected on carpool %s for user %s: full", carpool_id, user_id)
        raise CapacityError("carpool is full")

    # Check-and-increment in one statement; 0 rows means another writer took the last seat.
    result = db.execute(
        update(Carpool)
        .where(Carpool.id == carpool_id, Carpool.passenger_count < Carpool.max_passengers)
        .values(passenger_count=Carpool.passenger_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("Join rejected on carpool %s for user %s: lost race for last seat", carpool_id, user_id)
        raise CapacityError("carpool is full")

    try:
        carpool.passengers.append(CarpoolPassenger(user_id=user_id))
        db.flush()
    except IntegrityError:
        # Same user joining twice concurrently trips uq_carpool_passenger_user; rollback is the caller's.
        raise ValidationError("Already joined this carpool")

    db.refresh(carpool)
    carpool.status = status_after_join(carpool.status, carpool.passenger_count, carpool.max_passengers).value
    db.flush()
    logger.info(
        "User %s joined carpool %s (%s/%s, %s)",
        user_id, carpool_id, carpool.passenger_count, carpool.max_passengers, carpool.status,
    )
    return carpool


def leave_carpool(db: Session, carpool_id: int, user_id: int) -> Carpool:
    """
    Give up a seat. No-op on membership if the user is not a passenger.

    The status is reset to active unconditionally, even for cancelled or
    completed carpools.
    """
    carpool = _lock_carpool(db, carpool_id)

    membership = next((p for p in carpool.passengers if p.user_id == user_id), None)
    if membership is not None:
        # delete-orphan cascade removes the row on flush
        carpool.passengers.remove(membership)
        db.execute(
            update(Carpool)
            .where(Carpool.id == carpool_id, Carpool.passenger_count > 0)
            .values(passenger_count=Carpool.passenger_count - 1)
            .execution_options(synchronize_session=False)
        )
        db.flush()

    previous = as_status(carpool.status)
    db.refresh(carpool)
    carpool.status = status_after_leave(previous).value
    db.flush()
    if membership is None:
        logger.info("User %s left carpool %s without being a passenger", user_id, carpool_id)
    else:
        logger.info("User %s left carpool %s (%s/%s)", user_id, carpool_id, carpool.passenger_count, carpool.max_passengers)
    return carpool


def delete_carpool(db: Session, carpool_id: int, requester_id: int) -> None:
    """Hard delete, driver only. Passenger rows go with it; nobody is notified."""
    carpool = _lock_carpool(db, carpool_id)
    if carpool.driver_id != requester_id:
        logger.warning("User %s tried to delete carpool %s owned by %s", requester_id, carpool_id, carpool.driver_id)
        raise AuthorizationError("Only the driver can delete this carpool")
    db.delete(carpool)
    db.flush()
    logger.info("Carpool %s deleted by driver %s", carpool_id, requester_id)


def list_carpools(db: Session, flt: Optional[CarpoolFilter] = None) -> List[Carpool]:
    """
    Filtered carpools, latest departure first, newest offer first on ties.
    The distance filter runs in Python on the origin point.
    """
    flt = flt or CarpoolFilter()
    q = db.query(Carpool).options(selectinload(Carpool.passengers))

    if flt.start is not None:
        q = q.filter(Carpool.departure_time >= flt.start)
    if flt.end is not None:
        q = q.filter(Carpool.departure_time <= flt.end)
    if flt.status is not None:
        q = q.filter(Carpool.status == as_status(flt.status).value)
    if flt.mine and flt.user_id is not None:
        as_passenger = select(CarpoolPassenger.carpool_id).where(CarpoolPassenger.user_id == flt.user_id)
        q = q.filter((Carpool.driver_id == flt.user_id) | (Carpool.id.in_(as_passenger)))

    q = q.order_by(Carpool.departure_time.desc(), Carpool.created_at.desc(), Carpool.id.desc())
    carpools = q.all()

    if flt.near_lat is not None and flt.near_lng is not None and flt.radius_km is not None:
        carpools = [
            c for c in carpools
            if within_radius_km(c.origin_lat, c.origin_lng, flt.near_lat, flt.near_lng, flt.radius_km)
        ]
    return carpools


def load_people(db: Session, carpools: Iterable[Carpool]) -> Dict[int, User]:
    """Drivers and passengers of `carpools`, keyed by id (one query)."""
    ids = set()
    for c in carpools:
        ids.add(c.driver_id)
        ids.update(c.current_passengers)
    if not ids:
        return {}
    return users_index(db.query(User).filter(User.id.in_(ids)).all())
