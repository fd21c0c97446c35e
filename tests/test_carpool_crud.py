from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from app.crud.carpool_crud import (
    CarpoolFilter,
    create_carpool,
    delete_carpool,
    get_carpool,
    join_carpool,
    leave_carpool,
    list_carpools,
)
from app.errors import AuthorizationError, CapacityError, NotFoundError, ValidationError
from app.models.carpool import Carpool, CarpoolStatus
from app.models.carpool_passenger import CarpoolPassenger
from conftest import MADRID, PAIPORTA, VALENCIA

# --- Fixtures ---

@pytest.fixture
def driver(make_user):
    return make_user("Dora")


@pytest.fixture
def riders(make_user):
    return [make_user(name) for name in ("Ana", "Bea", "Carlos")]


# --- create ---

def test_create_starts_active_and_empty(db_session, driver):
    carpool = create_carpool(
        db_session,
        driver_id=driver.id,
        origin=VALENCIA,
        destination=PAIPORTA,
        departure_time=datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
        max_passengers=3,
    )

    assert carpool.id is not None
    assert carpool.status == CarpoolStatus.ACTIVE.value
    assert carpool.current_passengers == []
    assert carpool.passenger_count == 0
    assert carpool.origin_address == "Valencia"


@pytest.mark.parametrize("max_passengers", [0, 9, -1])
def test_create_rejects_seat_count_out_of_range(db_session, driver, max_passengers):
    with pytest.raises(ValidationError):
        create_carpool(
            db_session,
            driver_id=driver.id,
            origin=VALENCIA,
            destination=PAIPORTA,
            departure_time=datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
            max_passengers=max_passengers,
        )
    assert db_session.query(Carpool).count() == 0


def test_create_rejects_ungeocoded_location(db_session, driver):
    with pytest.raises(ValidationError, match="Destination"):
        create_carpool(
            db_session,
            driver_id=driver.id,
            origin=VALENCIA,
            destination=None,
            departure_time=datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
            max_passengers=3,
        )


# --- join ---

def test_two_seat_carpool_fills_then_rejects(db_session, driver, riders, make_carpool):
    ana, bea, carlos = riders
    carpool = make_carpool(driver, max_passengers=2)

    join_carpool(db_session, carpool.id, ana.id)
    assert carpool.status == "active"
    assert carpool.current_passengers == [ana.id]

    join_carpool(db_session, carpool.id, bea.id)
    assert carpool.status == "full"
    assert carpool.current_passengers == [ana.id, bea.id]

    with pytest.raises(CapacityError, match="carpool is full"):
        join_carpool(db_session, carpool.id, carlos.id)

    db_session.commit()
    reloaded = get_carpool(db_session, carpool.id)
    assert reloaded.current_passengers == [ana.id, bea.id]
    assert reloaded.passenger_count == 2
    assert reloaded.status == "full"


def test_single_seat_carpool_is_full_after_one_join(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=1)

    join_carpool(db_session, carpool.id, riders[0].id)

    assert carpool.status == "full"
    assert carpool.passenger_count == 1


def test_join_unknown_carpool(db_session, riders):
    with pytest.raises(NotFoundError):
        join_carpool(db_session, 999, riders[0].id)


def test_join_unknown_user(db_session, driver, make_carpool):
    carpool = make_carpool(driver)
    with pytest.raises(NotFoundError, match="User"):
        join_carpool(db_session, carpool.id, 999)


@pytest.mark.parametrize("status", ["cancelled", "completed"])
def test_join_closed_carpool_is_rejected(db_session, driver, riders, make_carpool, status):
    carpool = make_carpool(driver)
    carpool.status = status
    db_session.commit()

    with pytest.raises(ValidationError, match=status):
        join_carpool(db_session, carpool.id, riders[0].id)
    assert carpool.current_passengers == []


def test_driver_cannot_join_own_carpool(db_session, driver, make_carpool):
    carpool = make_carpool(driver)
    with pytest.raises(ValidationError, match="driver"):
        join_carpool(db_session, carpool.id, driver.id)


def test_duplicate_join_is_rejected(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=3)
    join_carpool(db_session, carpool.id, riders[0].id)

    with pytest.raises(ValidationError, match="Already joined"):
        join_carpool(db_session, carpool.id, riders[0].id)
    assert carpool.current_passengers == [riders[0].id]
    assert carpool.passenger_count == 1


def test_join_lost_race_for_last_seat_is_capacity_error(db_session, driver, riders, make_carpool):
    # Arrange: the session holds the carpool with a free seat, then another
    # writer takes that seat directly in the database
    carpool = make_carpool(driver, max_passengers=1)
    rider_id = riders[0].id
    assert carpool.passenger_count == 0
    assert carpool.current_passengers == []
    db_session.execute(text("UPDATE carpools SET passenger_count = 1 WHERE id = :i"), {"i": carpool.id})

    # Act / Assert: the conditional UPDATE matches no row
    with pytest.raises(CapacityError, match="carpool is full"):
        join_carpool(db_session, carpool.id, rider_id)

    db_session.rollback()
    reloaded = get_carpool(db_session, carpool.id)
    assert reloaded.current_passengers == []
    assert reloaded.passenger_count == 0
    assert reloaded.status == "active"


def test_concurrent_duplicate_join_hits_unique_constraint(db_session, driver, riders, make_carpool):
    # Arrange: the membership row appears after the session loaded the passenger list
    carpool = make_carpool(driver, max_passengers=2)
    rider_id = riders[0].id
    assert carpool.current_passengers == []
    db_session.execute(
        text("INSERT INTO carpool_passengers (carpool_id, user_id) VALUES (:c, :u)"),
        {"c": carpool.id, "u": rider_id},
    )

    with pytest.raises(ValidationError, match="Already joined"):
        join_carpool(db_session, carpool.id, rider_id)

    db_session.rollback()
    reloaded = get_carpool(db_session, carpool.id)
    assert reloaded.current_passengers == []
    assert reloaded.passenger_count == 0


# --- leave ---

def test_join_then_leave_restores_previous_state(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=3)
    join_carpool(db_session, carpool.id, riders[0].id)
    before = (list(carpool.current_passengers), carpool.passenger_count, carpool.status)

    join_carpool(db_session, carpool.id, riders[1].id)
    leave_carpool(db_session, carpool.id, riders[1].id)

    assert (carpool.current_passengers, carpool.passenger_count, carpool.status) == before


def test_leave_full_carpool_reopens_it(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=2)
    join_carpool(db_session, carpool.id, riders[0].id)
    join_carpool(db_session, carpool.id, riders[1].id)

    leave_carpool(db_session, carpool.id, riders[0].id)
    db_session.commit()

    assert carpool.status == "active"
    assert carpool.current_passengers == [riders[1].id]
    assert db_session.query(CarpoolPassenger).count() == 1


@pytest.mark.parametrize("status", ["cancelled", "completed"])
def test_leave_resets_closed_carpool_to_active(db_session, driver, riders, make_carpool, status):
    carpool = make_carpool(driver)
    join_carpool(db_session, carpool.id, riders[0].id)
    carpool.status = status
    db_session.commit()

    leave_carpool(db_session, carpool.id, riders[0].id)

    assert carpool.status == "active"
    assert carpool.current_passengers == []


def test_leave_by_non_passenger_keeps_membership(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=2)
    join_carpool(db_session, carpool.id, riders[0].id)

    leave_carpool(db_session, carpool.id, riders[2].id)

    assert carpool.current_passengers == [riders[0].id]
    assert carpool.passenger_count == 1
    assert carpool.status == "active"


def test_leave_unknown_carpool(db_session, riders):
    with pytest.raises(NotFoundError):
        leave_carpool(db_session, 999, riders[0].id)


def test_seat_freed_by_leave_can_be_taken(db_session, driver, riders, make_carpool):
    ana, bea, carlos = riders
    carpool = make_carpool(driver, max_passengers=2)
    join_carpool(db_session, carpool.id, ana.id)
    join_carpool(db_session, carpool.id, bea.id)
    leave_carpool(db_session, carpool.id, ana.id)

    join_carpool(db_session, carpool.id, carlos.id)

    assert carpool.current_passengers == [bea.id, carlos.id]
    assert carpool.status == "full"


# --- delete ---

def test_only_driver_can_delete(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver)

    with pytest.raises(AuthorizationError):
        delete_carpool(db_session, carpool.id, riders[0].id)
    assert db_session.query(Carpool).count() == 1


def test_delete_removes_carpool_and_passengers(db_session, driver, riders, make_carpool):
    carpool = make_carpool(driver, max_passengers=3)
    join_carpool(db_session, carpool.id, riders[0].id)
    join_carpool(db_session, carpool.id, riders[1].id)
    db_session.commit()
    carpool_id = carpool.id

    delete_carpool(db_session, carpool_id, driver.id)
    db_session.commit()

    assert db_session.query(Carpool).count() == 0
    assert db_session.query(CarpoolPassenger).count() == 0
    with pytest.raises(NotFoundError):
        get_carpool(db_session, carpool_id)


def test_delete_unknown_carpool(db_session, driver):
    with pytest.raises(NotFoundError):
        delete_carpool(db_session, 999, driver.id)


# --- list ---

def _at(day, hour=9):
    return datetime(2024, 11, day, hour, 0, tzinfo=timezone.utc)


def test_list_sorted_by_departure_latest_first(db_session, driver, make_carpool):
    early = make_carpool(driver, departure=_at(4))
    late = make_carpool(driver, departure=_at(6))
    middle = make_carpool(driver, departure=_at(5))

    ids = [c.id for c in list_carpools(db_session)]

    assert ids == [late.id, middle.id, early.id]


def test_list_same_departure_newest_offer_first(db_session, driver, make_carpool):
    first = make_carpool(driver, departure=_at(5))
    second = make_carpool(driver, departure=_at(5))

    ids = [c.id for c in list_carpools(db_session)]

    assert ids == [second.id, first.id]


def test_list_date_bounds_are_inclusive(db_session, driver, make_carpool):
    make_carpool(driver, departure=_at(3))
    on_start = make_carpool(driver, departure=_at(4))
    on_end = make_carpool(driver, departure=_at(6))
    make_carpool(driver, departure=_at(7))

    result = list_carpools(db_session, CarpoolFilter(start=_at(4), end=_at(6)))

    assert [c.id for c in result] == [on_end.id, on_start.id]


def test_list_mine_covers_driver_and_passenger(db_session, driver, riders, make_user, make_carpool):
    ana = riders[0]
    other_driver = make_user("Eva")
    drives = make_carpool(ana, departure=_at(4))
    rides = make_carpool(other_driver, departure=_at(5))
    make_carpool(driver, departure=_at(6))
    join_carpool(db_session, rides.id, ana.id)
    db_session.commit()

    result = list_carpools(db_session, CarpoolFilter(user_id=ana.id, mine=True))

    assert [c.id for c in result] == [rides.id, drives.id]


def test_list_by_status(db_session, driver, riders, make_carpool):
    full = make_carpool(driver, max_passengers=1, departure=_at(4))
    make_carpool(driver, departure=_at(5))
    join_carpool(db_session, full.id, riders[0].id)
    db_session.commit()

    result = list_carpools(db_session, CarpoolFilter(status=CarpoolStatus.FULL))

    assert [c.id for c in result] == [full.id]


def test_list_near_point(db_session, driver, make_carpool):
    local = make_carpool(driver, origin=PAIPORTA, departure=_at(4))
    make_carpool(driver, origin=MADRID, departure=_at(5))

    result = list_carpools(
        db_session,
        CarpoolFilter(near_lat=VALENCIA.latitude, near_lng=VALENCIA.longitude, radius_km=25),
    )

    assert [c.id for c in result] == [local.id]
