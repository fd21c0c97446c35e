from datetime import date, datetime, timezone

import pytest

from app.models.assistance import AssistanceRequest
from app.models.carpool import Carpool
from app.models.carpool_passenger import CarpoolPassenger
from app.models.housing import HousingOffer
from app.models.skill import VolunteerSkill
from app.models.user import User
from app.services.visibility import (
    ANONYMOUS,
    Viewer,
    assistance_view,
    can_view_driver_contact,
    can_view_passenger_contact,
    carpool_view,
    housing_view,
    profile_view,
    users_index,
    volunteer_view,
)

# --- Fixtures ---

@pytest.fixture
def people():
    """Driver 1, passenger 2, outsider 3. Transient objects, no database needed."""
    return {
        "driver": User(id=1, name="Dora", email="dora@example.org", phone="611111111", roles=[]),
        "passenger": User(id=2, name="Ana", email="ana@example.org", phone="622222222", roles=[]),
        "outsider": User(id=3, name="Omar", email="omar@example.org", phone="633333333", roles=[]),
    }


@pytest.fixture
def carpool():
    return Carpool(
        id=10,
        driver_id=1,
        origin_lat=39.47,
        origin_lng=-0.38,
        origin_address="Valencia",
        destination_lat=39.43,
        destination_lng=-0.42,
        destination_address="Paiporta",
        departure_time=datetime(2024, 11, 5, 9, 0, tzinfo=timezone.utc),
        max_passengers=3,
        passenger_count=1,
        status="active",
        passengers=[CarpoolPassenger(id=1, user_id=2)],
    )


def _view(carpool, people, viewer):
    return carpool_view(carpool, users_index(people.values()), viewer)

# --- Carpools ---

def test_passenger_sees_driver_contact(carpool, people):
    out = _view(carpool, people, Viewer(2))

    assert out.driver.email == "dora@example.org"
    assert out.driver.phone == "611111111"
    assert out.driver.contact_visible is True


def test_passenger_does_not_see_other_passengers_contact(carpool, people):
    out = _view(carpool, people, Viewer(2))

    assert out.passengers[0].id == 2
    assert out.passengers[0].email is None
    assert out.passengers[0].phone is None


def test_driver_sees_passenger_contact_but_not_own(carpool, people):
    out = _view(carpool, people, Viewer(1))

    assert out.passengers[0].email == "ana@example.org"
    assert out.passengers[0].phone == "622222222"
    assert out.driver.email is None
    assert out.driver.phone is None


def test_outsider_sees_no_contact(carpool, people):
    out = _view(carpool, people, Viewer(3))

    assert out.driver.email is None
    assert out.driver.phone is None
    assert all(p.email is None and p.phone is None for p in out.passengers)


def test_anonymous_sees_no_contact(carpool, people):
    out = _view(carpool, people, ANONYMOUS)

    assert out.driver.contact_visible is False
    assert out.driver.email is None
    assert out.passengers[0].phone is None
    # public fields are still there
    assert out.driver.name == "Dora"
    assert out.current_passengers == [2]
    assert out.seats_available == 2


def test_driver_contact_hidden_again_after_leaving(carpool):
    viewer = Viewer(2)
    assert can_view_driver_contact(carpool, viewer) is True

    carpool.passengers = []

    assert can_view_driver_contact(carpool, viewer) is False


def test_passenger_contact_rule_is_driver_only(carpool):
    assert can_view_passenger_contact(carpool, Viewer(1)) is True
    assert can_view_passenger_contact(carpool, Viewer(2)) is False
    assert can_view_passenger_contact(carpool, ANONYMOUS) is False

# --- Directory records ---

def test_assistance_contact_for_any_authenticated_viewer(people):
    request = AssistanceRequest(
        id=5,
        category="alimentos",
        subcategories=["alimentos_emergencia"],
        description="Familia de cuatro sin cocina",
        urgency="alta",
        user=people["passenger"],
    )

    shown = assistance_view(request, Viewer(3))
    hidden = assistance_view(request, ANONYMOUS)

    assert shown.requester.email == "ana@example.org"
    assert shown.requester.phone == "622222222"
    assert hidden.requester.email is None
    assert hidden.requester.phone is None
    assert hidden.description == "Familia de cuatro sin cocina"


def test_volunteer_contact_for_any_authenticated_viewer(people):
    volunteer = people["outsider"]
    volunteer.skills = [VolunteerSkill(category="apoyo_medico", subcategories=["asistente_salud"], has_experience=True)]

    shown = volunteer_view(volunteer, Viewer(1))
    hidden = volunteer_view(volunteer, ANONYMOUS)

    assert (shown.email, shown.phone) == ("omar@example.org", "633333333")
    assert (hidden.email, hidden.phone) == (None, None)
    assert hidden.skills[0].category == "apoyo_medico"


def test_housing_host_exposes_email_only(people):
    offer = HousingOffer(
        id=7,
        address="Calle Mayor 1, Torrent",
        start_date=date(2024, 11, 1),
        end_date=date(2024, 11, 30),
        max_occupancy=3,
        is_shared=True,
        status="available",
        user=people["driver"],
    )

    shown = housing_view(offer, Viewer(2))
    hidden = housing_view(offer, ANONYMOUS)

    assert shown.host.email == "dora@example.org"
    assert shown.host.phone is None
    assert hidden.host.email is None
    assert hidden.location is None


def test_profile_is_unredacted_and_has_no_password(people):
    user = people["driver"]
    user.password_hash = "$2b$12$notarealhash"

    out = profile_view(user)

    assert out.email == "dora@example.org"
    assert out.phone == "611111111"
    assert "password_hash" not in out.model_dump()
