# Visibility policy: which contact fields (email/phone) a viewer may see.
#
# Carpools are role-scoped:
#   driver contact    -> only current passengers of that carpool
#   passenger contact -> only the driver of that carpool
# Assistance requests, the volunteer directory and housing offers are open to
# any authenticated viewer. Anonymous viewers never get email or phone.

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from app.models.assistance import AssistanceRequest
from app.models.carpool import Carpool
from app.models.housing import HousingOffer
from app.models.user import User
from app.schemas.carpool import CarpoolOut
from app.schemas.common import GeoPoint, LocationOut, PersonOut
from app.schemas.user import AssistanceOut, HousingOut, SkillOut, UserOut, VolunteerOut
from app.services.carpool_status import as_status


@dataclass(frozen=True)
class Viewer:
    """Who is looking. viewer_id is None for anonymous visitors."""

    viewer_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.viewer_id is not None


ANONYMOUS = Viewer()


def is_driver_of(carpool: Carpool, viewer: Viewer) -> bool:
    return viewer.is_authenticated and viewer.viewer_id == carpool.driver_id


def is_passenger_of(carpool: Carpool, viewer: Viewer) -> bool:
    return viewer.is_authenticated and viewer.viewer_id in carpool.current_passengers


def can_view_driver_contact(carpool: Carpool, viewer: Viewer) -> bool:
    return is_passenger_of(carpool, viewer)


def can_view_passenger_contact(carpool: Carpool, viewer: Viewer) -> bool:
    return is_driver_of(carpool, viewer)


def can_view_directory_contact(viewer: Viewer) -> bool:
    """Assistance requests, volunteers and housing hosts: any logged-in viewer."""
    return viewer.is_authenticated


def person_view(user: User, show_contact: bool, show_phone: bool = True) -> PersonOut:
    return PersonOut(
        id=user.id,
        name=user.name,
        email=user.email if show_contact else None,
        phone=user.phone if show_contact and show_phone else None,
        contact_visible=show_contact,
    )


def _user_location(user: User) -> Optional[LocationOut]:
    if user.location_lat is None or user.location_lng is None:
        return None
    return LocationOut(
        latitude=user.location_lat,
        longitude=user.location_lng,
        address=user.location_address or "",
        radius=user.location_radius_km,
    )


def carpool_view(carpool: Carpool, users_by_id: Dict[int, User], viewer: Viewer) -> CarpoolOut:
    """
    Redacted carpool for `viewer`. users_by_id must hold the driver and the
    passengers; unknown ids are listed in current_passengers only.
    """
    driver = users_by_id.get(carpool.driver_id)
    show_driver = can_view_driver_contact(carpool, viewer)
    show_passengers = can_view_passenger_contact(carpool, viewer)
    passenger_ids = carpool.current_passengers
    passengers = [
        person_view(users_by_id[uid], show_passengers) for uid in passenger_ids if uid in users_by_id
    ]
    return CarpoolOut(
        id=carpool.id,
        driver_id=carpool.driver_id,
        driver=person_view(driver, show_driver) if driver is not None else None,
        origin=GeoPoint(
            latitude=carpool.origin_lat,
            longitude=carpool.origin_lng,
            address=carpool.origin_address,
        ),
        destination=GeoPoint(
            latitude=carpool.destination_lat,
            longitude=carpool.destination_lng,
            address=carpool.destination_address,
        ),
        departure_time=carpool.departure_time,
        max_passengers=carpool.max_passengers,
        current_passengers=passenger_ids,
        passengers=passengers,
        seats_available=max(0, carpool.max_passengers - len(passenger_ids)),
        status=as_status(carpool.status).value,
        description=carpool.description,
        created_at=carpool.created_at,
    )


def assistance_view(request: AssistanceRequest, viewer: Viewer) -> AssistanceOut:
    return AssistanceOut(
        id=request.id,
        category=request.category,
        subcategories=list(request.subcategories or []),
        description=request.description or "",
        urgency=request.urgency,
        created_at=request.created_at,
        requester=person_view(request.user, can_view_directory_contact(viewer)),
    )


def volunteer_view(user: User, viewer: Viewer) -> VolunteerOut:
    show = can_view_directory_contact(viewer)
    return VolunteerOut(
        id=user.id,
        name=user.name,
        email=user.email if show else None,
        phone=user.phone if show else None,
        contact_visible=show,
        location=_user_location(user),
        skills=[SkillOut.model_validate(s) for s in user.skills],
    )


def housing_view(offer: HousingOffer, viewer: Viewer, show_host_contact: Optional[bool] = None) -> HousingOut:
    """Hosts only ever expose their email, never the phone number."""
    show = can_view_directory_contact(viewer) if show_host_contact is None else show_host_contact
    location = None
    if offer.lat is not None and offer.lng is not None:
        location = GeoPoint(latitude=offer.lat, longitude=offer.lng, address=offer.address)
    return HousingOut(
        id=offer.id,
        address=offer.address,
        location=location,
        start_date=offer.start_date,
        end_date=offer.end_date,
        max_occupancy=offer.max_occupancy,
        is_shared=offer.is_shared,
        description=offer.description,
        status=offer.status,
        host=person_view(offer.user, show, show_phone=False),
    )


def users_index(users: Iterable[User]) -> Dict[int, User]:
    return {u.id: u for u in users}


def profile_view(user: User) -> UserOut:
    """The owner's own record: nothing is redacted except the password hash, which is never exposed."""
    owner = Viewer(user.id)
    return UserOut(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        roles=list(user.roles or []),
        location=_user_location(user),
        skills=[SkillOut.model_validate(s) for s in user.skills],
        assistance_requests=[assistance_view(r, owner) for r in user.assistance_requests],
        housing=[housing_view(h, owner, show_host_contact=True) for h in user.housing_offers],
        has_account=bool(user.has_account),
        created_at=user.created_at,
    )
