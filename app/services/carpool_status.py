# Carpool status state machine.
# active <-> full     seat usage (join fills the last seat / leave)
# cancelled, completed  closed for joins
# leave -> active      from every state, including cancelled/completed (kept as-is, see DESIGN.md)

from app.models.carpool import CarpoolStatus

# Statuses in which a join may be attempted (capacity is checked separately).
JOINABLE_STATUSES: frozenset[CarpoolStatus] = frozenset({CarpoolStatus.ACTIVE, CarpoolStatus.FULL})

CLOSED_STATUSES: frozenset[CarpoolStatus] = frozenset({CarpoolStatus.CANCELLED, CarpoolStatus.COMPLETED})


def as_status(value) -> CarpoolStatus:
    """DB string or enum -> CarpoolStatus."""
    if isinstance(value, CarpoolStatus):
        return value
    return CarpoolStatus(value or CarpoolStatus.ACTIVE.value)


def check_join_allowed(current) -> str | None:
    """
    Returns None if the carpool accepts joins in its current status,
    else an error message for the caller.
    """
    status = as_status(current)
    if status not in JOINABLE_STATUSES:
        return f"Carpool is {status.value}; joining is not allowed."
    return None


def status_after_join(current, passenger_count: int, max_passengers: int) -> CarpoolStatus:
    """Status after a successful join: FULL once the last seat is taken."""
    status = as_status(current)
    if status in CLOSED_STATUSES:
        return status
    if passenger_count >= max_passengers:
        return CarpoolStatus.FULL
    return CarpoolStatus.ACTIVE


def status_after_leave(current) -> CarpoolStatus:
    """Leave always reopens the carpool, whatever the previous status was."""
    return CarpoolStatus.ACTIVE
