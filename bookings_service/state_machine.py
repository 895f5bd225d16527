from typing import Dict, FrozenSet

from common.errors import InvalidStatusError

from .models import BookingStatus

TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

_ACTIONS = {
    BookingStatus.CONFIRMED: "confirm",
    BookingStatus.CHECKED_IN: "check in",
    BookingStatus.CHECKED_OUT: "check out",
    BookingStatus.CANCELLED: "cancel",
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    """
    Raise InvalidStatusError unless ``current -> target`` is allowed.
    """
    if not can_transition(current, target):
        action = _ACTIONS.get(target, f"move to {target.value}")
        raise InvalidStatusError(
            f"Invalid status: cannot {action} a booking with status '{current.value}'"
        )
