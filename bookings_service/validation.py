from datetime import date
from typing import List, Tuple

MIN_NIGHTS = 1
MAX_NIGHTS = 365


def calculate_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def validate_dates(check_in: date, check_out: date, today: date) -> Tuple[bool, List[str]]:
    """
    Check a stay interval against the booking date rules.

    All rules are evaluated; the returned list holds every violation.

    Parameters
    ----------
    check_in : date
        First night of the stay.
    check_out : date
        Departure day (not charged).
    today : date
        Reference date for the "not in the past" rule.

    Returns
    -------
    Tuple[bool, List[str]]
        ``(valid, errors)``.
    """
    errors: List[str] = []

    if check_in < today:
        errors.append("Check-in date cannot be in the past")

    if check_out <= check_in:
        errors.append("Check-out date must be after check-in date")

    nights = calculate_nights(check_in, check_out)
    if nights < MIN_NIGHTS:
        errors.append(f"Booking must be for at least {MIN_NIGHTS} night")
    elif nights > MAX_NIGHTS:
        errors.append(f"Booking cannot exceed {MAX_NIGHTS} nights")

    return not errors, errors


def validate_identifiers(guest_id: int, room_id: int) -> List[str]:
    errors: List[str] = []
    if guest_id is None or guest_id <= 0:
        errors.append("Guest ID must be a positive number")
    if room_id is None or room_id <= 0:
        errors.append("Room ID must be a positive number")
    return errors
