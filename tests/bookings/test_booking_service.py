from datetime import date
from decimal import Decimal

import pytest

from bookings_service.database import Base, SessionLocal, engine
from bookings_service.models import Booking, BookingStatus, Guest
from bookings_service.room_client import RoomSnapshot
from bookings_service.schemas import BookingFilter
from bookings_service.service import BookingService
from common.errors import ErrorKind

TODAY = date(2025, 3, 1)


class StubRooms:
    def __init__(self, *rooms):
        self.rooms = {room.id: room for room in rooms}
        self.calls = []

    def get_room(self, room_id):
        self.calls.append(room_id)
        return self.rooms.get(room_id)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rooms():
    return StubRooms(
        RoomSnapshot(1, "101", "Single", Decimal("80.00")),
        RoomSnapshot(2, "102", "Double", Decimal("120.50")),
    )


@pytest.fixture
def service(db, rooms):
    return BookingService(db, rooms, clock=lambda: TODAY)


@pytest.fixture
def guest_id(db):
    guest = Guest(first_name="Grace", last_name="Hopper", email="grace@example.com", phone="555-0199")
    db.add(guest)
    db.commit()
    return guest.id


def count_bookings() -> int:
    session = SessionLocal()
    try:
        return session.query(Booking).count()
    finally:
        session.close()


def test_create_booking_snapshots_room_price(service, guest_id):
    result = service.create_booking(guest_id, 2, date(2025, 3, 10), date(2025, 3, 12))

    assert result.success
    booking = result.data
    assert booking.status == BookingStatus.PENDING
    assert booking.room_number == "102"
    assert booking.price_per_night == Decimal("120.50")
    assert booking.number_of_nights == 2
    assert booking.total_amount == Decimal("241.00")
    assert booking.guest.email == "grace@example.com"


def test_create_booking_reports_all_validation_errors(service, rooms):
    result = service.create_booking(0, 0, date(2025, 2, 1), date(2025, 1, 30))

    assert not result.success
    assert result.kind == ErrorKind.VALIDATION
    assert "Guest ID must be a positive number" in result.errors
    assert "Room ID must be a positive number" in result.errors
    assert "Check-in date cannot be in the past" in result.errors
    assert "Check-out date must be after check-in date" in result.errors
    # invalid requests never reach the rooms service
    assert rooms.calls == []
    assert count_bookings() == 0


def test_same_day_check_in_is_allowed(service, guest_id):
    result = service.create_booking(guest_id, 1, TODAY, date(2025, 3, 2))
    assert result.success
    assert result.data.number_of_nights == 1


def test_stay_longer_than_a_year_is_rejected(service, guest_id):
    result = service.create_booking(guest_id, 1, date(2025, 3, 1), date(2026, 3, 2))
    assert not result.success
    assert "Booking cannot exceed 365 nights" in result.errors


def test_overlap_is_a_conflict(service, guest_id):
    assert service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 15)).success

    result = service.create_booking(guest_id, 1, date(2025, 3, 14), date(2025, 3, 16))
    assert not result.success
    assert result.kind == ErrorKind.CONFLICT
    assert result.message == "Room is not available for the selected dates"
    assert count_bookings() == 1


def test_booking_contained_in_existing_stay_is_a_conflict(service, guest_id):
    assert service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 20)).success
    result = service.create_booking(guest_id, 1, date(2025, 3, 12), date(2025, 3, 13))
    assert result.kind == ErrorKind.CONFLICT


def test_update_into_overlap_rolls_back(service, guest_id, db):
    first = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    service.create_booking(guest_id, 1, date(2025, 3, 12), date(2025, 3, 14))

    result = service.update_booking(first.id, check_out=date(2025, 3, 13))
    assert not result.success
    assert result.kind == ErrorKind.CONFLICT

    reloaded = service.get_booking(first.id).data
    assert reloaded.check_out_date == date(2025, 3, 12)
    assert reloaded.number_of_nights == 2
    assert reloaded.total_amount == Decimal("160.00")


def test_update_without_changes_keeps_amounts(service, guest_id, rooms):
    booking = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    rooms.calls.clear()

    result = service.update_booking(booking.id, room_id=1)
    assert result.success
    assert result.data.total_amount == Decimal("160.00")
    assert rooms.calls == []


def test_update_missing_booking_is_not_found(service):
    result = service.update_booking(404, check_in=date(2025, 3, 10))
    assert result.kind == ErrorKind.NOT_FOUND
    assert result.message == "Booking with ID 404 not found"


def test_unknown_room_is_not_found(service, guest_id):
    result = service.create_booking(guest_id, 99, date(2025, 3, 10), date(2025, 3, 12))
    assert result.kind == ErrorKind.NOT_FOUND
    assert result.message == "Room with ID 99 not found"


def test_persistence_failure_rolls_back(service, guest_id, monkeypatch):
    def broken_flush():
        raise RuntimeError("disk full")

    monkeypatch.setattr(service.uow, "save_changes", broken_flush)

    result = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12))
    assert not result.success
    assert result.kind == ErrorKind.INFRASTRUCTURE
    assert result.message == "An error occurred while trying to create booking"
    assert "disk full" in result.errors
    assert not service.uow.in_transaction
    assert count_bookings() == 0


def test_pending_booking_can_check_in_directly_on_arrival(db, rooms, guest_id):
    service = BookingService(db, rooms, clock=lambda: date(2025, 3, 10))
    booking = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data

    result = service.check_in_booking(booking.id)
    assert result.success
    assert result.data.status == BookingStatus.CHECKED_IN


def test_checked_in_booking_cannot_be_cancelled(db, rooms, guest_id):
    service = BookingService(db, rooms, clock=lambda: date(2025, 3, 10))
    booking = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    service.check_in_booking(booking.id)

    result = service.cancel_booking(booking.id, "No show")
    assert result.kind == ErrorKind.CONFLICT
    assert "checked_in" in result.message
    assert service.get_booking(booking.id).data.status == BookingStatus.CHECKED_IN


def test_cancelling_releases_the_room(service, guest_id):
    booking = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    service.confirm_booking(booking.id)

    cancelled = service.cancel_booking(booking.id, "Flight cancelled")
    assert cancelled.success
    assert cancelled.data.cancellation_reason == "Flight cancelled"
    assert cancelled.data.cancelled_at is not None

    availability = service.check_availability(1, date(2025, 3, 10), date(2025, 3, 12))
    assert availability.data.available is True


def test_check_availability_validates_dates(service):
    result = service.check_availability(1, date(2025, 3, 12), date(2025, 3, 12))
    assert result.kind == ErrorKind.VALIDATION


def test_upcoming_requires_positive_window(service):
    result = service.get_upcoming_bookings(0)
    assert result.kind == ErrorKind.VALIDATION


def test_room_bookings_include_every_status(service, guest_id):
    first = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    service.cancel_booking(first.id)
    service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12))

    result = service.get_room_bookings(1)
    assert len(result.data) == 2


def test_list_bookings_clamps_page_size(service, guest_id):
    service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12))

    page = service.list_bookings(BookingFilter(page_size=1000)).data
    assert page.page_size == 100
    assert page.total_count == 1
    assert page.total_pages == 1
    assert not page.has_next


def test_out_of_service_room_cannot_be_booked(db, guest_id):
    rooms = StubRooms(
        RoomSnapshot(1, "101", "Single", Decimal("80.00")),
        RoomSnapshot(3, "103", "Suite", Decimal("300.00"), is_available=False),
    )
    service = BookingService(db, rooms, clock=lambda: TODAY)

    result = service.create_booking(guest_id, 3, date(2025, 3, 10), date(2025, 3, 12))
    assert result.kind == ErrorKind.CONFLICT
    assert result.message == "Room is currently out of service"
    assert count_bookings() == 0

    availability = service.check_availability(3, date(2025, 3, 10), date(2025, 3, 12)).data
    assert availability.available is False
    assert availability.reason == "Room is currently out of service"

    booking = service.create_booking(guest_id, 1, date(2025, 3, 10), date(2025, 3, 12)).data
    moved = service.update_booking(booking.id, room_id=3)
    assert moved.kind == ErrorKind.CONFLICT
    assert service.get_booking(booking.id).data.room_id == 1
