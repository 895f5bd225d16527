import logging
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from common.errors import (
    ConflictError,
    ErrorKind,
    InvalidStatusError,
    NotFoundError,
    ServiceError,
    ValidationFailed,
)
from common.result import Page, ServiceResult
from common.unit_of_work import UnitOfWork

from . import models
from .models import BookingStatus, utcnow
from .repository import BookingRepository, GuestRepository
from .room_client import RoomClient, RoomSnapshot
from .schemas import AvailabilityRead, BookingFilter
from .state_machine import ensure_transition
from .validation import calculate_nights, validate_dates, validate_identifiers

logger = logging.getLogger(__name__)

ROOM_UNAVAILABLE = "Room is not available for the selected dates"
ROOM_OUT_OF_SERVICE = "Room is currently out of service"


class BookingService:
    """
    Booking lifecycle: creation, updates, status transitions and queries.

    Each mutating operation runs in a single unit-of-work transaction and
    every public method returns a ServiceResult instead of raising.

    Parameters
    ----------
    db : Session
        Request-scoped session.
    room_client : RoomClient
        Room lookup used to validate rooms and snapshot their attributes.
    clock : Callable[[], date]
        Returns "today"; injectable for tests.
    """

    def __init__(self, db: Session, room_client: RoomClient, clock: Callable[[], date] = date.today):
        self.bookings = BookingRepository(db)
        self.guests = GuestRepository(db)
        self.uow = UnitOfWork(db)
        self.room_client = room_client
        self.clock = clock

    # ---------- plumbing ----------

    def _execute(self, operation: str, work: Callable[[], ServiceResult], **context) -> ServiceResult:
        self.uow.begin_transaction()
        try:
            result = work()
            self.uow.commit_transaction()
            return result
        except ServiceError as exc:
            self.uow.rollback_transaction()
            logger.info("%s rejected (%s): %s", operation, context, exc.message)
            return ServiceResult.from_error(exc)
        except Exception as exc:
            self.uow.rollback_transaction()
            logger.exception("%s failed (%s)", operation, context)
            return ServiceResult.fail(
                f"An error occurred while trying to {operation}",
                [str(exc)],
                ErrorKind.INFRASTRUCTURE,
            )

    def _query(self, operation: str, work: Callable[[], ServiceResult], **context) -> ServiceResult:
        try:
            return work()
        except ServiceError as exc:
            return ServiceResult.from_error(exc)
        except Exception as exc:
            logger.exception("%s failed (%s)", operation, context)
            return ServiceResult.fail(
                f"An error occurred while trying to {operation}",
                [str(exc)],
                ErrorKind.INFRASTRUCTURE,
            )

    def _get_booking(self, booking_id: int) -> models.Booking:
        booking = self.bookings.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    def _get_room(self, room_id: int) -> RoomSnapshot:
        room = self.room_client.get_room(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    def _get_bookable_room(self, room_id: int) -> RoomSnapshot:
        room = self._get_room(room_id)
        if not room.is_available:
            raise ConflictError(ROOM_OUT_OF_SERVICE)
        return room

    def _check_dates(self, check_in: date, check_out: date) -> None:
        valid, errors = validate_dates(check_in, check_out, self.clock())
        if not valid:
            raise ValidationFailed("Invalid booking dates", errors)

    def _set_status(self, booking: models.Booking, target: BookingStatus) -> None:
        ensure_transition(booking.status, target)
        booking.status = target
        booking.updated_at = utcnow()

    # ---------- commands ----------

    def create_booking(self, guest_id: int, room_id: int, check_in: date, check_out: date) -> ServiceResult:
        """
        Create a pending booking after checking guest, room and availability.
        """

        def work() -> ServiceResult:
            errors = validate_identifiers(guest_id, room_id)
            errors += validate_dates(check_in, check_out, self.clock())[1]
            if errors:
                raise ValidationFailed("Invalid booking request", errors)

            if self.guests.get_by_id(guest_id) is None:
                raise NotFoundError("Guest", guest_id)

            room = self._get_bookable_room(room_id)

            if not self.bookings.is_room_available(room_id, check_in, check_out):
                raise ConflictError(ROOM_UNAVAILABLE)

            nights = calculate_nights(check_in, check_out)
            booking = models.Booking(
                room_id=room.id,
                room_number=room.room_number,
                room_type=room.room_type,
                price_per_night=room.price_per_night,
                guest_id=guest_id,
                check_in_date=check_in,
                check_out_date=check_out,
                number_of_nights=nights,
                total_amount=nights * room.price_per_night,
                status=BookingStatus.PENDING,
                created_at=utcnow(),
            )
            self.bookings.add(booking)
            self.uow.save_changes()

            created = self.bookings.get_by_id(booking.id)
            logger.info("Booking %s created for guest %s in room %s", created.id, guest_id, room_id)
            return ServiceResult.ok(created, "Booking created successfully")

        return self._execute("create booking", work, guest_id=guest_id, room_id=room_id)

    def update_booking(
        self,
        booking_id: int,
        room_id: Optional[int] = None,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
    ) -> ServiceResult:
        """
        Change the room and/or dates of an open booking.

        Amounts and the room snapshot are only recomputed when the room or
        the dates actually change.
        """

        def work() -> ServiceResult:
            booking = self._get_booking(booking_id)
            if booking.status in (BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT):
                raise InvalidStatusError(
                    f"Invalid status: cannot update a booking with status '{booking.status.value}'"
                )

            new_room_id = room_id if room_id is not None else booking.room_id
            new_check_in = check_in if check_in is not None else booking.check_in_date
            new_check_out = check_out if check_out is not None else booking.check_out_date

            room_changed = new_room_id != booking.room_id
            dates_changed = (
                new_check_in != booking.check_in_date or new_check_out != booking.check_out_date
            )

            if dates_changed:
                self._check_dates(new_check_in, new_check_out)

            if room_changed or dates_changed:
                if not self.bookings.is_room_available(
                    new_room_id, new_check_in, new_check_out, exclude_booking_id=booking.id
                ):
                    raise ConflictError(ROOM_UNAVAILABLE)

            if room_changed:
                room = self._get_bookable_room(new_room_id)
                booking.room_id = room.id
                booking.room_number = room.room_number
                booking.room_type = room.room_type
                booking.price_per_night = room.price_per_night

            if room_changed or dates_changed:
                booking.check_in_date = new_check_in
                booking.check_out_date = new_check_out
                booking.number_of_nights = calculate_nights(new_check_in, new_check_out)
                booking.total_amount = booking.number_of_nights * booking.price_per_night

            booking.updated_at = utcnow()
            self.uow.save_changes()
            return ServiceResult.ok(self.bookings.refresh(booking), "Booking updated successfully")

        return self._execute("update booking", work, booking_id=booking_id)

    def cancel_booking(self, booking_id: int, reason: Optional[str] = None) -> ServiceResult:
        def work() -> ServiceResult:
            booking = self._get_booking(booking_id)
            if booking.status == BookingStatus.CANCELLED:
                raise InvalidStatusError("Booking is already cancelled")
            if booking.status == BookingStatus.CHECKED_OUT:
                raise InvalidStatusError("Cannot cancel a booking that has already been checked out")

            self._set_status(booking, BookingStatus.CANCELLED)
            booking.cancellation_reason = reason
            booking.cancelled_at = booking.updated_at
            self.uow.save_changes()
            return ServiceResult.ok(booking, "Booking cancelled successfully")

        return self._execute("cancel booking", work, booking_id=booking_id)

    def confirm_booking(self, booking_id: int) -> ServiceResult:
        def work() -> ServiceResult:
            booking = self._get_booking(booking_id)
            self._set_status(booking, BookingStatus.CONFIRMED)
            self.uow.save_changes()
            return ServiceResult.ok(booking, "Booking confirmed successfully")

        return self._execute("confirm booking", work, booking_id=booking_id)

    def check_in_booking(self, booking_id: int) -> ServiceResult:
        def work() -> ServiceResult:
            booking = self._get_booking(booking_id)
            ensure_transition(booking.status, BookingStatus.CHECKED_IN)
            today = self.clock()
            if today < booking.check_in_date:
                raise ValidationFailed(
                    f"Check-in not allowed before the check-in date ({booking.check_in_date.isoformat()})"
                )
            self._set_status(booking, BookingStatus.CHECKED_IN)
            self.uow.save_changes()
            return ServiceResult.ok(booking, "Guest checked in successfully")

        return self._execute("check in booking", work, booking_id=booking_id)

    def check_out_booking(self, booking_id: int) -> ServiceResult:
        def work() -> ServiceResult:
            booking = self._get_booking(booking_id)
            self._set_status(booking, BookingStatus.CHECKED_OUT)
            self.uow.save_changes()
            return ServiceResult.ok(booking, "Guest checked out successfully")

        return self._execute("check out booking", work, booking_id=booking_id)

    # ---------- queries ----------

    def check_availability(self, room_id: int, check_in: date, check_out: date) -> ServiceResult:
        def work() -> ServiceResult:
            self._check_dates(check_in, check_out)
            room = self._get_room(room_id)
            if not room.is_available:
                available, reason = False, ROOM_OUT_OF_SERVICE
            elif self.bookings.is_room_available(room_id, check_in, check_out):
                available, reason = True, "Room is available for the selected dates"
            else:
                available, reason = False, "Room is already booked for the selected dates"
            return ServiceResult.ok(
                AvailabilityRead(
                    room_id=room_id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    available=available,
                    reason=reason,
                ),
                reason,
            )

        return self._query("check availability", work, room_id=room_id)

    def get_booking(self, booking_id: int) -> ServiceResult:
        return self._query(
            "retrieve booking",
            lambda: ServiceResult.ok(self._get_booking(booking_id), "Booking retrieved successfully"),
            booking_id=booking_id,
        )

    def list_bookings(self, filters: BookingFilter) -> ServiceResult[Page]:
        return self._query(
            "retrieve bookings",
            lambda: ServiceResult.ok(self.bookings.get_filtered(filters), "Bookings retrieved successfully"),
        )

    def get_guest_bookings(self, guest_id: int) -> ServiceResult[List[models.Booking]]:
        def work() -> ServiceResult:
            if self.guests.get_by_id(guest_id) is None:
                raise NotFoundError("Guest", guest_id)
            return ServiceResult.ok(
                self.bookings.get_by_guest_id(guest_id), "Guest bookings retrieved successfully"
            )

        return self._query("retrieve guest bookings", work, guest_id=guest_id)

    def get_room_bookings(self, room_id: int) -> ServiceResult[List[models.Booking]]:
        return self._query(
            "retrieve room bookings",
            lambda: ServiceResult.ok(
                self.bookings.get_by_room_id(room_id), "Room bookings retrieved successfully"
            ),
            room_id=room_id,
        )

    def get_upcoming_bookings(self, days: int = 7) -> ServiceResult[List[models.Booking]]:
        def work() -> ServiceResult:
            if days < 1:
                raise ValidationFailed("Days must be at least 1")
            return ServiceResult.ok(
                self.bookings.get_upcoming(self.clock(), days), "Upcoming bookings retrieved successfully"
            )

        return self._query("retrieve upcoming bookings", work, days=days)

    def get_active_bookings(self) -> ServiceResult[List[models.Booking]]:
        return self._query(
            "retrieve active bookings",
            lambda: ServiceResult.ok(
                self.bookings.get_active(self.clock()), "Active bookings retrieved successfully"
            ),
        )
