from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, contains_eager, joinedload

from common.pagination import paginate
from common.result import Page

from . import models
from .schemas import BookingFilter, BookingSortField, SortOrder

Booking = models.Booking
Guest = models.Guest

SORT_COLUMNS = {
    BookingSortField.CHECK_IN: (Booking.check_in_date,),
    BookingSortField.CHECK_OUT: (Booking.check_out_date,),
    BookingSortField.AMOUNT: (Booking.total_amount,),
    BookingSortField.STATUS: (Booking.status,),
    BookingSortField.ROOM_NUMBER: (Booking.room_number,),
    BookingSortField.GUEST_NAME: (Guest.last_name, Guest.first_name),
    BookingSortField.CREATED: (Booking.created_at,),
}


class BookingRepository:
    """
    Persistence and queries for bookings.

    Parameters
    ----------
    db : Session
        Request-scoped session; transactions are driven by the caller's
        unit of work, never by the repository.
    """

    def __init__(self, db: Session):
        self.db = db

    def _with_guest(self) -> Query:
        return self.db.query(Booking).options(joinedload(Booking.guest))

    def get_by_id(self, booking_id: int) -> Optional[models.Booking]:
        return self._with_guest().filter(Booking.id == booking_id).first()

    def add(self, booking: models.Booking) -> models.Booking:
        self.db.add(booking)
        return booking

    def refresh(self, booking: models.Booking) -> models.Booking:
        self.db.refresh(booking)
        return booking

    def get_by_guest_id(self, guest_id: int) -> List[models.Booking]:
        return (
            self._with_guest()
            .filter(Booking.guest_id == guest_id)
            .order_by(Booking.check_in_date.desc())
            .all()
        )

    def get_by_room_id(self, room_id: int) -> List[models.Booking]:
        return (
            self._with_guest()
            .filter(Booking.room_id == room_id)
            .order_by(Booking.check_in_date.desc())
            .all()
        )

    def get_upcoming(self, today: date, days: int) -> List[models.Booking]:
        """
        Non-cancelled bookings whose check-in falls within ``[today, today + days]``.
        """
        return (
            self._with_guest()
            .filter(Booking.status != models.BookingStatus.CANCELLED)
            .filter(Booking.check_in_date >= today)
            .filter(Booking.check_in_date <= today + timedelta(days=days))
            .order_by(Booking.check_in_date.asc())
            .all()
        )

    def get_active(self, today: date) -> List[models.Booking]:
        """
        Checked-in bookings whose stay window contains ``today``.
        """
        return (
            self._with_guest()
            .filter(Booking.status == models.BookingStatus.CHECKED_IN)
            .filter(Booking.check_in_date <= today)
            .filter(Booking.check_out_date >= today)
            .order_by(Booking.check_out_date.asc())
            .all()
        )

    def is_room_available(
        self,
        room_id: int,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """
        Check if no non-cancelled booking of the room overlaps the interval.

        Overlaps are detected for all bookings in the given room where:
        - status != cancelled
        - existing.check_in_date < check_out
        - existing.check_out_date > check_in

        so a stay may start on the day another one ends.

        Parameters
        ----------
        room_id : int
            Room identifier.
        check_in : date
            Proposed check-in date.
        check_out : date
            Proposed check-out date.
        exclude_booking_id : Optional[int]
            Booking to ignore, used when a booking is being updated.

        Returns
        -------
        bool
            True if the room is free for the whole interval.
        """
        q = (
            self.db.query(Booking)
            .filter(Booking.room_id == room_id)
            .filter(Booking.status != models.BookingStatus.CANCELLED)
            .filter(Booking.check_in_date < check_out)
            .filter(Booking.check_out_date > check_in)
        )

        if exclude_booking_id is not None:
            q = q.filter(Booking.id != exclude_booking_id)

        return not self.db.query(q.exists()).scalar()

    def get_filtered(self, filters: BookingFilter) -> Page:
        """
        Apply filters, sorting and pagination to the booking listing.

        Returns
        -------
        Page
            The requested slice plus the total number of matching rows.
        """
        q = self.db.query(Booking).join(Booking.guest).options(contains_eager(Booking.guest))

        if filters.search_term:
            term = f"%{filters.search_term.strip()}%"
            q = q.filter(
                or_(
                    Booking.room_number.ilike(term),
                    Guest.first_name.ilike(term),
                    Guest.last_name.ilike(term),
                    Guest.email.ilike(term),
                )
            )

        if filters.guest_id is not None:
            q = q.filter(Booking.guest_id == filters.guest_id)
        if filters.room_id is not None:
            q = q.filter(Booking.room_id == filters.room_id)
        if filters.status is not None:
            q = q.filter(Booking.status == filters.status)
        if filters.room_type:
            q = q.filter(Booking.room_type == filters.room_type)

        if filters.check_in_from is not None:
            q = q.filter(Booking.check_in_date >= filters.check_in_from)
        if filters.check_in_to is not None:
            q = q.filter(Booking.check_in_date <= filters.check_in_to)
        if filters.check_out_from is not None:
            q = q.filter(Booking.check_out_date >= filters.check_out_from)
        if filters.check_out_to is not None:
            q = q.filter(Booking.check_out_date <= filters.check_out_to)
        if filters.min_amount is not None:
            q = q.filter(Booking.total_amount >= filters.min_amount)
        if filters.max_amount is not None:
            q = q.filter(Booking.total_amount <= filters.max_amount)
        if filters.created_from is not None:
            q = q.filter(Booking.created_at >= filters.created_from)
        if filters.created_to is not None:
            q = q.filter(Booking.created_at <= filters.created_to)

        q = q.order_by(*self._ordering(filters))
        return paginate(q, filters.page_number, filters.page_size)

    @staticmethod
    def _ordering(filters: BookingFilter) -> list:
        if filters.sort_by is None:
            descending = filters.sort_order != SortOrder.ASC
            columns = SORT_COLUMNS[BookingSortField.CREATED]
        else:
            descending = filters.sort_order == SortOrder.DESC
            columns = SORT_COLUMNS[filters.sort_by]
        ordering = [c.desc() if descending else c.asc() for c in columns]
        # stable paging across equal sort keys
        ordering.append(Booking.id.desc() if descending else Booking.id.asc())
        return ordering


class GuestRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, guest_id: int) -> Optional[models.Guest]:
        return self.db.query(Guest).filter(Guest.id == guest_id).first()

    def get_by_email(self, email: str) -> Optional[models.Guest]:
        return self.db.query(Guest).filter(func.lower(Guest.email) == email.lower()).first()

    def add(self, guest: models.Guest) -> models.Guest:
        self.db.add(guest)
        return guest

    def delete(self, guest: models.Guest) -> None:
        self.db.delete(guest)

    def has_bookings(self, guest_id: int) -> bool:
        q = self.db.query(Booking).filter(Booking.guest_id == guest_id)
        return self.db.query(q.exists()).scalar()

    def query(self) -> Query:
        return self.db.query(Guest)
