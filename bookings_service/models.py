from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus(str, PyEnum):
    """
    Enumeration of possible booking statuses.

    Values
    ------
    pending
        Booking has been created but not yet confirmed.
    confirmed
        Booking has been confirmed and holds the room.
    checked_in
        Guest is currently staying in the room.
    checked_out
        Stay is finished. Terminal.
    cancelled
        Booking has been cancelled and no longer blocks the room. Terminal.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class Guest(Base):
    """
    SQLAlchemy model representing a hotel guest.

    Attributes
    ----------
    id : int
        Primary key.
    first_name, last_name : str
        Guest name.
    email : str
        Unique contact email.
    phone : str
        Contact phone number.
    address : str
        Optional postal address.
    date_of_birth : date
        Optional date of birth.
    bookings : List[Booking]
        Bookings made for this guest. A guest with bookings cannot be deleted.
    """
    __tablename__ = "guests"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=False)
    address = Column(String(500), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    bookings = relationship("Booking", back_populates="guest", passive_deletes="all")


class Booking(Base):
    """
    SQLAlchemy model representing a room booking.

    Room number, type and nightly price are copied from the rooms service when
    the booking is created (or its room changes), so later room edits do not
    alter historical bookings.

    Attributes
    ----------
    id : int
        Primary key.
    room_id : int
        Identifier of the booked room in the rooms service.
    room_number, room_type : str
        Room snapshot.
    price_per_night : Decimal
        Nightly price at booking time.
    guest_id : int
        Owning guest.
    check_in_date, check_out_date : date
        Stay interval, check-in inclusive and check-out exclusive.
    number_of_nights : int
        Derived stay length.
    total_amount : Decimal
        number_of_nights * price_per_night.
    status : BookingStatus
        Lifecycle status.
    cancellation_reason : str
        Optional reason given on cancellation.
    created_at, updated_at, cancelled_at : datetime
        Audit timestamps.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, index=True, nullable=False)
    room_number = Column(String(20), nullable=False)
    room_type = Column(String(50), nullable=False)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    guest_id = Column(
        Integer,
        ForeignKey("guests.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    check_in_date = Column(Date, index=True, nullable=False)
    check_out_date = Column(Date, index=True, nullable=False)
    number_of_nights = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    cancellation_reason = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    guest = relationship("Guest", back_populates="bookings")
