from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(Base):
    """
    SQLAlchemy model representing a hotel room.

    Attributes
    ----------
    id : int
        Primary key.
    room_number : str
        Unique, human-facing room number (e.g. '101').
    room_type : str
        Category such as 'Single', 'Double' or 'Suite'.
    price_per_night : Decimal
        Current nightly rate. Bookings keep their own copy.
    capacity : int
        Maximum number of guests.
    is_available : bool
        Whether the room can currently be offered (not under maintenance).
    description : str
        Optional free text.
    created_at, updated_at : datetime
        Audit timestamps.
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(20), unique=True, nullable=False, index=True)
    room_type = Column(String(50), nullable=False, index=True)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    description = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
