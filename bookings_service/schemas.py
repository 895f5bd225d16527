from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.pagination import DEFAULT_PAGE_SIZE
from common.timestamps import UtcDatetime

from .models import BookingStatus


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BookingSortField(str, Enum):
    """
    Sort keys accepted by the booking listing.
    """
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    AMOUNT = "amount"
    STATUS = "status"
    ROOM_NUMBER = "room_number"
    GUEST_NAME = "guest_name"
    CREATED = "created"


# ---------- Input schemas ----------

class BookingCreate(BaseModel):
    """
    Schema for creating a new booking.

    Dates are date-only; the check-out day is not charged.
    """
    room_id: int = Field(..., ge=1)
    guest_id: int = Field(..., ge=1)
    check_in_date: date
    check_out_date: date


class BookingUpdate(BaseModel):
    """
    Schema for partially updating an existing booking.

    All fields are optional; only provided values will be applied.
    """
    room_id: Optional[int] = Field(default=None, ge=1)
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class AvailabilityRequest(BaseModel):
    room_id: int = Field(..., ge=1)
    check_in_date: date
    check_out_date: date


class BookingFilter(BaseModel):
    """
    Query parameters for the paginated booking listing.

    Every field is optional. Ranges are inclusive on both ends.
    """
    search_term: Optional[str] = None
    guest_id: Optional[int] = None
    room_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    room_type: Optional[str] = None
    check_in_from: Optional[date] = None
    check_in_to: Optional[date] = None
    check_out_from: Optional[date] = None
    check_out_to: Optional[date] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None
    sort_by: Optional[BookingSortField] = None
    sort_order: Optional[SortOrder] = None
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)


# ---------- Output schemas ----------

class GuestSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class BookingRead(BaseModel):
    """
    Schema returned when reading booking information.

    Includes the room snapshot, server-computed amounts and a short guest
    summary.
    """
    id: int
    room_id: int
    room_number: str
    room_type: str
    price_per_night: Decimal
    guest_id: int
    guest: Optional[GuestSummary] = None
    check_in_date: date
    check_out_date: date
    number_of_nights: int
    total_amount: Decimal
    status: BookingStatus
    cancellation_reason: Optional[str] = None
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None
    cancelled_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)


class AvailabilityRead(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    available: bool
    reason: str
