from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.pagination import DEFAULT_PAGE_SIZE
from common.timestamps import UtcDatetime


class RoomSortField(str, Enum):
    ROOM_NUMBER = "room_number"
    PRICE = "price"
    CAPACITY = "capacity"
    TYPE = "type"
    CREATED = "created"


class RoomBase(BaseModel):
    """
    Base schema for room information.

    Shared fields used when creating and reading rooms.
    """
    room_number: str = Field(..., min_length=1, max_length=20)
    room_type: str = Field(..., min_length=1, max_length=50)
    price_per_night: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    capacity: int = Field(..., ge=1)
    description: Optional[str] = Field(default=None, max_length=1000)


class RoomCreate(RoomBase):
    is_available: bool = True


class RoomUpdate(BaseModel):
    """
    Schema for partial updates to a room.

    All fields are optional and only provided values will be updated.
    """
    room_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    room_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    price_per_night: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    is_available: Optional[bool] = None


class RoomAvailabilityUpdate(BaseModel):
    is_available: bool


class RoomRead(RoomBase):
    """
    Schema returned when reading room data.

    Extends RoomBase with the identifier, availability flag and timestamps.
    """
    id: int
    is_available: bool
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)


class RoomFilter(BaseModel):
    search_term: Optional[str] = None
    room_type: Optional[str] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    min_capacity: Optional[int] = Field(default=None, ge=1)
    is_available: Optional[bool] = None
    sort_by: Optional[RoomSortField] = None
    sort_order: Optional[str] = Field(default=None, pattern="^(asc|desc)$")
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
