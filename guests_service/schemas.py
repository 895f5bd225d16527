from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from common.pagination import DEFAULT_PAGE_SIZE
from common.timestamps import UtcDatetime


class GuestSortField(str, Enum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    CREATED = "created"


class GuestBase(BaseModel):
    """
    Base schema for guest contact information.
    """
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=30)
    address: Optional[str] = Field(default=None, max_length=500)
    date_of_birth: Optional[date] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """
        Lowercase the address so uniqueness and lookups ignore case.
        """
        return v.lower()


class GuestCreate(GuestBase):
    pass


class GuestUpdate(BaseModel):
    """
    Schema for partial updates to a guest.

    All fields are optional and only provided values will be updated.
    """
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=3, max_length=30)
    address: Optional[str] = Field(default=None, max_length=500)
    date_of_birth: Optional[date] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v is not None else v


class GuestRead(GuestBase):
    id: int
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)


class GuestFilter(BaseModel):
    search_term: Optional[str] = None
    sort_by: Optional[GuestSortField] = None
    sort_order: Optional[str] = Field(default=None, pattern="^(asc|desc)$")
    page_number: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
