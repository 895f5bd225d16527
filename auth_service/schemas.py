from pydantic import BaseModel, ConfigDict, EmailStr, Field

from common.timestamps import UtcDatetime

from .models import UserRole


# ---------- Input schemas ----------

class UserCreate(BaseModel):
    """
    Schema for staff registration input.
    Registration does NOT accept role; it is assigned internally.
    """
    full_name: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserRoleUpdate(BaseModel):
    """
    Schema used by admins to change a user's role.
    """
    role: UserRole


# ---------- Output schemas ----------

class UserRead(BaseModel):
    """
    Schema returned when reading user information.

    Exposes safe, non-sensitive fields and hides the password hash.
    """
    id: int
    full_name: str
    username: str
    email: EmailStr
    role: UserRole
    is_active: bool
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


class TokenPair(BaseModel):
    """
    Schema for login and refresh responses.

    Attributes
    ----------
    access_token : str
        Encoded JWT.
    refresh_token : str
        Opaque token exchanged at /auth/refresh.
    token_type : str
        Token type, usually 'bearer'.
    expires_in : int
        Access token lifetime in seconds.
    """
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
