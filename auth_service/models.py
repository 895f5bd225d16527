from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, PyEnum):
    """
    Enumeration of staff roles.

    Roles
    -----
    admin
        Full access, including user management.
    manager
        Manages rooms, guests and bookings.
    receptionist
        Front-desk work: guests, bookings, check-in and check-out.
    """
    ADMIN = "admin"
    MANAGER = "manager"
    RECEPTIONIST = "receptionist"


class User(Base):
    """
    SQLAlchemy model for staff accounts.

    Attributes
    ----------
    id : int
        Primary key.
    username : str
        Unique login name.
    email : str
        Unique email address.
    full_name : str
        Display name.
    hashed_password : str
        Bcrypt-hashed password.
    role : UserRole
        Role controlling access privileges.
    is_active : bool
        Inactive users cannot log in or refresh tokens.
    created_at : datetime
        Timestamp of user creation.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.RECEPTIONIST)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")


class RefreshToken(Base):
    """
    Opaque refresh token issued at login and rotated on every refresh.
    """
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")
