import logging
import re
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, FastAPI, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.orm import Session

from common.logging_config import configure_logging
from common.responses import ApiResponse, envelope, install_exception_handlers

from . import models, schemas
from .auth import (
    authenticate_user,
    get_current_user,
    get_valid_refresh_token,
    hash_password,
    issue_token_pair,
    require_user_roles,
)
from .database import Base, engine, get_db
from .models import UserRole
from .rate_limiter import ip_rate_limiter

# Create tables on startup
Base.metadata.create_all(bind=engine)

SERVICE_NAME = "auth"
configure_logging(SERVICE_NAME)
logger = logging.getLogger(__name__)

app = FastAPI(title="Auth Service", version="1.0.0")
router = APIRouter(prefix="/api")
install_exception_handlers(app, SERVICE_NAME)


@app.get("/")
def root():
    return {"service": SERVICE_NAME, "status": "running"}


def user_payload(user: models.User) -> dict:
    return schemas.UserRead.model_validate(user).model_dump(mode="json")


# ---------- Registration ----------

MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (lambda pw: len(pw) >= MIN_PASSWORD_LENGTH, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"),
    (lambda pw: re.search(r"[A-Za-z]", pw) is not None, "Password must contain at least one letter"),
    (lambda pw: re.search(r"\d", pw) is not None, "Password must contain at least one digit"),
)


def check_password_strength(password: str) -> None:
    """
    Raise HTTP 400 naming the first password rule that ``password`` breaks.
    """
    for rule, message in PASSWORD_RULES:
        if not rule(password):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post(
    "/auth/register",
    response_model=ApiResponse[schemas.UserRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ip_rate_limiter)],
)
def register_user(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Create a staff account.

    The very first account is made an admin so the system can be
    bootstrapped; everyone after that starts as a receptionist and is
    promoted by an admin. Registration never accepts a role from the client.

    Raises
    ------
    HTTPException
        400 when the username or email is taken or the password is weak.
    """
    clash = (
        db.query(models.User.id)
        .filter(or_(models.User.username == user_in.username, models.User.email == user_in.email))
        .first()
    )
    if clash is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already exists",
        )
    check_password_strength(user_in.password)

    is_first_account = db.query(models.User.id).first() is None
    assigned_role = UserRole.ADMIN if is_first_account else UserRole.RECEPTIONIST

    user = models.User(
        full_name=user_in.full_name,
        username=user_in.username,
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        role=assigned_role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s with role %s", user.username, user.role.value)
    return envelope(True, "User registered successfully", user_payload(user), status_code=status.HTTP_201_CREATED)


# ---------- Tokens ----------

@router.post(
    "/auth/login",
    response_model=ApiResponse[schemas.TokenPair],
    dependencies=[Depends(ip_rate_limiter)],
)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Authenticate a user and return an access/refresh token pair.

    Raises
    ------
    HTTPException
        If authentication fails.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    tokens = issue_token_pair(db, user)
    db.commit()
    return envelope(True, "Login successful", tokens)


@router.post("/auth/refresh", response_model=ApiResponse[schemas.TokenPair])
def refresh_tokens(body: schemas.RefreshRequest, db: Session = Depends(get_db)):
    """
    Exchange a refresh token for a new token pair.

    The presented refresh token is revoked (rotation), so each one can be
    used once.
    """
    stored = get_valid_refresh_token(db, body.refresh_token)
    if stored is None or not stored.user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    stored.revoked_at = datetime.now(timezone.utc)
    tokens = issue_token_pair(db, stored.user)
    db.commit()
    return envelope(True, "Token refreshed successfully", tokens)


@router.post("/auth/logout", response_model=ApiResponse[None])
def logout(body: schemas.RefreshRequest, db: Session = Depends(get_db)):
    """
    Revoke a refresh token. Unknown or already revoked tokens are accepted.
    """
    stored = get_valid_refresh_token(db, body.refresh_token)
    if stored is not None:
        stored.revoked_at = datetime.now(timezone.utc)
        db.commit()
    return envelope(True, "Logged out successfully")


# ---------- Current user ----------

@router.get("/auth/me", response_model=ApiResponse[schemas.UserRead])
def get_my_profile(current_user: models.User = Depends(get_current_user)):
    return envelope(True, "Success", user_payload(current_user))


# ---------- Admin: user management ----------

admin_only = require_user_roles([UserRole.ADMIN])


@router.get("/auth/users", response_model=ApiResponse[List[schemas.UserRead]])
def list_users(
    db: Session = Depends(get_db),
    _: models.User = Depends(admin_only),
):
    users = db.query(models.User).order_by(models.User.id.asc()).all()
    return envelope(True, "Users retrieved successfully", [user_payload(u) for u in users])


@router.put("/auth/users/{user_id}/role", response_model=ApiResponse[schemas.UserRead])
def change_user_role(
    user_id: int,
    role_update: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(admin_only),
):
    """
    Promote or demote a staff account (admin only).

    Admins may not demote themselves, which keeps at least one admin around.

    Raises
    ------
    HTTPException
        If user does not exist or an admin tries to demote themselves.
    """
    user = db.get(models.User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if user.id == current_user.id and role_update.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot remove their own admin role",
        )

    user.role = role_update.role
    db.commit()
    db.refresh(user)
    logger.info("User %s role changed to %s", user.username, user.role.value)
    return envelope(True, "Role updated successfully", user_payload(user))


app.include_router(router)
