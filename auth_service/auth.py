import secrets
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from common.auth import decode_token
from common.settings import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    AUDIENCE,
    ISSUER,
    REFRESH_TOKEN_EXPIRE_DAYS,
    SECRET_KEY,
)

from . import models
from .database import get_db

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Lets the interactive docs log in through the form endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def password_matches(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def find_user(db: Session, username: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.username == username).one_or_none()


def authenticate_user(db: Session, username: str, password: str) -> Optional[models.User]:
    """
    Check a username/password pair.

    Parameters
    ----------
    db : Session
        Auth database session.
    username, password : str
        Credentials from the login form.

    Returns
    -------
    Optional[User]
        The user when the account exists, is active and the password
        matches; None otherwise, without saying which check failed.
    """
    user = find_user(db, username)
    if user is None or not user.is_active:
        return None
    return user if password_matches(password, user.hashed_password) else None


# ---------- Tokens ----------

def create_access_token(claims: dict, lifetime: Optional[timedelta] = None) -> str:
    """
    Sign an access token carrying ``claims``.

    Expiry, issuer, audience and ``type=access`` are added here so every
    service can verify the token with ``common.auth.decode_token``.
    """
    lifetime = lifetime or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        **claims,
        "exp": datetime.now(timezone.utc) + lifetime,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "type": "access",
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def issue_token_pair(db: Session, user: models.User) -> dict:
    """
    Create an access token and persist a new refresh token for ``user``.

    The caller commits the session.
    """
    refresh = models.RefreshToken(
        token=secrets.token_urlsafe(48),
        user_id=user.id,
        expires_at=datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(refresh)
    return {
        "access_token": create_access_token(
            {"sub": user.username, "role": user.role.value, "user_id": user.id}
        ),
        "refresh_token": refresh.token,
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


def get_valid_refresh_token(db: Session, token: str) -> Optional[models.RefreshToken]:
    """
    Return the stored refresh token if it exists, is not revoked and has
    not expired.
    """
    stored = db.query(models.RefreshToken).filter(models.RefreshToken.token == token).one_or_none()
    if stored is None or stored.revoked_at is not None:
        return None
    expires_at = stored.expires_at
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return stored if expires_at > datetime.now(timezone.utc) else None


# ---------- Request dependencies ----------

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    """
    Load the active user a bearer token was issued to.

    The role claim must still match the stored role, so changing a user's
    role invalidates the access tokens they already hold.

    Raises
    ------
    HTTPException
        401 for a bad signature, wrong issuer/audience, expired token,
        unknown or inactive user, or stale role.
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        claims = decode_token(token)
    except JWTError:
        raise unauthorized

    if claims.get("type", "access") != "access" or not claims.get("sub"):
        raise unauthorized

    user = find_user(db, claims["sub"])
    if user is None or not user.is_active or claims.get("role") != user.role.value:
        raise unauthorized
    return user


def require_user_roles(allowed: Iterable[models.UserRole]):
    """
    Dependency factory: the current user must hold one of ``allowed``.
    """
    allowed = frozenset(allowed)

    async def dependency(current_user: models.User = Depends(get_current_user)) -> models.User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted for this role",
            )
        return current_user

    return dependency
