# common/auth.py
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .settings import ALGORITHM, AUDIENCE, ISSUER, SECRET_KEY

STAFF_ROLES = ("admin", "manager", "receptionist")

# Role carried by tokens the services mint for each other
SERVICE_ACCOUNT_ROLE = "service_account"
SERVICE_ACCOUNT_USER_ID = 0

bearer_scheme = HTTPBearer()


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature, expiry, issuer and audience of a JWT.

    Raises
    ------
    JWTError
        If any of those checks fails.
    """
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Turn the Authorization header into the caller's identity.

    Services other than auth trust the token alone and never look the
    user up, so role changes take effect when the token expires.

    Returns
    -------
    Dict[str, Any]
        ``username``, ``role`` and ``user_id`` (may be None) from the token.

    Raises
    ------
    HTTPException
        401 if the token does not verify, lacks a subject or role, or is not
        an access token.
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        claims = decode_token(credentials.credentials)
    except JWTError:
        raise unauthorized

    if not claims.get("sub") or not claims.get("role") or claims.get("type", "access") != "access":
        raise unauthorized

    return {"username": claims["sub"], "role": claims["role"], "user_id": claims.get("user_id")}


def require_roles(*allowed_roles: str) -> Callable:
    """
    Dependency factory: the caller's role claim must be in ``allowed_roles``,
    otherwise HTTP 403.
    """
    allowed = frozenset(allowed_roles)

    async def dependency(claims: Dict[str, Any] = Depends(get_current_user_claims)) -> Dict[str, Any]:
        if claims["role"] not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return claims

    return dependency


def make_service_account_token(service_name: str, minutes: int = 5) -> str:
    """
    Mint a short-lived token one service presents to another.
    """
    now = datetime.now(timezone.utc)
    claims = {
        "sub": service_name,
        "role": SERVICE_ACCOUNT_ROLE,
        "user_id": SERVICE_ACCOUNT_USER_ID,
        "type": "access",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
