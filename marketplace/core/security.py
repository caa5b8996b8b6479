"""JWT helpers and the bearer-token actor dependency."""

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from marketplace.core.config import settings
from marketplace.core.errors import DENY_UNAUTHENTICATED, NotAuthorizedError
from marketplace.db.session import get_db
from marketplace.models.user import User
from marketplace.schemas.auth import Actor

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def _unauthenticated(message: str) -> NotAuthorizedError:
    return NotAuthorizedError(message, reason=DENY_UNAUTHENTICATED)


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode: dict[str, Any] = data.copy()
    expire: datetime = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_actor_token(user: User, partner_id: str | None = None) -> str:
    """Issue a token carrying the claims ``get_current_actor`` expects."""
    claims: dict[str, Any] = {"sub": user.id, "role": user.role, "phone": user.phone}
    if partner_id is not None:
        claims["partner_id"] = partner_id
    return create_access_token(claims)


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise _unauthenticated("Could not validate credentials") from exc

    return payload


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the authenticated actor from the Authorization header."""
    if credentials is None:
        raise _unauthenticated("No token provided")

    payload: dict[str, Any] = verify_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthenticated("Invalid authentication token")

    user: User | None = db.get(User, str(user_id))
    if user is None or not user.is_active:
        raise _unauthenticated("User not found")

    return Actor(
        id=user.id,
        role=user.role,
        partner_id=payload.get("partner_id"),
        phone=user.phone,
    )
