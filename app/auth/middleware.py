"""Bearer-token authentication and role checks for FastAPI."""

import uuid
from collections.abc import Awaitable, Callable, Iterable

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import decode_token
from app.database import get_db
from app.models.user import User, UserRole

_bearer = HTTPBearer(auto_error=False)


class AuthenticatedUser:
    """Container for the verified user context."""

    def __init__(self, user: User) -> None:
        self.user = user
        self.user_id: uuid.UUID = user.user_id
        self.role: UserRole = user.role

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def has_role(user: AuthenticatedUser, allowed: Iterable[UserRole]) -> bool:
    """Capability check: the user holds one of the allowed roles, or is an admin."""
    return user.is_admin or user.role in set(allowed)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUser:
    """Resolve the bearer token to a user."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        payload = decode_token(credentials.credentials)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    return AuthenticatedUser(user)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[AuthenticatedUser]]:
    """Dependency factory: allow only the listed roles (admins always pass)."""

    async def _check(auth: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if not has_role(auth, roles):
            raise HTTPException(
                status_code=403,
                detail="Requires role: " + ", ".join(r.value for r in roles),
            )
        return auth

    return _check
