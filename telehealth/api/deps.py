from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from telehealth.core.db import get_session
from telehealth.core.security import decode_access_token
from telehealth.models.user import Role, User
from telehealth.services.identity import Actor, get_doctor_id

security = HTTPBearer(auto_error=False)


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await session.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor(user_id=current_user.id, role=current_user.role)


def require_roles(*roles: Role) -> Callable[..., Awaitable[Actor]]:
    """Dependency factory: the caller must hold one of `roles`."""

    async def _guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return actor

    return _guard


async def get_current_doctor_id(
    actor: Actor = Depends(require_roles(Role.DOCTOR)),
    session: AsyncSession = Depends(get_session),
) -> int:
    return await get_doctor_id(session, actor.user_id)
