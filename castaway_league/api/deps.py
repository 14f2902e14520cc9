from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError

from castaway_league.core.database import get_db
from castaway_league.core.errors import Unauthorized
from castaway_league.core.security import decode_access_token
from castaway_league.models.models import User
from castaway_league.services.permissions import Identity, require_admin

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not token:
        raise Unauthorized()
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub"))
    except (JWTError, ValueError, TypeError):
        raise Unauthorized("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return user


async def get_identity(user: User = Depends(get_current_user)) -> Identity:
    return Identity(user_id=user.id, is_admin=user.is_admin)


async def get_admin_identity(identity: Identity = Depends(get_identity)) -> Identity:
    return require_admin(identity)
