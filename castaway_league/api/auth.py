from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from castaway_league.core.database import get_db
from castaway_league.core.errors import Conflict, Unauthorized
from castaway_league.core.security import hash_password, verify_password, create_access_token
from castaway_league.core.config import get_settings
from castaway_league.models.models import User
from castaway_league.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse
from castaway_league.api.deps import get_current_user

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _token_response(user: User) -> TokenResponse:
    token = create_access_token({"sub": str(user.id), "is_admin": user.is_admin})
    return TokenResponse(
        access_token=token,
        user_id=user.id,
        display_name=user.display_name,
        is_admin=user.is_admin,
    )


async def _authenticate(db: AsyncSession, username: str, password: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        raise Unauthorized("Incorrect username or password")
    return user


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(body: UserRegister, db: AsyncSession = Depends(get_db)):
    existing = await db.execute(select(User).where(User.username == body.username))
    if existing.scalar_one_or_none():
        raise Conflict("Username already taken")

    admin_key = get_settings().admin_key
    is_admin = bool(admin_key) and body.admin_key == admin_key

    user = User(
        username=body.username,
        display_name=body.display_name,
        password_hash=hash_password(body.password),
        is_admin=is_admin,
    )
    db.add(user)
    await db.flush()
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    user = await _authenticate(db, form_data.username, form_data.password)
    return _token_response(user)


@router.post("/login/json", response_model=TokenResponse)
async def login_json(body: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await _authenticate(db, body.username, body.password)
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
