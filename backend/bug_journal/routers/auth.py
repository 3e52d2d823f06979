import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.config import settings
from bug_journal.database import get_db
from bug_journal.dependencies import get_current_user
from bug_journal.models import User
from bug_journal.schemas.auth import AuthConfig, Token, UserCreate, UserLogin, UserResponse
from bug_journal.services.auth import (
    create_access_token,
    create_user,
    find_conflicting_user,
    get_user_by_login,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _issue_token(response: Response, user: User) -> Token:
    access_token = create_access_token(user.id)
    response.set_cookie(
        settings.session_cookie_name,
        access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        samesite="lax",
    )
    return Token(access_token=access_token, user=UserResponse.model_validate(user))


@router.get("/auth/config", response_model=AuthConfig)
async def auth_config() -> AuthConfig:
    return AuthConfig(allow_registration=settings.allow_registration)


@router.post("/register", response_model=Token, status_code=201)
async def register(
    data: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Token:
    if not settings.allow_registration:
        raise HTTPException(status_code=403, detail="Registration is disabled")
    existing = await find_conflicting_user(db, data.username, data.email)
    if existing is not None:
        if existing.username == data.username:
            raise HTTPException(status_code=400, detail="Username already taken")
        raise HTTPException(status_code=400, detail="Email already registered")
    try:
        user = await create_user(db, data.username, data.email, data.password, data.display_name)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Username or email already registered")
    await db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})
    return _issue_token(response, user)


@router.post("/login", response_model=Token)
async def login(
    data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Token:
    user = await get_user_by_login(db, data.username)
    if user is None or not verify_password(data.password, user.hashed_password):
        logger.warning("Failed login", extra={"login": data.username})
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return _issue_token(response, user)


@router.post("/logout", status_code=204)
async def logout(user: User = Depends(get_current_user)) -> Response:
    response = Response(status_code=204)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/user", response_model=UserResponse)
async def current_user(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
