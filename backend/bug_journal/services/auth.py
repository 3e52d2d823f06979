from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.config import settings
from bug_journal.models import User
from bug_journal.schemas.auth import TokenData

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode()[:_BCRYPT_MAX_BYTES], hashed.encode())


def create_access_token(user_id: int) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm="HS256")


def decode_token(token: str) -> TokenData:
    payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    user_id_str: str | None = payload.get("sub")
    if user_id_str is None:
        raise JWTError("missing sub")
    return TokenData(user_id=int(user_id_str))


async def get_user_by_login(db: AsyncSession, login: str) -> User | None:
    """Find a user by username or email."""
    result = await db.execute(
        select(User).where(or_(User.username == login, User.email == login.lower()))
    )
    return result.scalars().first()


async def find_conflicting_user(db: AsyncSession, username: str, email: str) -> User | None:
    result = await db.execute(
        select(User).where(or_(User.username == username, User.email == email.lower()))
    )
    return result.scalars().first()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    display_name: str | None = None,
) -> User:
    user = User(
        username=username,
        email=email.lower(),
        hashed_password=hash_password(password),
        display_name=display_name,
    )
    db.add(user)
    await db.flush()
    return user
