import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paperdesk.auth.models import User, UserRole
from paperdesk.config import settings
from paperdesk.database import async_session

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, role: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    payload = {"sub": user_id, "role": role, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid access token, or None."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
    if payload.get("type") != "access":
        return None
    return payload.get("sub")


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        return None
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    role: UserRole = UserRole.customer,
    mobile: Optional[str] = None,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        mobile=mobile,
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("Created %s account %s", role.value, user.id)
    return user


async def bootstrap_signatory() -> None:
    """Create the first authorized signatory if none exists."""
    async with async_session() as db:
        result = await db.execute(select(User).where(User.role == UserRole.authorized_signatory).limit(1))
        if result.scalar_one_or_none() is not None:
            return
        if await get_user_by_email(db, settings.first_signatory_email) is not None:
            logger.warning(
                "Cannot bootstrap signatory: %s is already registered with another role",
                settings.first_signatory_email,
            )
            return

        await create_user(
            db,
            email=settings.first_signatory_email,
            password=settings.first_signatory_password,
            name=settings.first_signatory_name,
            role=UserRole.authorized_signatory,
        )
        await db.commit()
        logger.info("Bootstrap signatory created: %s", settings.first_signatory_email)
