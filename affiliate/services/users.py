"""Identity store: registration, credential checks and the default admin."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from core.errors import AuthenticationError, ConflictError, NotFoundError
from core.security import hash_password, verify_password

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == _normalize_email(email)))
    return result.scalar_one_or_none()


async def register_user(
    session: AsyncSession, name: str, email: str, password: str, *, is_admin: bool = False
) -> User:
    """Create a user with a bcrypt-hashed password.

    Raises:
        ConflictError: the email is already registered.
    """
    email = _normalize_email(email)
    if await get_user_by_email(session, email) is not None:
        raise ConflictError("Email already registered.")

    user = User(name=name, email=email, hashed_password=hash_password(password), is_admin=is_admin)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        # Lost a race against a concurrent registration with the same email
        await session.rollback()
        raise ConflictError("Email already registered.") from exc
    await session.refresh(user)

    logger.info("User registered", extra={"user_id": user.id})
    return user


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials, else raise AuthenticationError."""
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.hashed_password):
        raise AuthenticationError("Invalid credentials.")
    return user


async def ensure_admin(session: AsyncSession, email: str, password: str, name: str = "Admin") -> User:
    """Create the admin account if missing, or promote an existing user.

    The password of an existing account is never changed silently.
    """
    existing = await get_user_by_email(session, email)
    if existing is not None:
        if not existing.is_admin:
            existing.is_admin = True
            await session.commit()
            logger.info("User promoted to admin", extra={"user_id": existing.id})
        return existing

    admin = await register_user(session, name, email, password, is_admin=True)
    logger.info("Default admin created", extra={"user_id": admin.id})
    return admin
