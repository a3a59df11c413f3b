from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from affiliate.services.users import get_user
from core.db import get_session
from core.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from core.security import create_access_token, decode_access_token

# Bearer tokens; tokenUrl points at the form login for interactive docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def issue_token(user: User) -> str:
    """Token carrying the (user id, admin flag) context the ledger needs."""
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "is_admin": bool(user.is_admin)}
    )


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the bearer token to a user."""
    if not token:
        raise AuthenticationError("Access token required.")

    payload = decode_access_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token.") from exc

    try:
        return await get_user(db, user_id)
    except NotFoundError as exc:
        raise AuthenticationError("Invalid token.") from exc


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """Check that the current user is an administrator."""
    if not current_user.is_admin:
        raise PermissionDeniedError("Admin access required.")
    return current_user
