"""Security utilities: bearer token validation and user provisioning.

Access tokens are issued by the identity provider (Supabase auth signs them
with a shared HS256 secret). The backend only validates them; login and
session refresh are handled by the provider.
"""

import uuid

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.config import settings
from finance_tracker.core.database import get_db
from finance_tracker.core.exceptions import UnauthorizedError

logger = structlog.get_logger()


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token (signature, expiry, audience)."""
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except JWTError as e:
        raise UnauthorizedError("Invalid or expired token") from e


def user_id_from_claims(payload: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        raise UnauthorizedError("Token missing subject") from e


# ── Auth Dependencies ─────────────────────────────
security_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    db: AsyncSession = Depends(get_db),
):
    """FastAPI dependency: validate the bearer token and return (or provision) the local user."""
    from finance_tracker.models.user import User
    from finance_tracker.services.category_service import CategoryService

    if credentials is None:
        raise UnauthorizedError()

    payload = decode_access_token(credentials.credentials)
    user_id = user_id_from_claims(payload)

    user = await db.get(User, user_id)
    if user is None:
        metadata = payload.get("user_metadata") or {}
        email = payload.get("email", "")
        user = User(
            id=user_id,
            email=email,
            full_name=metadata.get("full_name") or metadata.get("name") or None,
            currency=settings.default_currency,
        )
        db.add(user)
        await db.flush()
        await CategoryService(db).create_defaults(user)
        await db.refresh(user)
        logger.info("Auto-provisioned local user from token", user_id=str(user_id), email=email)
    elif not user.is_active:
        raise UnauthorizedError("User is disabled")
    else:
        # Keep the email in sync with the identity provider
        email = payload.get("email", "")
        if email and user.email != email:
            user.email = email
            await db.flush()
            await db.refresh(user)

    return user
