"""FastAPI dependencies for database sessions and bearer identity."""

from typing import AsyncGenerator, Optional
from uuid import UUID

import jwt
from fastapi import Header
from jwt import PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_async_session
from .exceptions import AuthenticationError


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


async def get_current_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Optional[UUID]:
    """
    Identify the caller from an optional Bearer token.

    Tokens are issued elsewhere; this only decodes them. A request without
    an Authorization header is anonymous.

    Returns:
        UUID: The ``sub`` claim, or None for anonymous requests

    Raises:
        AuthenticationError: If a token is present but malformed, expired or
            signed with another secret
    """
    if not authorization:
        return None

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except PyJWTError as e:
        raise AuthenticationError(f"Invalid token. Please log in again! ({e})")

    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise AuthenticationError("Invalid token payload")
