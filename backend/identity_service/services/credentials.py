"""
Credential management: password checks and the access/refresh token lifecycle.

Refresh tokens are persisted on the User row and rotated (overwritten) on
every login or refresh. Concurrent logins for the same user are not
serialized: the last write wins and earlier refresh tokens stop working.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import jwt  # PyJWT
from tortoise import timezone
from tortoise.exceptions import BaseORMException

from identity_service.core.errors import AuthenticationError, PersistenceError
from identity_service.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from identity_service.models.user import User

logger = logging.getLogger("uvicorn.error")

MSG_TOKEN_FAILURE = "Failed to generate tokens. Please try again."


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def is_password_correct(user: User, candidate: str) -> bool:
    """
    Compare a candidate password with the user's stored hash.

    A wrong password is not an error: this returns False and never raises,
    including when the stored hash is unreadable.
    """
    if not candidate or not user.password_hash:
        return False
    try:
        return verify_password(candidate, user.password_hash)
    except (ValueError, TypeError) as e:
        logger.warning("[credentials] unusable password hash for user %s: %s", user.id, e)
        return False


def _access_claims(user: User) -> dict:
    return {"email": user.email, "username": user.username, "fullName": user.full_name}


async def _store_refresh_token(user_id, value) -> int:
    return await User.filter(id=user_id).update(refresh_token=value, updated_at=timezone.now())


async def mint_tokens(user_id) -> TokenPair:
    """
    Issue a new access/refresh token pair and persist the refresh token,
    replacing whatever was stored before.

    Raises:
        PersistenceError: if the user cannot be loaded or the refresh token
            cannot be written. No tokens are returned in that case.
    """
    try:
        user = await User.get_or_none(id=user_id)
        if user is None:
            raise PersistenceError(MSG_TOKEN_FAILURE)
        pair = TokenPair(
            access_token=create_access_token(str(user.id), _access_claims(user)),
            refresh_token=create_refresh_token(str(user.id)),
        )
        updated = await _store_refresh_token(user.id, pair.refresh_token)
    except BaseORMException as e:
        logger.error("[credentials] token persistence failed for user %s: %s", user_id, e)
        raise PersistenceError(MSG_TOKEN_FAILURE) from e

    if not updated:
        raise PersistenceError(MSG_TOKEN_FAILURE)
    return pair


async def revoke(user_id) -> None:
    """Forget the stored refresh token. Safe to call when there is no session."""
    await _store_refresh_token(user_id, None)


async def revoke_refresh_token(refresh_token: Optional[str]) -> Optional[User]:
    """
    Forget the session a refresh token belongs to.

    Used when the caller can no longer present a valid access token. The
    stored token is cleared only if it still equals `refresh_token`, so a
    stale token cannot end a newer session. Returns the user whose session
    was ended, or None.
    """
    if not refresh_token:
        return None
    try:
        payload = decode_refresh_token(refresh_token)
    except jwt.InvalidTokenError:
        return None

    user = await User.get_or_none(id=payload.get("sub"))
    if user is None or user.refresh_token != refresh_token:
        return None
    await revoke(user.id)
    return user


async def rotate(refresh_token: str) -> Tuple[User, TokenPair]:
    """
    Exchange a refresh token for a new pair.

    The presented token must verify and must equal the value currently stored
    on its subject; anything else (expired, forged, already rotated, logged
    out) is an AuthenticationError.
    """
    try:
        payload = decode_refresh_token(refresh_token)
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid refresh token")

    user = await User.get_or_none(id=payload.get("sub"))
    if user is None:
        raise AuthenticationError("Invalid refresh token")
    if user.refresh_token != refresh_token:
        raise AuthenticationError("Refresh token is expired or used")

    pair = await mint_tokens(user.id)
    return user, pair
