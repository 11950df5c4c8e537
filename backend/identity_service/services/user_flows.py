"""
User flows: registration, login, logout and refresh.

Each flow composes validation, asset upload, credential management and the
User store. Routers stay thin and only translate HTTP to these calls.
"""
import logging
from typing import Optional, Tuple

from tortoise.exceptions import BaseORMException, IntegrityError
from tortoise.expressions import Q

from identity_service.core.errors import (
    AuthenticationError,
    PersistenceError,
    UploadError,
    ValidationError,
)
from identity_service.core.security import hash_password
from identity_service.models.user import PUBLIC_FIELDS, User
from identity_service.services import credentials
from identity_service.services.assets import AssetUploadPipeline, IncomingFile
from identity_service.services.credentials import TokenPair
from identity_service.services.uploader import AssetUploader
from identity_service.services.validation import (
    MSG_ALREADY_EXISTS,
    RegistrationInput,
    validate_registration,
)

logger = logging.getLogger("uvicorn.error")


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


def public_user(row: dict) -> dict:
    """Convert a projected User row (see PUBLIC_FIELDS) to the client representation."""
    return {
        "id": str(row["id"]),
        "username": row["username"],
        "email": row["email"],
        "fullName": row["full_name"],
        "avatar": row["avatar"],
        "coverImage": row["cover_image"] or "",
        "createdAt": _isoformat(row["created_at"]),
        "updatedAt": _isoformat(row["updated_at"]),
    }


async def get_public_user(user_id) -> Optional[dict]:
    """Re-read a user without password hash and refresh token."""
    rows = await User.filter(id=user_id).values(*PUBLIC_FIELDS)
    if not rows:
        return None
    return public_user(rows[0])


async def register_user(
    data: RegistrationInput,
    avatar: Optional[IncomingFile],
    cover_image: Optional[IncomingFile],
    uploader: AssetUploader,
) -> dict:
    """
    Register a new user.

    Steps:
        1) stage the received files (cleanup registered immediately)
        2) validate input and uniqueness
        3) require and upload the avatar, upload the optional cover image
        4) create the user with a hashed password
        5) re-read the sanitized record

    Every staged local file is gone when this returns or raises.

    Raises:
        ValidationError (400): bad input, duplicate user, missing avatar
        UploadError (500): avatar upload failed
        PersistenceError (500): user could not be created or re-read
    """
    with AssetUploadPipeline(uploader) as pipeline:
        staged_avatar = await pipeline.stage(avatar, "avatar")
        staged_cover = await pipeline.stage(cover_image, "coverImage")

        await validate_registration(data)
        if staged_avatar is None:
            raise ValidationError("Avatar is required")

        avatar_url = await pipeline.upload(staged_avatar)
        if not avatar_url:
            raise UploadError("Failed to upload avatar image. Please try again.")
        # Cover image is optional: a failed upload degrades to no cover image
        cover_url = await pipeline.upload(staged_cover) or ""

        try:
            user = await User.create(
                username=data.normalized_username,
                email=data.normalized_email,
                full_name=data.full_name,
                password_hash=hash_password(data.password),
                avatar=avatar_url,
                cover_image=cover_url,
            )
        except IntegrityError:
            # Lost a race against a concurrent registration with the same username/email
            raise ValidationError(MSG_ALREADY_EXISTS)
        except BaseORMException as e:
            logger.error("[register] failed to create user %s: %s", data.normalized_username, e)
            raise PersistenceError("Failed to create user. Please try again.") from e

        created = await get_public_user(user.id)
        if created is None:
            raise PersistenceError("Failed to create user. Please try again.")

    logger.info("[register] created user id=%s username=%s", created["id"], created["username"])
    return created


async def login_user(
    email: Optional[str],
    username: Optional[str],
    password: Optional[str],
) -> Tuple[dict, TokenPair]:
    """
    Authenticate by email or username and issue a fresh token pair.

    Raises:
        ValidationError (400): missing identifier, unknown user, missing password
        AuthenticationError (401): wrong password
        PersistenceError (500): tokens could not be persisted
    """
    email = (email or "").strip().lower()
    username = (username or "").strip().lower()
    if not email and not username:
        raise ValidationError("Email or username is required")

    conditions = []
    if email:
        conditions.append(Q(email=email))
    if username:
        conditions.append(Q(username=username))
    user = await User.filter(Q(*conditions, join_type=Q.OR)).first()
    if user is None:
        raise ValidationError("Invalid email or username")

    if not password:
        raise ValidationError("Password is required")

    if not credentials.is_password_correct(user, password):
        logger.info("[login] wrong password for user id=%s", user.id)
        raise AuthenticationError("Invalid password")

    pair = await credentials.mint_tokens(user.id)

    logged_in = await get_public_user(user.id)
    if logged_in is None:
        raise PersistenceError("Failed to load user. Please try again.")

    logger.info("[login] user id=%s logged in", user.id)
    return logged_in, pair


async def logout_user(user: Optional[User], refresh_token: Optional[str] = None) -> None:
    """
    End the user's session. Logging out without a session is a no-op.

    `user` comes from the access token. When that is missing or expired the
    session is identified by the refresh token instead.
    """
    if user is None:
        user = await credentials.revoke_refresh_token(refresh_token)
        if user is None:
            return
    else:
        await credentials.revoke(user.id)
    logger.info("[logout] user id=%s logged out", user.id)


async def refresh_session(refresh_token: Optional[str]) -> Tuple[dict, TokenPair]:
    """
    Rotate a session: trade the stored refresh token for a new pair.

    Raises:
        AuthenticationError (401): missing, invalid, expired or stale token
        PersistenceError (500): new tokens could not be persisted
    """
    if not refresh_token:
        raise AuthenticationError("Refresh token is required")

    user, pair = await credentials.rotate(refresh_token)

    refreshed = await get_public_user(user.id)
    if refreshed is None:
        raise PersistenceError("Failed to load user. Please try again.")
    return refreshed, pair
