# identity_service/core/security.py
"""
Security module for authentication.
Handles password hashing and JWT access/refresh token creation and validation.
"""
import uuid
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext
from identity_service.config import settings

# Password hashing context
# Argon2 is a modern, memory-hard password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = settings.refresh_token_expire_days

def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)

def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Raises:
        ValueError: If `hashed` is not a recognised hash (passlib UnknownHashError)
    """
    return pwd_context.verify(plain, hashed)

def _encode(payload: dict, secret: str, lifetime: dt.timedelta) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        **payload,
        "jti": uuid.uuid4().hex,  # Unique per token, two mints never collide
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALG)

def create_access_token(user_id: str, claims: dict | None = None) -> str:
    """
    Create a short-lived JWT access token.

    The token is self-contained: besides the subject it carries the public
    identity claims (email, username, fullName) so per-request authorization
    does not need a database round trip.

    Token payload includes:
        - sub: Subject (user ID)
        - any extra `claims`
        - jti / iat / exp
    """
    return _encode(
        {"sub": user_id, **(claims or {})},
        settings.access_token_secret,
        dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )

def create_refresh_token(user_id: str) -> str:
    """Create a long-lived JWT refresh token carrying only the subject."""
    return _encode(
        {"sub": user_id},
        settings.refresh_token_secret,
        dt.timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )

def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, settings.access_token_secret, algorithms=[JWT_ALG])

def decode_refresh_token(token: str) -> dict:
    """
    Decode and validate a JWT refresh token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, settings.refresh_token_secret, algorithms=[JWT_ALG])
