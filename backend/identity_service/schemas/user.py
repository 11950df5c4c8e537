"""
Pydantic schemas for the user endpoints.
Defines request models for login/refresh and the sanitized user shape.
"""
from pydantic import BaseModel

class LoginIn(BaseModel):
    """
    Request model for login.
    Either email or username identifies the account.
    """
    email: str | None = None
    username: str | None = None
    password: str | None = None  # Plain text, only ever compared against the stored hash

class RefreshIn(BaseModel):
    """Optional body for token refresh when the refreshToken cookie is absent."""
    refreshToken: str | None = None

class UserOut(BaseModel):
    """
    Sanitized user returned to clients.
    Never contains the password hash or the refresh token.
    """
    id: str
    username: str
    email: str
    fullName: str
    avatar: str
    coverImage: str = ""
    createdAt: str | None = None
    updatedAt: str | None = None

class LoginOut(BaseModel):
    """Payload of a successful login or refresh."""
    user: UserOut
    accessToken: str
    refreshToken: str
