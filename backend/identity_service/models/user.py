"""
Database model for users.
Represents a registered account: identity fields, hashed credentials,
media asset URLs and the currently active refresh token.
"""
import uuid
from tortoise import fields, models

# Columns that are safe to return to a client (no password hash, no refresh token)
PUBLIC_FIELDS = (
    "id",
    "username",
    "email",
    "full_name",
    "avatar",
    "cover_image",
    "created_at",
    "updated_at",
)

class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as an Argon2 hash (never store plain text passwords)
    - Username and email are unique across all users (enforced by the database)
    - refresh_token is null whenever the user has no active session
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    username = fields.CharField(max_length=32, unique=True, index=True)  # Stored lower-cased
    email = fields.CharField(max_length=256, unique=True, index=True)  # Stored trimmed and lower-cased
    full_name = fields.CharField(max_length=256)
    password_hash = fields.CharField(max_length=255)  # Argon2 hash
    avatar = fields.CharField(max_length=1024)  # Remote URL, required
    cover_image = fields.CharField(max_length=1024, default="")  # Remote URL, "" when not supplied
    refresh_token = fields.TextField(null=True)  # Current refresh token, null after logout
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name

    def __str__(self) -> str:
        return self.username
