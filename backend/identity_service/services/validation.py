"""
Registration input validation.

Rules are evaluated in order and the first failing rule wins. Each rule takes
a RegistrationInput and returns a reason string, or None when it passes.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from tortoise.expressions import Q

from identity_service.core.errors import ValidationError
from identity_service.models.user import User

# Each separator must be followed by a word, so a string can only match one way.
# ASCII only: Unicode letters are not valid in the local part or domain.
EMAIL_RE = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*\.\w{2,3}$", re.ASCII)
EMAIL_MAX_LENGTH = 254
USERNAME_RE = re.compile(r"^[A-Za-z0-9._]{3,10}$")

MSG_ALL_FIELDS_REQUIRED = "All fields are required"
MSG_INVALID_EMAIL = "Invalid email"
MSG_USERNAME_FORMAT = (
    "Username must be 3-10 characters long and can only contain "
    "letters, numbers, dots, and underscores"
)
MSG_USERNAME_CONSECUTIVE = "Username cannot contain consecutive dots or underscores"
MSG_USERNAME_EDGES = "Username cannot start or end with a dot or underscore"
MSG_ALREADY_EXISTS = "User with the same email or username already exists"


@dataclass(frozen=True)
class RegistrationInput:
    """Registration fields with surrounding whitespace removed (password kept verbatim)."""
    username: str
    email: str
    password: str
    full_name: str

    @classmethod
    def from_raw(
        cls,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        full_name: Optional[str],
    ) -> "RegistrationInput":
        return cls(
            username=(username or "").strip(),
            email=(email or "").strip(),
            password=password or "",
            full_name=(full_name or "").strip(),
        )

    @property
    def normalized_username(self) -> str:
        return self.username.lower()

    @property
    def normalized_email(self) -> str:
        return self.email.lower()


def _require_all_fields(data: RegistrationInput) -> Optional[str]:
    if not all(v.strip() for v in (data.username, data.email, data.password, data.full_name)):
        return MSG_ALL_FIELDS_REQUIRED
    return None


def _email_format(data: RegistrationInput) -> Optional[str]:
    if len(data.email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(data.email):
        return MSG_INVALID_EMAIL
    return None


def _username_format(data: RegistrationInput) -> Optional[str]:
    if not USERNAME_RE.match(data.username):
        return MSG_USERNAME_FORMAT
    return None


def _username_no_consecutive_punctuation(data: RegistrationInput) -> Optional[str]:
    if ".." in data.username or "__" in data.username:
        return MSG_USERNAME_CONSECUTIVE
    return None


def _username_no_edge_punctuation(data: RegistrationInput) -> Optional[str]:
    if data.username[:1] in (".", "_") or data.username[-1:] in (".", "_"):
        return MSG_USERNAME_EDGES
    return None


RULES: List[Callable[[RegistrationInput], Optional[str]]] = [
    _require_all_fields,
    _email_format,
    _username_format,
    _username_no_consecutive_punctuation,
    _username_no_edge_punctuation,
]


def check_registration_input(data: RegistrationInput) -> Optional[str]:
    """Run the local format rules. Returns the first failure reason, or None."""
    for rule in RULES:
        reason = rule(data)
        if reason:
            return reason
    return None


async def validate_registration(data: RegistrationInput) -> None:
    """
    Validate registration input, then check username/email uniqueness.

    The uniqueness check is a single OR query over the stored (normalized)
    forms. The database unique constraints remain the final arbiter when two
    registrations race.

    Raises:
        ValidationError: on the first failing rule
    """
    reason = check_registration_input(data)
    if reason:
        raise ValidationError(reason)

    exists = await User.filter(
        Q(username=data.normalized_username) | Q(email=data.normalized_email)
    ).exists()
    if exists:
        raise ValidationError(MSG_ALREADY_EXISTS)
