"""Input validation and normalization utilities."""

from datetime import UTC, datetime
import re

# Kenyan mobile numbers: +2547XXXXXXXX, +2541XXXXXXXX, 07XXXXXXXX, 01XXXXXXXX
KENYAN_PHONE_PATTERN = re.compile(r"^(\+254|0)[17]\d{8}$")


class PasswordValidator:
    """Validate password strength."""

    MIN_LENGTH = 8
    MAX_LENGTH = 128

    @classmethod
    def validate(cls, password: str) -> tuple[bool, str | None]:
        """
        Validate password strength.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters long"

        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must not exceed {cls.MAX_LENGTH} characters"

        if not re.search(r"[A-Z]", password):
            return False, "Password must contain at least one uppercase letter"

        if not re.search(r"[a-z]", password):
            return False, "Password must contain at least one lowercase letter"

        if not re.search(r"\d", password):
            return False, "Password must contain at least one number"

        return True, None


class PhoneNumberValidator:
    """Validate and normalize Kenyan phone numbers."""

    @staticmethod
    def normalize(phone_number: str) -> str:
        """Strip separators and rewrite a leading 0 as +254."""
        value = re.sub(r"[\s\-()]", "", phone_number or "")
        if value.startswith("0") and len(value) == 10:
            value = "+254" + value[1:]
        return value

    @classmethod
    def validate(cls, phone_number: str) -> tuple[bool, str | None]:
        value = re.sub(r"[\s\-()]", "", phone_number or "")
        if not KENYAN_PHONE_PATTERN.match(value):
            return (
                False,
                "Please enter a valid Kenyan phone number (e.g., +254700123456 or 0700123456)",
            )
        return True, None


def sanitize_string(value: str | None, max_length: int = 1000) -> str:
    """
    Sanitize string input.

    Truncates to `max_length`, removes null bytes and strips whitespace.
    """
    if not value:
        return ""

    value = value[:max_length]
    value = value.replace("\x00", "")
    return value.strip()


class EmailValidator:
    """Loose shape check for optional email addresses."""

    PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @classmethod
    def validate(cls, email: str) -> tuple[bool, str | None]:
        if len(email) > 255 or not cls.PATTERN.match(email):
            return False, "Please enter a valid email address"
        return True, None


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
