import re
from typing import Annotated
from pydantic import AfterValidator
from pydantic_core import PydanticCustomError


# =============================================================================
# Email Validator
# =============================================================================

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)
MAX_EMAIL_LENGTH = 254


def validate_email(value: str) -> str:
    """
    Validate and normalize email address.
    - RFC basic compliance
    - Lowercase + trim
    - Max length check
    """
    value = value.strip().lower()

    if len(value) > MAX_EMAIL_LENGTH:
        raise PydanticCustomError(
            "email_too_long",
            f"Email must be at most {MAX_EMAIL_LENGTH} characters",
        )

    if not EMAIL_REGEX.match(value):
        raise PydanticCustomError(
            "invalid_email",
            "Invalid email address",
        )

    return value


Email = Annotated[str, AfterValidator(validate_email)]


# =============================================================================
# Password Validator
# =============================================================================

STRONG_PASSWORD_REGEX = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)


def validate_strong_password(value: str) -> str:
    """
    At least 8 characters with one lowercase, one uppercase, one digit
    and one of @$!%*?&. No other characters allowed.
    """
    if not STRONG_PASSWORD_REGEX.match(value):
        raise PydanticCustomError(
            "weak_password",
            "Password must be at least 8 characters long and contain one uppercase "
            "letter, one lowercase letter, one number, and one special character.",
        )
    return value


StrongPassword = Annotated[str, AfterValidator(validate_strong_password)]


# =============================================================================
# OTP Validator
# =============================================================================

OTP_REGEX = re.compile(r"^[A-Za-z0-9]{6}$")


def validate_otp(value: str) -> str:
    """Exactly 6 alphanumeric characters; normalized to upper case."""
    value = value.strip()

    if not OTP_REGEX.match(value):
        raise PydanticCustomError(
            "invalid_otp",
            "Invalid OTP format",
        )

    return value.upper()


OTPCode = Annotated[str, AfterValidator(validate_otp)]


# =============================================================================
# Display Name Validator
# =============================================================================

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 255


def validate_name(value: str) -> str:
    """Trimmed, 3-255 characters (users, workspaces, boards)."""
    value = value.strip()

    if len(value) < MIN_NAME_LENGTH:
        raise PydanticCustomError(
            "name_too_short",
            f"Name must be at least {MIN_NAME_LENGTH} characters long",
        )

    if len(value) > MAX_NAME_LENGTH:
        raise PydanticCustomError(
            "name_too_long",
            f"Name must be at most {MAX_NAME_LENGTH} characters long",
        )

    return value


DisplayName = Annotated[str, AfterValidator(validate_name)]
