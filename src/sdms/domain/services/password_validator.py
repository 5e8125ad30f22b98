"""Password validation service.

Validates password strength according to configurable rules:
- Minimum length
- Uppercase letter requirement
- Digit requirement
"""

import re
from dataclasses import dataclass

from sdms.core.config import Settings
from sdms.core.exceptions import InvalidArgumentError


@dataclass(frozen=True)
class PasswordValidationError:
    """Represents a password validation error.

    Attributes:
        field: The field name (always 'password').
        message: Human-readable error message.
        code: Machine-readable error code.
    """

    field: str
    message: str
    code: str


class PasswordValidator:
    """Validates password strength.

    Default policy:
    - Minimum 6 characters
    - At least one uppercase letter
    - At least one digit
    """

    def __init__(
        self,
        min_length: int = 6,
        require_uppercase: bool = True,
        require_digit: bool = True,
    ) -> None:
        """Initialize the password validator.

        Args:
            min_length: Minimum password length (default 6).
            require_uppercase: Require at least one uppercase letter.
            require_digit: Require at least one digit.
        """
        self.min_length = min_length
        self.require_uppercase = require_uppercase
        self.require_digit = require_digit

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordValidator":
        return cls(min_length=settings.password_min_length)

    def validate(self, password: str | None) -> list[PasswordValidationError]:
        """Validate a password against the policy.

        Args:
            password: The password to validate.

        Returns:
            List of validation errors. Empty list if password is valid.
        """
        password = password or ""
        errors: list[PasswordValidationError] = []

        if len(password) < self.min_length:
            errors.append(
                PasswordValidationError(
                    field="password",
                    message=f"Password must be at least {self.min_length} characters",
                    code="password_too_short",
                )
            )

        if self.require_uppercase and not re.search(r"[A-Z]", password):
            errors.append(
                PasswordValidationError(
                    field="password",
                    message="Password must contain at least one uppercase letter",
                    code="password_no_uppercase",
                )
            )

        if self.require_digit and not re.search(r"\d", password):
            errors.append(
                PasswordValidationError(
                    field="password",
                    message="Password must contain at least one digit",
                    code="password_no_digit",
                )
            )

        return errors

    def is_valid(self, password: str | None) -> bool:
        """Check if a password is valid.

        Args:
            password: The password to validate.

        Returns:
            True if password meets all requirements, False otherwise.
        """
        return len(self.validate(password)) == 0

    def enforce(self, password: str | None) -> None:
        """Raise if a password does not meet the policy.

        Raises:
            InvalidArgumentError: Listing every failed rule.
        """
        errors = self.validate(password)
        if errors:
            raise InvalidArgumentError(
                "Password does not meet the password policy",
                violations=[error.message for error in errors],
            )


# Default validator instance
default_password_validator = PasswordValidator()
