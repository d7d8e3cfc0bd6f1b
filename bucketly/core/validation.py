"""Field validators shared by forms and services.

Every validator returns a ``ValidationResult`` instead of raising, so callers
can collect all field errors for a form before deciding what to do.
``ValidationResult.raise_for_error`` converts a failure into the application's
``ValidationError`` for service code that wants to stop early.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from bucketly import constants
from bucketly.errors import ValidationError

from .sanitization import sanitize_text

if TYPE_CHECKING:
    from werkzeug.datastructures import FileStorage

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

IMAGE_EXTENSIONS = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/jpg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/gif": ("gif",),
    "image/webp": ("webp",),
}
SUSPICIOUS_EXTENSIONS = (
    "php",
    "exe",
    "sh",
    "bat",
    "cmd",
    "com",
    "pif",
    "scr",
    "vbs",
    "js",
    "jar",
)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single field validation."""

    is_valid: bool
    error: str | None = None

    def raise_for_error(self) -> None:
        if not self.is_valid:
            raise ValidationError(self.error or "Validation failed.")


@dataclass
class FormValidation:
    """Aggregated outcome of validating several fields."""

    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)


VALID = ValidationResult(True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


def _length(
    value: str, label: str, min_length: int, max_length: int
) -> ValidationResult:
    if len(value) < min_length:
        return _invalid(f"{label} must be at least {min_length} characters long")
    if len(value) > max_length:
        return _invalid(f"{label} must be no more than {max_length} characters long")
    return VALID


def validate_email(email: str | None) -> ValidationResult:
    if _blank(email):
        return _invalid("Email is required")
    if not EMAIL_RE.match(email or ""):
        return _invalid("Please enter a valid email address")
    return VALID


def validate_password(password: str | None) -> ValidationResult:
    """Check length and character classes of a new password."""
    if _blank(password):
        return _invalid("Password is required")
    password = password or ""
    if len(password) < constants.PASSWORD_MIN_LENGTH:
        return _invalid(
            f"Password must be at least {constants.PASSWORD_MIN_LENGTH} "
            "characters long"
        )
    if not re.search(r"[A-Z]", password):
        return _invalid("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        return _invalid("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        return _invalid("Password must contain at least one number")
    return VALID


def validate_username(username: str | None) -> ValidationResult:
    if _blank(username):
        return _invalid("Username is required")
    result = _length(
        username or "",
        "Username",
        constants.USERNAME_MIN_LENGTH,
        constants.USERNAME_MAX_LENGTH,
    )
    if not result.is_valid:
        return result
    if not USERNAME_RE.match(username or ""):
        return _invalid(
            "Username can only contain letters, numbers, underscores, and hyphens"
        )
    return VALID


def validate_bio(bio: str | None) -> ValidationResult:
    if bio and len(bio) > constants.BIO_MAX_LENGTH:
        return _invalid(
            f"Bio must be no more than {constants.BIO_MAX_LENGTH} characters long"
        )
    return VALID


def validate_list_name(name: str | None) -> ValidationResult:
    if _blank(name):
        return _invalid("List name is required")
    return _length(
        name or "",
        "List name",
        constants.LIST_NAME_MIN_LENGTH,
        constants.LIST_NAME_MAX_LENGTH,
    )


def validate_category(category: str | None) -> ValidationResult:
    if _blank(category):
        return _invalid("Category is required")
    if category not in constants.CATEGORIES:
        return _invalid("Please select a valid category")
    return VALID


def validate_item_title(title: str | None) -> ValidationResult:
    if _blank(title):
        return _invalid("Item title is required")
    return _length(
        title or "",
        "Item title",
        constants.ITEM_TITLE_MIN_LENGTH,
        constants.ITEM_TITLE_MAX_LENGTH,
    )


def validate_points(points: Any) -> ValidationResult:
    """Points must be a whole number within the allowed range."""
    if points is None:
        return _invalid("Points value is required")
    if isinstance(points, bool) or not isinstance(points, (int, float)):
        return _invalid("Points must be a whole number")
    if points < constants.MIN_POINTS:
        return _invalid(f"Points must be at least {constants.MIN_POINTS}")
    if points > constants.MAX_POINTS:
        return _invalid(f"Points must be no more than {constants.MAX_POINTS}")
    if isinstance(points, float) and not points.is_integer():
        return _invalid("Points must be a whole number")
    return VALID


def validate_difficulty(difficulty: str | None) -> ValidationResult:
    if difficulty and difficulty not in constants.DIFFICULTIES:
        return _invalid("Please select a valid difficulty level")
    return VALID


def validate_reflection(reflection: str | None) -> ValidationResult:
    if _blank(reflection):
        return _invalid("Reflection is required")
    return _length(
        reflection or "",
        "Reflection",
        constants.REFLECTION_MIN_LENGTH,
        constants.REFLECTION_MAX_LENGTH,
    )


def file_size(file_storage: FileStorage) -> int:
    """Return the byte size of an uploaded file without consuming it."""
    stream = file_storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_file_size(size: int, max_size_mb: int) -> ValidationResult:
    if size > max_size_mb * constants.MB:
        return _invalid(f"File size must be less than {max_size_mb}MB")
    return VALID


def validate_image_type(content_type: str | None) -> ValidationResult:
    if content_type not in IMAGE_EXTENSIONS:
        return _invalid("File must be an image (JPEG, PNG, GIF, or WebP)")
    return VALID


def _extension(filename: str) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lstrip(".").lower()


def validate_file_upload(
    filename: str, content_type: str | None, size: int
) -> ValidationResult:
    """Validate a memory photo upload."""
    result = validate_file_size(size, constants.MEMORY_PHOTO_MAX_SIZE // constants.MB)
    if not result.is_valid:
        return result
    result = validate_image_type(content_type)
    if not result.is_valid:
        return result

    extension = _extension(filename)
    if extension and extension not in IMAGE_EXTENSIONS[content_type or ""]:
        return _invalid("File extension does not match file type")
    if extension in SUSPICIOUS_EXTENSIONS:
        return _invalid("File name contains suspicious extension")
    return VALID


def validate_avatar_upload(content_type: str | None, size: int) -> ValidationResult:
    if size > constants.AVATAR_MAX_SIZE:
        return _invalid("Avatar file size must be less than 5MB")
    if content_type not in ("image/jpeg", "image/jpg", "image/png", "image/webp"):
        return _invalid("Avatar must be a JPEG, PNG, or WebP image")
    return VALID


def validate_form(validations: dict[str, ValidationResult]) -> FormValidation:
    """Collect the errors of several field validations."""
    errors = {
        name: result.error
        for name, result in validations.items()
        if not result.is_valid and result.error
    }
    return FormValidation(is_valid=not errors, errors=errors)


def validate_and_sanitize(
    value: str, validator: Callable[[str], ValidationResult]
) -> tuple[ValidationResult, str]:
    """Validate a value and return it escaped for display when it passes."""
    result = validator(value)
    if not result.is_valid:
        return result, ""
    return result, sanitize_text(value)
