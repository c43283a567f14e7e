"""
Input checks shared by the services. All of them run before the store is touched.
"""

from typing import Optional

from ..core.exceptions import ValidationError


def require_text(
    value: Optional[str],
    field: str,
    label: str,
    min_length: int,
    max_length: Optional[int] = None,
) -> str:
    """
    Check a free-text field for presence and length.

    Args:
        value: Submitted text
        field: Wire field name reported in ``field_errors``
        label: Human readable name used in messages
        min_length: Minimum number of characters
        max_length: Maximum number of characters, if bounded

    Returns:
        The text, unchanged

    Raises:
        ValidationError: If the text is missing or out of bounds
    """
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field_errors={field: ["required"]})

    if len(value) < min_length:
        message = f"{label} must be at least {min_length} characters long"
        raise ValidationError(message, field_errors={field: [message]})

    if max_length is not None and len(value) > max_length:
        message = f"{label} cannot exceed {max_length} characters"
        raise ValidationError(message, field_errors={field: [message]})

    return value


def require_limit(limit: int, max_limit: int) -> int:
    if limit < 1 or limit > max_limit:
        message = f"limit must be between 1 and {max_limit}"
        raise ValidationError(message, field_errors={"limit": [message]})
    return limit
