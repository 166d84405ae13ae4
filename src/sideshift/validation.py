import math
from typing import Any

from .errors import ValidationError


def _error_msg(field_name: str, source: str) -> str:
    return f"Error from {source}: Missing or invalid {field_name} parameter"


def validate_string(value: Any, field_name: str, source: str) -> str:
    if not value or not isinstance(value, str) or not value.strip():
        raise ValidationError(_error_msg(field_name, source))
    return value.strip()


def validate_optional_string(value: Any, field_name: str, source: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(_error_msg(field_name, source))
    return value.strip()


def validate_number(value: Any, field_name: str, source: str) -> float | int | None:
    """Accept None or a finite, non-negative int/float (bools are rejected)."""
    if value is None:
        return None
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or value < 0
        or not math.isfinite(value)
    ):
        raise ValidationError(_error_msg(field_name, source))
    return value


def validate_array(value: Any, field_name: str, source: str) -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{_error_msg(field_name, source)} - must be an array")
    if not value:
        raise ValidationError(f"{_error_msg(field_name, source)} - must be a non-empty array")
    for idx, item in enumerate(value):
        if not item or not isinstance(item, str) or not item.strip():
            raise ValidationError(
                f"{_error_msg(f'{field_name}[{idx}]', source)}"
                " - each element must be a non-empty string"
            )
    return list(value)
