"""
Input validation for plate-mcp tool parameters.

Every tool argument passes through one of these before it reaches a
render session, so callers get a readable ``Error: ...`` string instead of
a traceback.
"""

from __future__ import annotations

import math
from typing import Any


class ValidationError(Exception):
    """Raised when a tool argument is unusable."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def _type_name(value: Any) -> str:
    return type(value).__name__


def _check_range(val: float, field_name: str, min_val: float | None, max_val: float | None) -> None:
    if min_val is not None and val < min_val:
        raise ValidationError(f"'{field_name}' must be >= {min_val}, got {val}.")
    if max_val is not None and val > max_val:
        raise ValidationError(f"'{field_name}' must be <= {max_val}, got {val}.")


def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Stripped *value*; blank or non-string input is rejected."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_string(value: Any, field_name: str) -> str:
    """DSL text may be empty (an empty diagram) but must be a string."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {_type_name(value)}.")
    return value


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """A finite int or float (bools rejected), optionally range-checked."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{field_name}' must be a number, got {_type_name(value)}.")
    val = float(value)
    if not math.isfinite(val):
        raise ValidationError(f"'{field_name}' must be finite, got {val}.")
    _check_range(val, field_name, min_val, max_val)
    return val


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{field_name}' must be an integer, got {_type_name(value)}.")
    _check_range(value, field_name, min_val, max_val)
    return value


def validate_enum(value: Any, field_name: str, allowed: set[str]) -> str:
    """Upper-cased *value* when it names one of *allowed*."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {_type_name(value)}.")
    normalized = value.strip().upper()
    if normalized not in allowed:
        raise ValidationError(
            f"'{field_name}' must be one of [{', '.join(sorted(allowed))}], got '{value}'."
        )
    return normalized


# ---------------------------------------------------------------------------
# Tool actions
# ---------------------------------------------------------------------------

_DIAGRAM_ACTIONS = {
    "CREATE", "RENDER", "SCHEDULE", "SCENE", "SVG",
    "MODEL", "TREE", "STATUS", "LIST", "CLOSE",
}
_VIEWPORT_ACTIONS = {
    "POINTER_DOWN", "POINTER_MOVE", "POINTER_UP", "POINTER_CANCEL",
    "ZOOM", "WHEEL", "ZOOM_IN", "ZOOM_OUT", "FIT", "RESIZE", "STATE",
}
_MINIMAP_ACTIONS = {"POINTER_DOWN", "POINTER_MOVE", "POINTER_UP", "STATE", "PRIMITIVES"}

_THEMES = {"LIGHT", "DARK"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Lower-cased action name for *tool_name*."""
    choices = ", ".join(sorted(a.lower() for a in allowed))
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    if value.strip().upper() not in allowed:
        raise ValidationError(f"Unknown {tool_name} action '{value}'. Valid actions: {choices}.")
    return value.strip().lower()


# ---------------------------------------------------------------------------
# Domain validators
# ---------------------------------------------------------------------------

def validate_theme(value: Any) -> str:
    return validate_enum(value, "theme", _THEMES)


def validate_zoom_factor(value: Any) -> float:
    """Multiplicative zoom step; the controller clamps the resulting scale."""
    return validate_number(value, "factor", min_val=0.01, max_val=100)


def validate_button(value: Any) -> int:
    """Pointer button index, 0 being the primary button."""
    return validate_int(value, "button", min_val=0, max_val=4)


def validate_viewport_size(width: Any, height: Any) -> tuple[float, float]:
    return (
        validate_number(width, "width", min_val=1, max_val=20000),
        validate_number(height, "height", min_val=1, max_val=20000),
    )
