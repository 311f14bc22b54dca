"""Per-operation timeout resolution for the resource handlers."""

from __future__ import annotations

from typing import Any

from pipeline_lifecycle.core.exceptions import ValidationError

OPERATIONS = ("create", "update", "delete")


def resolve_timeout(
    timeouts: dict[str, Any] | None,
    operation: str,
    default: float,
) -> float:
    """Return the timeout (seconds) for *operation*.

    Args:
        timeouts: Optional mapping of operation name to seconds, e.g.
            ``{"create": 1800}``.  Missing entries fall back to *default*.
        operation: ``"create"``, ``"update"`` or ``"delete"``.
        default: Fallback timeout in seconds.

    Raises:
        ValidationError: If *operation* is unknown or the configured
            value is not a positive number.
    """
    if operation not in OPERATIONS:
        msg = f"unknown operation {operation!r}; expected one of {', '.join(OPERATIONS)}"
        raise ValidationError(msg, stage="timeouts")

    raw = (timeouts or {}).get(operation)
    if raw is None:
        return default

    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        msg = f"timeouts.{operation}={raw!r} is not a number"
        raise ValidationError(msg, stage="timeouts") from exc

    if value <= 0:
        msg = f"timeouts.{operation}={raw!r} must be > 0 (seconds)"
        raise ValidationError(msg, stage="timeouts")
    return value
