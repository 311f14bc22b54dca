"""Lifecycle exception taxonomy.

Every error raised by the lifecycle engine inherits from ``LifecycleError``
and carries structured context fields so that callers (the resource
handlers, or whatever configuration-management tool sits above them) can
make consistent retry decisions and render useful diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``: bad caller input, never retryable.
- ``TransientError``: may succeed if the whole operation is retried.
- ``PermanentError``: remote-side failure that will not self-heal.
- ``ContractError``: the remote API answered with an unexpected shape.

The engine itself never retries an operation; ``retryable`` is a hint for
the caller.  Every exception exposes ``to_error_dict()`` for a stable
structured payload.  Resource handlers run inside ``correlated()`` so that
errors carry the caller's ``correlation_id``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class LifecycleError(Exception):
    """Base exception for all lifecycle-engine errors.

    Attributes:
        message: Human-readable error description.
        stage: Lifecycle stage where the error occurred
            (e.g. ``"create"``, ``"poll"``, ``"delete"``).
        code: Machine-readable error code (e.g. ``"CONVERGENCE_TIMEOUT"``).
        retryable: Whether the caller may retry the whole operation.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(LifecycleError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(LifecycleError):
    """Failure that may succeed if the operation is retried."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(LifecycleError):
    """Unrecoverable remote-side failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(LifecycleError):
    """Remote response or handler payload has an unexpected shape. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------


@contextmanager
def correlated(correlation_id: str) -> Iterator[None]:
    """Stamp *correlation_id* onto any ``LifecycleError`` leaving the block.

    Errors that already carry a correlation id keep theirs.
    """
    try:
        yield
    except LifecycleError as exc:
        if correlation_id and not exc.correlation_id:
            exc.correlation_id = correlation_id
        raise
