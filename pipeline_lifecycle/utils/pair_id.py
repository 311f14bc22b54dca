"""Composite identifiers of the form ``left/right``.

Account-scoped resources are addressed by two remote ids (e.g. an account
id and a log-delivery config id).  The caller stores them as one string.
"""

from __future__ import annotations

from dataclasses import dataclass

from pipeline_lifecycle.core.exceptions import ValidationError

_SEPARATOR = "/"


@dataclass(frozen=True, slots=True)
class PairId:
    """Two identifiers packed into one ``left/right`` string."""

    left: str
    right: str

    def pack(self) -> str:
        return f"{self.left}{_SEPARATOR}{self.right}"

    @classmethod
    def unpack(cls, raw: str, left_name: str = "left", right_name: str = "right") -> PairId:
        """Split *raw* into its two parts.

        Raises:
            ValidationError: If *raw* is not ``<left_name>/<right_name>``
                with both parts non-empty.
        """
        parts = raw.split(_SEPARATOR) if raw else []
        if len(parts) != 2 or not all(parts):
            msg = f"invalid id {raw!r}: expected {left_name}{_SEPARATOR}{right_name}"
            raise ValidationError(msg, stage="identifier", code="INVALID_PAIR_ID")
        return cls(parts[0], parts[1])

    def __str__(self) -> str:
        return self.pack()
