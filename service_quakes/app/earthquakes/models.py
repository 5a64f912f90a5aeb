"""
Request models for earthquake lookups.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple


DEFAULT_LIMIT = 50
DEFAULT_ORDER_BY = "time"
ORDER_BY_VALUES = ("time", "time-asc", "magnitude", "magnitude-asc")

_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")


class RequestKind(str, Enum):
    """The two shapes of request the proxy resolves."""

    COLLECTION_QUERY = "collection-query"
    BY_ID_LOOKUP = "by-id-lookup"


def format_param(value: Any) -> str:
    """Render a parameter value as plain decimal text.

    Floats use their shortest round-trip digits. Integral floats drop their
    fractional part so that ``5.0`` and ``5`` produce the same text, and
    exponent notation is only used below ``1e-6`` or from ``1e21`` upward
    (``1e-7``, ``1.5e+21``).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _format_float(value: float) -> str:
    if value == 0:
        return "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    prefix = "-" if sign else ""
    # Position of the decimal point relative to the first significant digit
    point = len(digits) + exponent

    if len(digits) <= point <= 21:
        text = digits + "0" * (point - len(digits))
    elif 0 < point <= 21:
        text = f"{digits[:point]}.{digits[point:]}"
    elif -6 < point <= 0:
        text = "0." + "0" * -point + digits
    else:
        mantissa = digits if len(digits) == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if point > 0 else '-'}{abs(point - 1)}"
    return prefix + text


@dataclass(frozen=True)
class EarthquakeQuery:
    """Filter parameters for a collection query.

    Field declaration order is significant: it fixes the order in which
    defined fields are rendered into cache keys and upstream parameters.
    """

    starttime: Optional[str] = None
    endtime: Optional[str] = None
    minmagnitude: Optional[float] = None
    maxmagnitude: Optional[float] = None
    limit: Optional[int] = DEFAULT_LIMIT
    orderby: Optional[str] = DEFAULT_ORDER_BY

    def __post_init__(self) -> None:
        for name in ("minmagnitude", "maxmagnitude"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number")

        if (
            self.minmagnitude is not None
            and self.maxmagnitude is not None
            and self.minmagnitude > self.maxmagnitude
        ):
            raise ValueError("minmagnitude must not exceed maxmagnitude")

        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be a positive integer")

        if self.orderby is not None and self.orderby not in ORDER_BY_VALUES:
            raise ValueError(f"orderby must be one of {', '.join(ORDER_BY_VALUES)}")

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any], *, default_limit: int = DEFAULT_LIMIT) -> "EarthquakeQuery":
        """Build a query from loosely-typed request parameters.

        Unknown keys are ignored and empty strings count as absent. ``limit``
        and ``orderby`` fall back to their defaults when absent.
        """

        def _text(name: str) -> Optional[str]:
            value = params.get(name)
            if value is None or value == "":
                return None
            return str(value)

        def _number(name: str) -> Optional[float]:
            value = _text(name)
            if value is None:
                return None
            if not _DECIMAL_RE.fullmatch(value):
                raise ValueError(f"{name} must be a number")
            return float(value)

        limit_text = _text("limit")
        if limit_text is None:
            limit = default_limit
        elif _INTEGER_RE.fullmatch(limit_text):
            limit = int(limit_text)
        else:
            raise ValueError("limit must be an integer")

        return cls(
            starttime=_text("starttime"),
            endtime=_text("endtime"),
            minmagnitude=_number("minmagnitude"),
            maxmagnitude=_number("maxmagnitude"),
            limit=limit,
            orderby=_text("orderby") or DEFAULT_ORDER_BY,
        )

    def defined_params(self) -> List[Tuple[str, str]]:
        """Return ``(name, text)`` pairs for every defined field in declared order."""
        pairs: List[Tuple[str, str]] = []
        for field in fields(self):
            value = getattr(self, field.name)
            if value is None:
                continue
            pairs.append((field.name, format_param(value)))
        return pairs
