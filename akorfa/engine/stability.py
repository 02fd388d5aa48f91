"""
akorfa.engine.stability — Stability Equation
=============================================

    S = R * (L + G) / (|L - G| + C - A * n)

Inputs: Resources ``R``, Local strength ``L``, Global strength ``G``,
Coupling ``C``, Agreement ``A`` and scaling factor ``n``.

The denominator reaches zero or goes negative for ordinary inputs (high
agreement with low coupling).  That region is reported as
``StabilityResult(valid=False, score=None)`` — it is not an exception and
never a sentinel number — so a live preview can say "formula undefined for
these inputs" while a persistence path simply skips the write.

Pure calculation — no database I/O.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from numbers import Real
from typing import Any

from akorfa.errors import ValidationError

COMPONENTS: tuple[str, ...] = ("R", "L", "G", "C", "A", "n")

# Slider ranges of the calculator UI.  Informational: not enforced.
SLIDER_RANGES: dict[str, tuple[float, float | None]] = {
    "R": (0.0, None),
    "L": (0.0, 10.0),
    "G": (0.0, 10.0),
    "C": (0.1, 10.0),
    "A": (0.0, 1.0),
    "n": (1.0, 3.0),
}

UNDEFINED_MESSAGE = "formula undefined for these inputs"


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"Stability component {name} must be a number, got {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(f"Stability component {name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class StabilityVector:
    """The six inputs of the stability equation."""

    R: float
    L: float
    G: float
    C: float
    A: float
    n: float

    def __post_init__(self) -> None:
        for name in COMPONENTS:
            object.__setattr__(self, name, _as_number(name, getattr(self, name)))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StabilityVector:
        """Build from ``{"R": ..., "L": ..., ...}``; every key is required."""
        missing = [name for name in COMPONENTS if name not in raw]
        if missing:
            raise ValidationError(f"Missing stability components: {', '.join(missing)}")
        return cls(**{name: raw[name] for name in COMPONENTS})

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StabilityResult:
    """Outcome of :func:`compute_stability`.

    ``score`` is ``None`` exactly when ``valid`` is False.
    """

    valid: bool
    score: float | None
    denominator: float

    @property
    def message(self) -> str | None:
        return None if self.valid else UNDEFINED_MESSAGE

    def as_dict(self) -> dict:
        return {
            "valid": self.valid,
            "score": self.score,
            "denominator": self.denominator if math.isfinite(self.denominator) else None,
            "message": self.message,
        }


def compute_stability(vector: StabilityVector) -> StabilityResult:
    """Evaluate the stability equation for *vector*.

    Inputs so large that the denominator or the score overflows a float
    are outside the domain as well: a valid result always has a finite
    score.
    """
    denominator = abs(vector.L - vector.G) + vector.C - (vector.A * vector.n)
    if not math.isfinite(denominator) or denominator <= 0:
        return StabilityResult(valid=False, score=None, denominator=denominator)
    score = vector.R * (vector.L + vector.G) / denominator
    if not math.isfinite(score):
        return StabilityResult(valid=False, score=None, denominator=denominator)
    return StabilityResult(valid=True, score=score, denominator=denominator)
