"""Data-driven heuristic power tables.

Each table is an ordered list of ``(pattern, watts)`` rows. The match rule
is: the first row whose regular expression is found (``re.search``,
case-insensitive) in the model name wins; when no row matches the table's
default is returned. Row order therefore encodes precedence.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

__all__ = ["CPU_TDP_TABLE", "GPU_POWER_TABLE", "PatternRow", "PatternTable"]


@dataclass(frozen=True, slots=True)
class PatternRow:
    """One ``pattern -> watts`` rule."""

    pattern: str
    watts: float
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(self.pattern, re.IGNORECASE))

    def matches(self, model: str) -> bool:
        return self._regex.search(model) is not None


@dataclass(frozen=True, slots=True)
class PatternTable:
    """Ordered pattern table with a default fallback."""

    rows: tuple[PatternRow, ...]
    default: float

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[str, float]], default: float
    ) -> PatternTable:
        return cls(
            rows=tuple(PatternRow(pattern, float(watts)) for pattern, watts in pairs),
            default=float(default),
        )

    def lookup(self, model: str | None) -> float:
        """Return the wattage of the first matching row, else the default."""
        if model:
            for row in self.rows:
                if row.matches(model):
                    return row.watts
        return self.default

    def extended(self, pairs: Iterable[tuple[str, float]]) -> PatternTable:
        """Return a copy with ``pairs`` taking precedence over existing rows."""
        extra = tuple(PatternRow(pattern, float(watts)) for pattern, watts in pairs)
        return PatternTable(rows=extra + self.rows, default=self.default)

    def __iter__(self) -> Iterator[PatternRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


CPU_TDP_TABLE = PatternTable.from_pairs(
    [
        # Intel desktop tiers
        (r"\bi3\b", 35),
        (r"\bi5\b", 65),
        (r"\bi7\b", 95),
        (r"\bi9\b", 125),
        (r"xeon", 150),
        # AMD
        (r"ryzen 3\b", 65),
        (r"ryzen 5\b", 95),
        (r"ryzen 7\b", 105),
        (r"ryzen 9\b", 125),
        (r"threadripper", 280),
        # Mobile suffixes on the model number, e.g. "1165G7U", "8250U", "4800H"
        (r"\d{3,5}[a-z]?\d?[uy]\b", 15),
        (r"\d{3,5}h[sxk]?\b", 45),
    ],
    default=85,
)

GPU_POWER_TABLE = PatternTable.from_pairs(
    [
        (r"rtx 4090", 450),
        (r"rtx 4080", 320),
        (r"rtx 4070", 200),
        (r"rtx 3090", 350),
        (r"rtx 3080", 320),
        (r"rtx 3070", 220),
        (r"rtx 3060", 170),
        (r"rx 7900", 300),
        (r"rx 6900", 300),
        (r"rx 6800", 250),
        (r"rx 6700", 180),
    ],
    default=150,
)
