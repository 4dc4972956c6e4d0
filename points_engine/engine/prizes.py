"""Weighted prize tables and the prize selector used by spin and scratch games.

Selection is pure with respect to the random source passed in: the caller
supplies anything with a ``random()`` method returning a float in [0, 1)
(``random.Random`` instances, the ``random`` module, or a test double).
Writing the prize to the ledger is a separate step.
"""

from __future__ import annotations

import bisect
import itertools
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

TOTAL_WEIGHT = 100.0
WEIGHT_TOLERANCE = 1e-6


class RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(frozen=True)
class PrizeTableEntry:
    """One slice of a prize wheel or scratch card."""

    label: str
    points: int
    weight: float


def validate_prize_table(table: Sequence[PrizeTableEntry]) -> None:
    """Raise ValueError unless ``table`` is a usable weighted prize table."""
    if not table:
        raise ValueError("Prize table must contain at least one entry")
    for entry in table:
        if entry.weight < 0:
            raise ValueError(f"Prize {entry.label!r} has a negative weight")
        if entry.points <= 0:
            raise ValueError(f"Prize {entry.label!r} must award a positive amount")
    total = sum(entry.weight for entry in table)
    if abs(total - TOTAL_WEIGHT) > WEIGHT_TOLERANCE:
        raise ValueError(f"Prize weights must sum to {TOTAL_WEIGHT:g}, got {total:g}")


def select_prize(
    table: Sequence[PrizeTableEntry],
    rng: RandomSource | None = None,
) -> PrizeTableEntry:
    """Draw one prize: first entry whose cumulative weight exceeds the draw."""
    source = rng or random
    draw = source.random() * TOTAL_WEIGHT
    cumulative = 0.0
    for entry in table:
        cumulative += entry.weight
        if draw < cumulative:
            return entry
    # Float drift can leave the final cumulative sum just under the draw.
    return table[0]


class CumulativePrizeTable:
    """Prize table with precomputed cumulative weights for O(log n) draws.

    Produces exactly the same entry as :func:`select_prize` for any draw.
    """

    def __init__(self, entries: Sequence[PrizeTableEntry]) -> None:
        validate_prize_table(entries)
        self.entries = tuple(entries)
        self.cumulative = list(itertools.accumulate(entry.weight for entry in self.entries))

    def __len__(self) -> int:
        return len(self.entries)

    def entry_for_draw(self, draw: float) -> PrizeTableEntry:
        """Return the entry selected by a draw in [0, 100)."""
        index = bisect.bisect_right(self.cumulative, draw)
        if index >= len(self.entries):
            return self.entries[0]
        return self.entries[index]

    def select(self, rng: RandomSource | None = None) -> PrizeTableEntry:
        """Draw one prize from the table."""
        source = rng or random
        return self.entry_for_draw(source.random() * TOTAL_WEIGHT)


def _standard_table() -> tuple[PrizeTableEntry, ...]:
    return (
        PrizeTableEntry("10 Points", 10, 30),
        PrizeTableEntry("25 Points", 25, 25),
        PrizeTableEntry("50 Points", 50, 20),
        PrizeTableEntry("5 Points", 5, 15),
        PrizeTableEntry("100 Points", 100, 7),
        PrizeTableEntry("200 Points", 200, 2.5),
        PrizeTableEntry("500 Points", 500, 0.4),
        PrizeTableEntry("1000 Points", 1000, 0.1),
    )


SPIN_PRIZES = CumulativePrizeTable(_standard_table())
SCRATCH_PRIZES = CumulativePrizeTable(_standard_table())

PRIZE_TABLES: dict[str, CumulativePrizeTable] = {
    "spin": SPIN_PRIZES,
    "scratch": SCRATCH_PRIZES,
}

# Wins at or above this value are surfaced as "big wins" in history views.
BIG_WIN_THRESHOLD = 100


def is_big_win(prize: PrizeTableEntry) -> bool:
    """Return True for prizes highlighted as big wins."""
    return prize.points >= BIG_WIN_THRESHOLD
