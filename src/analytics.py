"""Read-only views over the day history.

Nothing here is cached or persisted; every view is recomputed from the
history list on demand.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from diary import parse_adjustment
from models import DayRecord

AWAKENING = 'awakening'
REMAINING = 'remaining'
PERFECT_PLUS = 'perfect_plus'
PERFECT_MINUS = 'perfect_minus'
PERFECT = 'perfect'
NO_DATA = 'no_data'
CATEGORIES: Tuple[str, ...] = (AWAKENING, REMAINING, PERFECT_PLUS, PERFECT_MINUS, PERFECT, NO_DATA)

HEATMAP_DAYS = 30


def classify_day(record: Optional[DayRecord]) -> str:
    if record is None:
        return NO_DATA
    if record.awakening:
        return AWAKENING
    if record.final_balance > 0:
        return REMAINING
    # balance is exactly zero: the diary decides the shade
    adjustment = parse_adjustment(record.diary)
    if adjustment > 0:
        return PERFECT_PLUS
    if adjustment < 0:
        return PERFECT_MINUS
    return PERFECT


@dataclass(frozen=True)
class HeatmapCell:
    date: str
    category: str
    record: Optional[DayRecord] = None


def heatmap(history: Sequence[DayRecord], today: Optional[date] = None,
            days: int = HEATMAP_DAYS) -> List[HeatmapCell]:
    """One cell per calendar day, oldest first, ending today."""
    end = today or date.today()
    by_date: Dict[str, DayRecord] = {r.date: r for r in history}
    cells: List[HeatmapCell] = []
    for offset in range(days - 1, -1, -1):
        key = (end - timedelta(days=offset)).isoformat()
        record = by_date.get(key)
        cells.append(HeatmapCell(key, classify_day(record), record))
    return cells


def top_task(history: Sequence[DayRecord]) -> Optional[Tuple[str, int]]:
    """Most frequently completed title; ties go to the title seen first."""
    counts: Dict[str, int] = {}
    for record in history:
        for title in record.completed_task_titles:
            counts[title] = counts.get(title, 0) + 1
    best: Optional[str] = None
    best_count = 0
    for title, count in counts.items():
        if count > best_count:
            best, best_count = title, count
    return (best, best_count) if best is not None else None


@dataclass(frozen=True)
class Stats:
    days: int
    awakenings: int
    mean_tasks_completed: int


def rolling_stats(history: Sequence[DayRecord]) -> Stats:
    if not history:
        return Stats(days=0, awakenings=0, mean_tasks_completed=0)
    total = sum(r.tasks_completed for r in history)
    mean = (Decimal(total) / Decimal(len(history))).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return Stats(
        days=len(history),
        awakenings=sum(1 for r in history if r.awakening),
        mean_tasks_completed=int(mean),
    )


def diary_stream(history: Sequence[DayRecord]) -> List[DayRecord]:
    """History newest first, for reading back old diary entries."""
    return list(reversed(history))
