"""Recurring plans: weekday injection and frequency progress.

Weekday indices run 0 = Sunday ... 6 = Saturday.

History only stores completed titles, so completions of earlier days are
matched against the plan's *current* title. Renaming a plan therefore
drops its historical count; today's completions are matched by source_id
and are not affected.
"""
from __future__ import annotations
import logging
from datetime import date, datetime
from typing import List, NamedTuple, Optional

from lifecycle import Patch, scheduled_instance
from models import (AppState, MonthlyFrequency, PLANNING, ScheduledTask, SpecificDays,
                    Task, WeeklyFrequency)

logger = logging.getLogger(__name__)

WEEKLY_WINDOW_DAYS = 7


def weekday_index(on: date) -> int:
    # date.weekday() is Monday = 0
    return (on.weekday() + 1) % 7


def is_due(plan: ScheduledTask, on: date) -> bool:
    return isinstance(plan.config, SpecificDays) and weekday_index(on) in plan.config.days


def inject_due_tasks(state: AppState, today: Optional[date] = None) -> Patch:
    """Add one instance per due weekday plan not already present today.

    Only runs in PLANNING; re-running on the resulting state adds nothing.
    """
    if state.phase != PLANNING:
        return {}
    on = today or date.today()
    present = {t.source_id for t in state.today_tasks if t.source_id}
    added: List[Task] = []
    for plan in state.scheduled_tasks:
        if is_due(plan, on) and plan.id not in present:
            added.append(scheduled_instance(plan))
            present.add(plan.id)
    if not added:
        return {}
    logger.debug("Injected %d scheduled task(s) for %s", len(added), on.isoformat())
    return {'today_tasks': state.today_tasks + added}


def _parse_day(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _in_period(day: date, plan: ScheduledTask, now: date) -> bool:
    if isinstance(plan.config, MonthlyFrequency):
        return day.year == now.year and day.month == now.month
    return abs((now - day).days) < WEEKLY_WINDOW_DAYS


def count_completions(state: AppState, plan_id: str, now: Optional[date] = None) -> int:
    plan = state.find_plan(plan_id)
    if plan is None:
        return 0
    if isinstance(now, datetime):
        now = now.date()
    on = now or date.today()
    count = 0
    for record in state.history:
        day = _parse_day(record.date)
        if day is None or not _in_period(day, plan, on):
            continue
        if plan.title in record.completed_task_titles:
            count += 1
    count += sum(1 for t in state.today_tasks if t.completed and t.source_id == plan_id)
    return count


class Progress(NamedTuple):
    plan: ScheduledTask
    count: int
    target: int

    @property
    def satisfied(self) -> bool:
        return self.count >= self.target


def frequency_progress(state: AppState, now: Optional[date] = None) -> List[Progress]:
    """Progress for every weekly/monthly plan, in library order."""
    result: List[Progress] = []
    for plan in state.scheduled_tasks:
        if isinstance(plan.config, (WeeklyFrequency, MonthlyFrequency)):
            target = plan.config.target or 1
            result.append(Progress(plan, count_completions(state, plan.id, now), target))
    return result
