"""Phase transitions: start of execution and close of day.

close_day is the only producer of DayRecords and the only place base_max
changes. It works on already-loaded in-memory state and cannot fail.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import List, Optional

from budget import completed_cost, pool_max
from lifecycle import Patch
from models import AppState, DayRecord, EXECUTION, PLANNING, Task, today_str

logger = logging.getLogger(__name__)

CAPACITY_FLOOR = 40
CAPACITY_STEP = 10


def start_execution(state: AppState) -> Patch:
    if state.phase != PLANNING:
        return {}
    return {'phase': EXECUTION}


def next_base_max(base_max: int, final_balance: int) -> int:
    """Unspent budget shrinks tomorrow's capacity, never below the floor."""
    if final_balance > 0:
        return max(CAPACITY_FLOOR, base_max - CAPACITY_STEP)
    return base_max


def close_day(state: AppState, today: Optional[date] = None) -> Patch:
    tasks = state.today_tasks
    spent = completed_cost(tasks)
    final_balance = pool_max(state) - spent
    completed = [t for t in tasks if t.completed]

    record = DayRecord(
        date=state.last_active_date,
        diary=state.diary_content,
        base_max=state.base_max,
        final_balance=final_balance,
        awakening=final_balance < 0,
        tasks_completed=len(completed),
        total_cost_consumed=spent,
        completed_task_titles=tuple(t.title for t in completed if t.counts_in_titles),
    )
    # incomplete filler and scheduled instances are dropped
    carried: List[Task] = [Task(id=t.id, title=t.title, cost=t.cost, type='backlog', note=t.note)
                           for t in tasks if not t.completed and t.carries_over]
    base_max = next_base_max(state.base_max, final_balance)
    logger.info("Closed %s: balance=%d awakening=%s base_max %d -> %d",
                record.date, final_balance, record.awakening, state.base_max, base_max)
    return {
        'base_max': base_max,
        'history': state.history + [record],
        'backlog': state.backlog + carried,
        'today_tasks': [],
        'diary_content': '',
        'diary_adjustment': 0,
        'phase': PLANNING,
        'last_active_date': today_str(today),
    }
