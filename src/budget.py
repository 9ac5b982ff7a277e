"""Budget derivations for the current day.

The budget is advisory: remaining may go negative (overdraft) and no
operation is ever refused because of it.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

from models import AppState, PLANNING, Task


@dataclass(frozen=True)
class Budget:
    pool_max: int
    allocated_cost: int
    completed_cost: int
    remaining: int

    @property
    def overdraft(self) -> bool:
        return self.remaining < 0


def pool_max(state: AppState) -> int:
    return state.base_max + state.diary_adjustment


def allocated_cost(tasks: Iterable[Task]) -> int:
    return sum(t.cost for t in tasks)


def completed_cost(tasks: Iterable[Task]) -> int:
    return sum(t.cost for t in tasks if t.completed)


def compute_budget(state: AppState) -> Budget:
    """Planning shows what is left to allocate; execution what is left to spend."""
    pool = pool_max(state)
    allocated = allocated_cost(state.today_tasks)
    completed = completed_cost(state.today_tasks)
    remaining = pool - allocated if state.phase == PLANNING else pool - completed
    return Budget(pool_max=pool, allocated_cost=allocated, completed_cost=completed, remaining=remaining)
