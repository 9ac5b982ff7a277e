"""Task lifecycle operations across today / templates / backlog / plans.

Every operation takes the current AppState and returns a patch: a dict of
AppState attribute name -> new value. The state passed in is never
mutated. An empty dict means "nothing to do" (unknown id, empty title,
operation not valid in the current phase).
"""
from __future__ import annotations
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from budget import compute_budget
from diary import DEFAULT_HOME_COST, DEFAULT_LIBRARY_COST, parse_adjustment, parse_task_input
from models import AppState, PLANNING, ScheduleConfig, ScheduledTask, Task, new_id

Patch = Dict[str, Any]

FILLER_TITLE = '自由探索 / 休息'
DEFER_PREFIX = '(推迟)'
LIBRARY_KINDS = ('template', 'backlog')


def _find(tasks: List[Task], task_id: str) -> Optional[Task]:
    for task in tasks:
        if task.id == task_id:
            return task
    return None


# -------------------- today's list --------------------
def add_task(state: AppState, text: str, default_cost: int = DEFAULT_HOME_COST) -> Patch:
    title, cost = parse_task_input(text, default_cost)
    if not title:
        return {}
    task = Task(id=new_id(), title=title, cost=cost)
    return {'today_tasks': state.today_tasks + [task]}


def toggle_task(state: AppState, task_id: str) -> Patch:
    if _find(state.today_tasks, task_id) is None:
        return {}
    return {'today_tasks': [replace(t, completed=not t.completed) if t.id == task_id else t
                            for t in state.today_tasks]}


def set_task_cost(state: AppState, task_id: str, cost: int) -> Patch:
    if _find(state.today_tasks, task_id) is None:
        return {}
    return {'today_tasks': [replace(t, cost=cost) if t.id == task_id else t for t in state.today_tasks]}


def remove_task(state: AppState, task_id: str) -> Patch:
    if _find(state.today_tasks, task_id) is None:
        return {}
    return {'today_tasks': [t for t in state.today_tasks if t.id != task_id]}


def defer_task(state: AppState, task_id: str, today: Optional[date] = None) -> Patch:
    """Push a scheduled instance to the backlog, tagged with the deferral date."""
    task = _find(state.today_tasks, task_id)
    if task is None or not task.deferrable or state.phase != PLANNING:
        return {}
    stamp = (today or date.today()).strftime('%m-%d')
    deferred = Task(
        id=new_id(),
        title=f'{DEFER_PREFIX} {task.title} - {stamp}',
        cost=task.cost,
        type='backlog',
        note=task.note,
    )
    return {
        'today_tasks': [t for t in state.today_tasks if t.id != task_id],
        'backlog': state.backlog + [deferred],
    }


def fill_remaining(state: AppState) -> Patch:
    remaining = compute_budget(state).remaining
    if remaining <= 0:
        return {}
    filler = Task(id=new_id(), title=FILLER_TITLE, cost=remaining, type='filler')
    return {'today_tasks': state.today_tasks + [filler]}


def copy_from_library(state: AppState, template_id: str) -> Patch:
    template = _find(state.templates, template_id)
    if template is None:
        return {}
    copy = replace(template, id=new_id(), completed=False, type='normal')
    return {'today_tasks': state.today_tasks + [copy]}


def promote_from_backlog(state: AppState, backlog_id: str) -> Patch:
    item = _find(state.backlog, backlog_id)
    if item is None:
        return {}
    return {
        'backlog': [t for t in state.backlog if t.id != backlog_id],
        'today_tasks': state.today_tasks + [replace(item, completed=False, type='normal')],
    }


def scheduled_instance(plan: ScheduledTask) -> Task:
    return Task(
        id=new_id(),
        title=plan.title,
        cost=plan.cost,
        type='scheduled',
        note=plan.note or None,
        source_id=plan.id,
    )


def add_scheduled_instance(state: AppState, plan_id: str) -> Patch:
    """Manually add one occurrence of a plan, even if its target is already met."""
    plan = state.find_plan(plan_id)
    if plan is None:
        return {}
    return {'today_tasks': state.today_tasks + [scheduled_instance(plan)]}


# -------------------- library management --------------------
def add_library_item(state: AppState, text: str, kind: str) -> Patch:
    if kind not in LIBRARY_KINDS:
        raise ValueError(f'Unknown library kind: {kind}')
    title, cost = parse_task_input(text, DEFAULT_LIBRARY_COST)
    if not title:
        return {}
    item = Task(id=new_id(), title=title, cost=cost, type=kind)
    if kind == 'template':
        return {'templates': state.templates + [item]}
    return {'backlog': state.backlog + [item]}


def remove_library_item(state: AppState, item_id: str, kind: str) -> Patch:
    if kind not in LIBRARY_KINDS:
        raise ValueError(f'Unknown library kind: {kind}')
    attr = 'templates' if kind == 'template' else 'backlog'
    items: List[Task] = getattr(state, attr)
    if _find(items, item_id) is None:
        return {}
    return {attr: [t for t in items if t.id != item_id]}


def save_plan(state: AppState, title: str, cost: int, config: ScheduleConfig,
              note: str = '', plan_id: Optional[str] = None) -> Patch:
    """Create a plan, or replace the one with plan_id keeping its position."""
    title = title.strip()
    if not title:
        return {}
    existing = state.find_plan(plan_id) if plan_id else None
    plan = ScheduledTask(
        id=existing.id if existing else new_id(),
        title=title,
        cost=cost,
        config=config,
        note=note,
        created=datetime.now().isoformat(timespec='seconds'),
    )
    if existing is not None:
        return {'scheduled_tasks': [plan if p.id == existing.id else p for p in state.scheduled_tasks]}
    return {'scheduled_tasks': state.scheduled_tasks + [plan]}


def remove_plan(state: AppState, plan_id: str) -> Patch:
    if state.find_plan(plan_id) is None:
        return {}
    return {'scheduled_tasks': [p for p in state.scheduled_tasks if p.id != plan_id]}


# -------------------- diary & settings --------------------
def update_diary(state: AppState, text: str) -> Patch:
    return {'diary_content': text, 'diary_adjustment': parse_adjustment(text)}


def toggle_bottom_nav_offset(state: AppState) -> Patch:
    settings = state.settings
    return {'settings': replace(settings, bottom_nav_offset=not settings.bottom_nav_offset)}
