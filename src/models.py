"""Data models for the willpower budget tracker.

Decisions:
- Persisted keys keep the camelCase names of the original document format
  (baseMax, todayTasks, sourceId, ...) so backups stay interchangeable.
  Python attributes are snake_case; conversion lives in to_dict/from_dict.
- Task capabilities (deferrable, counted in titles, carried to backlog) are
  derived from the type tag here, once, instead of at every call site.
- ScheduleConfig is a closed set of three frozen variants; only the field
  belonging to the active variant is ever serialised.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union
import uuid

logger = logging.getLogger(__name__)

TASK_TYPES: Tuple[str, ...] = ("normal", "template", "backlog", "filler", "scheduled")
PLANNING = "PLANNING"
EXECUTION = "EXECUTION"
PHASES: Tuple[str, ...] = (PLANNING, EXECUTION)


def new_id() -> str:
    return uuid.uuid4().hex


def today_str(on: Optional[date] = None) -> str:
    return (on or date.today()).isoformat()


@dataclass
class Task:
    """A single task instance.

    Fields:
        id: Opaque unique id, never reassigned once created.
        title: Free text.
        cost: Willpower points consumed on completion.
        completed: Only meaningful during EXECUTION.
        type: One of TASK_TYPES.
        note: Optional free text carried along with copies.
        source_id: Id of the ScheduledTask this instance came from.
    """
    id: str
    title: str
    cost: int
    completed: bool = False
    type: str = "normal"
    note: Optional[str] = None
    source_id: Optional[str] = None

    @property
    def deferrable(self) -> bool:
        return self.type == "scheduled"

    @property
    def counts_in_titles(self) -> bool:
        return self.type != "filler"

    @property
    def carries_over(self) -> bool:
        return self.type not in ("filler", "scheduled")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'title': self.title,
            'cost': self.cost,
            'completed': self.completed,
            'type': self.type,
        }
        if self.note is not None:
            data['note'] = self.note
        if self.source_id is not None:
            data['sourceId'] = self.source_id
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Task":
        task_type = raw.get('type', 'normal')
        if task_type not in TASK_TYPES:
            task_type = 'normal'
        return cls(
            id=str(raw.get('id') or new_id()),
            title=str(raw['title']),
            cost=int(raw.get('cost', 0)),
            completed=bool(raw.get('completed', False)),
            type=task_type,
            note=raw.get('note'),
            source_id=raw.get('sourceId'),
        )


# -------------------- schedule configuration --------------------
@dataclass(frozen=True)
class SpecificDays:
    """Inject an instance on each listed weekday (0 = Sunday ... 6 = Saturday)."""
    days: FrozenSet[int] = frozenset()
    mode = "specific_days"

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': self.mode, 'days': sorted(self.days)}


@dataclass(frozen=True)
class WeeklyFrequency:
    target: int = 1
    mode = "weekly_frequency"

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': self.mode, 'targetCount': self.target}


@dataclass(frozen=True)
class MonthlyFrequency:
    target: int = 1
    mode = "monthly_frequency"

    def to_dict(self) -> Dict[str, Any]:
        return {'mode': self.mode, 'targetCount': self.target}


ScheduleConfig = Union[SpecificDays, WeeklyFrequency, MonthlyFrequency]


def config_from_dict(raw: Mapping[str, Any]) -> ScheduleConfig:
    mode = raw.get('mode')
    if mode == 'weekly_frequency':
        return WeeklyFrequency(target=int(raw.get('targetCount') or 1))
    if mode == 'monthly_frequency':
        return MonthlyFrequency(target=int(raw.get('targetCount') or 1))
    if mode != 'specific_days':
        logger.warning("Unknown schedule mode %r; treating as specific_days", mode)
    days = frozenset(int(d) for d in (raw.get('days') or []) if 0 <= int(d) <= 6)
    return SpecificDays(days=days)


@dataclass
class ScheduledTask:
    """A recurring-task definition; instances are plain Tasks with source_id set."""
    id: str
    title: str
    cost: int
    config: ScheduleConfig
    note: str = ''
    created: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'cost': self.cost,
            'note': self.note,
            'created': self.created,
            'config': self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ScheduledTask":
        return cls(
            id=str(raw.get('id') or new_id()),
            title=str(raw['title']),
            cost=int(raw.get('cost', 0)),
            config=config_from_dict(raw.get('config') or {}),
            note=str(raw.get('note') or ''),
            created=str(raw.get('created') or ''),
        )


# -------------------- history --------------------
@dataclass(frozen=True)
class DayRecord:
    date: str
    diary: str
    base_max: int
    final_balance: int
    awakening: bool
    tasks_completed: int
    total_cost_consumed: int
    completed_task_titles: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'diary': self.diary,
            'baseMax': self.base_max,
            'finalBalance': self.final_balance,
            'awakening': self.awakening,
            'tasksCompleted': self.tasks_completed,
            'totalCostConsumed': self.total_cost_consumed,
            'completedTaskTitles': list(self.completed_task_titles),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DayRecord":
        final_balance = int(raw['finalBalance'])
        return cls(
            date=str(raw['date']),
            diary=str(raw.get('diary') or ''),
            base_max=int(raw.get('baseMax', 0)),
            final_balance=final_balance,
            awakening=bool(raw.get('awakening', final_balance < 0)),
            tasks_completed=int(raw.get('tasksCompleted', 0)),
            total_cost_consumed=int(raw.get('totalCostConsumed', 0)),
            completed_task_titles=tuple(str(t) for t in (raw.get('completedTaskTitles') or [])),
        )


@dataclass(frozen=True)
class AppSettings:
    bottom_nav_offset: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'bottomNavOffset': self.bottom_nav_offset}


@dataclass
class AppState:
    """The whole persisted snapshot. Exactly one live instance per session."""
    base_max: int = 100
    settings: AppSettings = field(default_factory=AppSettings)
    last_active_date: str = field(default_factory=today_str)
    diary_content: str = ''
    diary_adjustment: int = 0
    today_tasks: List[Task] = field(default_factory=list)
    templates: List[Task] = field(default_factory=list)
    backlog: List[Task] = field(default_factory=list)
    scheduled_tasks: List[ScheduledTask] = field(default_factory=list)
    phase: str = PLANNING
    history: List[DayRecord] = field(default_factory=list)

    def find_plan(self, plan_id: str) -> Optional[ScheduledTask]:
        for plan in self.scheduled_tasks:
            if plan.id == plan_id:
                return plan
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'baseMax': self.base_max,
            'settings': self.settings.to_dict(),
            'lastActiveDate': self.last_active_date,
            'diaryContent': self.diary_content,
            'diaryAdjustment': self.diary_adjustment,
            'todayTasks': [t.to_dict() for t in self.today_tasks],
            'templates': [t.to_dict() for t in self.templates],
            'backlog': [t.to_dict() for t in self.backlog],
            'scheduledTasks': [p.to_dict() for p in self.scheduled_tasks],
            'phase': self.phase,
            'history': [r.to_dict() for r in self.history],
        }


def default_state(on: Optional[date] = None) -> AppState:
    """Fresh snapshot used on first run and whenever the stored one is unusable."""
    return AppState(
        base_max=100,
        last_active_date=today_str(on),
        templates=[
            Task(id='t1', title='晨间阅读', cost=10, type='template'),
            Task(id='t2', title='深蹲 50 次', cost=15, type='template'),
        ],
        backlog=[Task(id='b1', title='整理桌面', cost=5, type='backlog')],
    )
