"""Session: the single writer of AppState, plus the terminal board view.

Every user action produces a patch (see lifecycle.py / rollover.py);
Session.apply merges it, re-checks weekday plans when the phase or the
plan list changes (and on load) and persists the whole snapshot. A
scheduled task removed or deferred during planning stays gone.
Persistence failures are logged, not raised: the in-memory state stays
authoritative until the next successful save.
"""
from __future__ import annotations
import logging
import shutil
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional

import analytics
import lifecycle
import rollover
import schedule
from budget import Budget, compute_budget
from models import AppState, DayRecord, PLANNING, Task
from storage import Storage
from theme import (BOLD, DONE, EMPTY_COLOR, HEADER_COLOR, HEATMAP_COLOR, INDEX_COLOR, OVERDRAFT,
                   STRIKE, TYPE_COLOR, color)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
HEATMAP_GLYPH = {'no_data': '·'}
# weekday plans are re-checked only when one of these changes
SCHEDULE_TRIGGERS = frozenset({'phase', 'scheduled_tasks'})


class Session:
    def __init__(self, storage: Storage, state: Optional[AppState] = None,
                 clock: Callable[[], date] = date.today):
        self.storage = storage
        self.clock = clock
        self.state: AppState = state if state is not None else storage.load_snapshot(clock())
        self._evaluate_schedule()

    # -------------------- state updates --------------------
    def apply(self, patch: lifecycle.Patch) -> bool:
        """Merge a patch and persist. Returns False for an empty (no-op) patch."""
        if not patch:
            return False
        self.state = replace(self.state, **patch)
        if SCHEDULE_TRIGGERS.intersection(patch):
            self._evaluate_schedule()
        self.save()
        return True

    def _evaluate_schedule(self) -> None:
        if self.state.phase != PLANNING:
            return
        patch = schedule.inject_due_tasks(self.state, self.clock())
        if patch:
            self.state = replace(self.state, **patch)

    def save(self) -> None:
        try:
            self.storage.save_snapshot(self.state)
        except OSError as exc:
            logger.error("Failed to save snapshot to %s: %s", self.storage.path, exc)

    def reload(self, state: AppState) -> None:
        self.state = state
        self._evaluate_schedule()

    @property
    def budget(self) -> Budget:
        return compute_budget(self.state)

    # -------------------- actions --------------------
    def close_day(self) -> DayRecord:
        before = len(self.state.history)
        self.apply(rollover.close_day(self.state, self.clock()))
        return self.state.history[before]

    def task_at(self, number: int) -> Optional[Task]:
        """1-based position in today's list, as displayed."""
        idx = number - 1
        if 0 <= idx < len(self.state.today_tasks):
            return self.state.today_tasks[idx]
        return None

    # -------------------- display --------------------
    def display(self) -> None:
        width = shutil.get_terminal_size((80, 30)).columns
        for line in self.render_board(width):
            print(line)

    def render_board(self, width: int = 80) -> List[str]:
        state = self.state
        b = self.budget
        phase_label = 'PLANNING' if state.phase == PLANNING else 'EXECUTION'
        remaining = color(str(b.remaining), OVERDRAFT, BOLD) if b.overdraft else color(str(b.remaining), BOLD)
        lines = [
            color(f"{phase_label}  {state.last_active_date}", HEADER_COLOR) + f"   {remaining} / {b.pool_max} WP",
            self._bar(b, width),
        ]
        if state.diary_content:
            lines.append(color(f"diary: {state.diary_content}", EMPTY_COLOR))
        if state.diary_adjustment:
            lines.append(color(f"adjustment: {state.diary_adjustment:+d}", EMPTY_COLOR))
        lines.append('')
        if not state.today_tasks:
            lines.append(color('(no tasks yet)', EMPTY_COLOR))
        for number, task in enumerate(state.today_tasks, start=1):
            lines.append(self._task_line(number, task))
        return lines

    def _bar(self, b: Budget, width: int) -> str:
        inner = max(10, min(width, 60) - 2)
        if b.overdraft:
            return '[' + color('!' * inner, OVERDRAFT) + ']'
        ratio = 0.0 if b.pool_max <= 0 else min(1.0, b.remaining / b.pool_max)
        filled = int(round(ratio * inner))
        return '[' + '#' * filled + '-' * (inner - filled) + ']'

    def _task_line(self, number: int, task: Task) -> str:
        mark = ''
        if self.state.phase != PLANNING:
            mark = '[x] ' if task.completed else '[ ] '
        title = task.title
        if task.completed:
            title = color(title, DONE, STRIKE)
        else:
            title = color(title, TYPE_COLOR.get(task.type, ''))
        line = f"{color(f'{number:>2}.', INDEX_COLOR)} {mark}{title}  {task.cost}"
        if task.note:
            line += color(f"  ({task.note})", EMPTY_COLOR)
        return line

    def render_library(self) -> List[str]:
        state = self.state
        lines = [color('Plans', HEADER_COLOR)]
        progress = {p.plan.id: p for p in schedule.frequency_progress(state, self.clock())}
        for number, plan in enumerate(state.scheduled_tasks, start=1):
            detail = describe_config(plan.config)
            if plan.id in progress:
                p = progress[plan.id]
                detail += f"  {p.count}/{p.target}" + (' done' if p.satisfied else '')
            lines.append(f"  p{number}. {color(plan.title, TYPE_COLOR['scheduled'])}  {plan.cost}  [{detail}]")
        lines.append(color('Templates', HEADER_COLOR))
        for number, item in enumerate(state.templates, start=1):
            lines.append(f"  t{number}. {color(item.title, TYPE_COLOR['template'])}  {item.cost}")
        lines.append(color('Backlog', HEADER_COLOR))
        for number, item in enumerate(state.backlog, start=1):
            lines.append(f"  b{number}. {color(item.title, TYPE_COLOR['backlog'])}  {item.cost}")
        if not (state.scheduled_tasks or state.templates or state.backlog):
            lines.append(color('  (library is empty)', EMPTY_COLOR))
        return lines

    def render_stats(self) -> List[str]:
        history = self.state.history
        stats = analytics.rolling_stats(history)
        top = analytics.top_task(history)
        cells = analytics.heatmap(history, self.clock())
        strip = ''.join(color(HEATMAP_GLYPH.get(c.category, '■'), HEATMAP_COLOR[c.category]) for c in cells)
        lines = [
            color('Base capacity', HEADER_COLOR) + f"  {self.state.base_max} WP",
            color('Last 30 days', HEADER_COLOR) + f"  {strip}",
            f"days: {stats.days}  awakenings: {stats.awakenings}  avg tasks: {stats.mean_tasks_completed}",
            f"top task: {top[0]} ({top[1]}x)" if top else 'top task: -',
        ]
        for record in analytics.diary_stream(history)[:5]:
            lines.append(f"  {record.date}  {record.final_balance:+d}  {record.diary or '...'}")
        return lines

    def __str__(self) -> str:
        return (f'{self.state.phase}: {len(self.state.today_tasks)} tasks, '
                f'{len(self.state.backlog)} in backlog, {len(self.state.history)} days')


def describe_config(config) -> str:
    mode = config.mode
    if mode == 'specific_days':
        return 'days: ' + (', '.join(WEEKDAY_NAMES[d] for d in sorted(config.days)) or '-')
    if mode == 'weekly_frequency':
        return f'{config.target}x / week'
    return f'{config.target}x / month'
