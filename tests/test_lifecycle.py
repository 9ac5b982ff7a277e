from __future__ import annotations

import unittest
from dataclasses import replace
from datetime import date

import lifecycle
from budget import compute_budget
from models import (AppState, EXECUTION, PLANNING, ScheduledTask, SpecificDays, Task,
                    WeeklyFrequency, default_state)


def apply(state: AppState, patch: dict) -> AppState:
    return replace(state, **patch)


def _plan(plan_id: str = "p1", title: str = "Gym") -> ScheduledTask:
    return ScheduledTask(id=plan_id, title=title, cost=20, config=WeeklyFrequency(3), note="legs")


class TodayListTests(unittest.TestCase):
    def test_add_task_parses_cost(self) -> None:
        state = apply(default_state(), lifecycle.add_task(default_state(), "阅读 30"))
        self.assertEqual(len(state.today_tasks), 1)
        task = state.today_tasks[0]
        self.assertEqual((task.title, task.cost, task.type, task.completed), ("阅读", 30, "normal", False))

    def test_add_task_defaults_and_empty_title(self) -> None:
        state = default_state()
        self.assertEqual(lifecycle.add_task(state, "stretch")["today_tasks"][0].cost, 5)
        self.assertEqual(lifecycle.add_task(state, "25"), {})
        self.assertEqual(lifecycle.add_task(state, "   "), {})

    def test_ids_are_unique(self) -> None:
        state = default_state()
        for _ in range(3):
            state = apply(state, lifecycle.add_task(state, "same 5"))
        self.assertEqual(len({t.id for t in state.today_tasks}), 3)

    def test_toggle_does_not_mutate_input(self) -> None:
        state = AppState(today_tasks=[Task(id="a", title="Read", cost=10)])
        patched = apply(state, lifecycle.toggle_task(state, "a"))
        self.assertTrue(patched.today_tasks[0].completed)
        self.assertFalse(state.today_tasks[0].completed)
        again = apply(patched, lifecycle.toggle_task(patched, "a"))
        self.assertFalse(again.today_tasks[0].completed)
        self.assertEqual(lifecycle.toggle_task(state, "missing"), {})

    def test_set_cost_and_remove(self) -> None:
        state = AppState(today_tasks=[Task(id="a", title="Read", cost=10), Task(id="b", title="Run", cost=5)])
        state = apply(state, lifecycle.set_task_cost(state, "a", 40))
        self.assertEqual(state.today_tasks[0].cost, 40)
        state = apply(state, lifecycle.remove_task(state, "a"))
        self.assertEqual([t.id for t in state.today_tasks], ["b"])


class DeferTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduled = Task(id="s", title="Gym", cost=20, type="scheduled", note="legs", source_id="p1")
        self.normal = Task(id="n", title="Mail", cost=5)
        self.state = AppState(today_tasks=[self.scheduled, self.normal], backlog=[])

    def test_defer_moves_scheduled_task_to_backlog(self) -> None:
        state = apply(self.state, lifecycle.defer_task(self.state, "s", date(2026, 11, 28)))
        self.assertEqual([t.id for t in state.today_tasks], ["n"])
        self.assertEqual(len(state.backlog), 1)
        deferred = state.backlog[0]
        self.assertEqual(deferred.title, "(推迟) Gym - 11-28")
        self.assertEqual(deferred.type, "backlog")
        self.assertEqual(deferred.note, "legs")
        self.assertIsNone(deferred.source_id)
        self.assertNotEqual(deferred.id, "s")

    def test_defer_rejects_other_types_and_execution(self) -> None:
        self.assertEqual(lifecycle.defer_task(self.state, "n"), {})
        executing = replace(self.state, phase=EXECUTION)
        self.assertEqual(lifecycle.defer_task(executing, "s"), {})


class FillRemainingTests(unittest.TestCase):
    def test_fill_zeroes_remaining(self) -> None:
        state = AppState(base_max=100, today_tasks=[Task(id="a", title="Read", cost=30)])
        state = apply(state, lifecycle.fill_remaining(state))
        filler = state.today_tasks[-1]
        self.assertEqual(filler.type, "filler")
        self.assertEqual(filler.cost, 70)
        self.assertEqual(compute_budget(state).remaining, 0)

    def test_fill_in_execution_uses_completed_cost(self) -> None:
        state = AppState(base_max=100, phase=EXECUTION,
                         today_tasks=[Task(id="a", title="Read", cost=30, completed=True),
                                      Task(id="b", title="Run", cost=50)])
        state = apply(state, lifecycle.fill_remaining(state))
        self.assertEqual(state.today_tasks[-1].cost, 70)
        self.assertFalse(state.today_tasks[-1].completed)

    def test_fill_is_noop_without_remaining(self) -> None:
        state = AppState(base_max=30, today_tasks=[Task(id="a", title="Read", cost=30)])
        self.assertEqual(lifecycle.fill_remaining(state), {})
        self.assertEqual(lifecycle.fill_remaining(replace(state, diary_adjustment=-10)), {})


class LibraryTests(unittest.TestCase):
    def test_copy_from_template_keeps_template(self) -> None:
        state = default_state()
        state = apply(state, lifecycle.copy_from_library(state, "t1"))
        self.assertEqual(len(state.templates), 2)
        copy = state.today_tasks[0]
        self.assertEqual((copy.title, copy.cost, copy.type), ("晨间阅读", 10, "normal"))
        self.assertNotEqual(copy.id, "t1")

    def test_promote_from_backlog_removes_entry(self) -> None:
        state = default_state()
        state = apply(state, lifecycle.promote_from_backlog(state, "b1"))
        self.assertEqual(state.backlog, [])
        self.assertEqual(state.today_tasks[0].title, "整理桌面")
        self.assertEqual(state.today_tasks[0].type, "normal")

    def test_promoted_item_starts_uncompleted(self) -> None:
        done = Task(id="b9", title="Tidy", cost=5, completed=True, type="backlog")
        state = AppState(backlog=[done])
        state = apply(state, lifecycle.promote_from_backlog(state, "b9"))
        self.assertEqual(state.today_tasks[0].id, "b9")
        self.assertFalse(state.today_tasks[0].completed)
        self.assertEqual(compute_budget(state).completed_cost, 0)

    def test_add_scheduled_instance_tags_source(self) -> None:
        state = AppState(scheduled_tasks=[_plan()])
        state = apply(state, lifecycle.add_scheduled_instance(state, "p1"))
        state = apply(state, lifecycle.add_scheduled_instance(state, "p1"))
        self.assertEqual([t.source_id for t in state.today_tasks], ["p1", "p1"])
        self.assertEqual(state.today_tasks[0].type, "scheduled")
        self.assertEqual(state.today_tasks[0].note, "legs")
        self.assertEqual(lifecycle.add_scheduled_instance(state, "nope"), {})

    def test_library_items_use_library_default_cost(self) -> None:
        state = AppState()
        state = apply(state, lifecycle.add_library_item(state, "Meditate", "template"))
        state = apply(state, lifecycle.add_library_item(state, "Taxes 40", "backlog"))
        self.assertEqual((state.templates[0].cost, state.templates[0].type), (10, "template"))
        self.assertEqual((state.backlog[0].cost, state.backlog[0].type), (40, "backlog"))
        state = apply(state, lifecycle.remove_library_item(state, state.backlog[0].id, "backlog"))
        self.assertEqual(state.backlog, [])
        with self.assertRaises(ValueError):
            lifecycle.add_library_item(state, "x", "history")

    def test_save_plan_creates_and_replaces(self) -> None:
        state = AppState()
        state = apply(state, lifecycle.save_plan(state, "Swim", 15, SpecificDays(frozenset({1, 3}))))
        plan_id = state.scheduled_tasks[0].id
        state = apply(state, lifecycle.save_plan(state, "Swim far", 25, WeeklyFrequency(2), plan_id=plan_id))
        self.assertEqual(len(state.scheduled_tasks), 1)
        plan = state.scheduled_tasks[0]
        self.assertEqual((plan.id, plan.title, plan.cost, plan.config), (plan_id, "Swim far", 25, WeeklyFrequency(2)))
        self.assertEqual(lifecycle.save_plan(state, "  ", 5, WeeklyFrequency(1)), {})
        state = apply(state, lifecycle.remove_plan(state, plan_id))
        self.assertEqual(state.scheduled_tasks, [])


class DiaryAndSettingsTests(unittest.TestCase):
    def test_update_diary_sets_adjustment(self) -> None:
        patch = lifecycle.update_diary(AppState(), "tired -10 but +5 win")
        self.assertEqual(patch, {"diary_content": "tired -10 but +5 win", "diary_adjustment": -5})

    def test_toggle_bottom_nav_offset(self) -> None:
        state = AppState()
        state = apply(state, lifecycle.toggle_bottom_nav_offset(state))
        self.assertTrue(state.settings.bottom_nav_offset)


if __name__ == "__main__":
    unittest.main()
