"""Interactive REPL for the willpower board.

Task numbers refer to positions in today's list as displayed; library
entries are addressed as p<n> (plans), t<n> (templates) and b<n>
(backlog), matching the `lib` listing.
"""
from pathlib import Path
from typing import List, Optional, Tuple

import click

import config
import lifecycle
import rollover
from diary import DEFAULT_LIBRARY_COST, parse_task_input
from models import EXECUTION, MonthlyFrequency, ScheduleConfig, SpecificDays, WeeklyFrequency
from session import Session
from storage import BackupImportError

# --- terminal control helpers ---
# ESC[3J (scrollback), ESC[H (home), ESC[2J (screen), ESC[H (home); 3J first
# is more reliable in some terminals.
def _clear_screen() -> None:
    click.echo("\033[3J\033[H\033[2J\033[H", nl=False)


def _enter_alt_screen() -> None:
    click.echo("\033[?1049h", nl=False)


def _leave_alt_screen() -> None:
    click.echo("\033[?1049l", nl=False)


def parse_schedule_spec(spec: str) -> Optional[ScheduleConfig]:
    """days:0,3,5 | week:N | month:N -> config, None if malformed."""
    kind, _, value = spec.partition(':')
    kind = kind.lower()
    try:
        if kind == 'days':
            days = frozenset(int(d) for d in value.split(',') if d.strip())
            if not days or any(d < 0 or d > 6 for d in days):
                return None
            return SpecificDays(days=days)
        if kind in ('week', 'month'):
            target = int(value)
            if target < 1:
                return None
            return WeeklyFrequency(target) if kind == 'week' else MonthlyFrequency(target)
    except ValueError:
        return None
    return None


def _library_ref(token: str) -> Tuple[str, int]:
    """'t2' -> ('t', 2); ('', 0) if the token is not a library reference."""
    if len(token) >= 2 and token[0].lower() in 'ptb' and token[1:].isdigit():
        return token[0].lower(), int(token[1:])
    return '', 0


class CLI:
    def __init__(self, session: Session):
        self.session: Session = session
        self.alt_screen: bool = config.alt_screen()
        self.message: Optional[str] = None

    def run(self) -> None:
        """Main REPL loop; the board is cleared and redrawn every cycle."""
        exit_message: Optional[str] = None
        if self.alt_screen:
            _enter_alt_screen()
        try:
            while True:
                _clear_screen()
                self.session.display()
                if self.message:
                    click.echo(f"\n{self.message}")
                    self.message = None
                line = input("\n: ").strip()
                if not line:
                    continue
                lower = line.lower()
                if lower == 'help':
                    _clear_screen()
                    self._help()
                    input("\nPress Enter to return to the board...")
                    continue
                if lower == 'exit':
                    self.session.save()
                    exit_message = "Goodbye."
                    break
                self.handle_command(line)
        except (KeyboardInterrupt, EOFError):
            self.session.save()
            exit_message = "Interrupted. Goodbye."
        finally:
            if self.alt_screen:
                _leave_alt_screen()
            if exit_message:
                click.echo(exit_message)

    # -------------------- command dispatch --------------------
    def handle_command(self, line: str) -> None:
        tokens = line.split()
        if not tokens:
            return
        cmd, rest = tokens[0].lower(), line[len(tokens[0]):].strip()
        handler = getattr(self, f'_cmd_{cmd}', None)
        if handler is None:
            self.message = "Unknown command. Type 'help' for instructions."
            return
        handler(tokens, rest)

    def _task_id(self, tokens: List[str], usage: str) -> Optional[str]:
        if len(tokens) < 2 or not tokens[1].rstrip('.').isdigit():
            self.message = usage
            return None
        task = self.session.task_at(int(tokens[1].rstrip('.')))
        if task is None:
            self.message = f'No task #{tokens[1]}.'
            return None
        return task.id

    # ---- today's list ----
    def _cmd_add(self, tokens: List[str], rest: str) -> None:
        if not self.session.apply(lifecycle.add_task(self.session.state, rest)):
            self.message = "Title required."

    def _cmd_do(self, tokens: List[str], rest: str) -> None:
        task_id = self._task_id(tokens, "Usage: do <n>")
        if task_id:
            if self.session.state.phase != EXECUTION:
                self.message = "Tasks are ticked off during execution ('go' to start)."
                return
            self.session.apply(lifecycle.toggle_task(self.session.state, task_id))

    def _cmd_cost(self, tokens: List[str], rest: str) -> None:
        task_id = self._task_id(tokens, "Usage: cost <n> <cost>")
        if task_id:
            if len(tokens) != 3 or not tokens[2].lstrip('-').isdigit():
                self.message = "Usage: cost <n> <cost>"
                return
            self.session.apply(lifecycle.set_task_cost(self.session.state, task_id, int(tokens[2])))

    def _cmd_rm(self, tokens: List[str], rest: str) -> None:
        task_id = self._task_id(tokens, "Usage: rm <n>")
        if task_id:
            self.session.apply(lifecycle.remove_task(self.session.state, task_id))

    def _cmd_defer(self, tokens: List[str], rest: str) -> None:
        task_id = self._task_id(tokens, "Usage: defer <n>")
        if task_id:
            patch = lifecycle.defer_task(self.session.state, task_id, self.session.clock())
            if not self.session.apply(patch):
                self.message = "Only scheduled tasks can be deferred, and only while planning."

    def _cmd_fill(self, tokens: List[str], rest: str) -> None:
        if not self.session.apply(lifecycle.fill_remaining(self.session.state)):
            self.message = "Nothing left to fill."

    def _cmd_diary(self, tokens: List[str], rest: str) -> None:
        self.session.apply(lifecycle.update_diary(self.session.state, rest))

    # ---- library ----
    def _cmd_lib(self, tokens: List[str], rest: str) -> None:
        self.message = '\n'.join(self.session.render_library())

    def _cmd_use(self, tokens: List[str], rest: str) -> None:
        kind, number = _library_ref(tokens[1]) if len(tokens) == 2 else ('', 0)
        state = self.session.state
        items = {'p': state.scheduled_tasks, 't': state.templates, 'b': state.backlog}.get(kind, [])
        if not 1 <= number <= len(items):
            self.message = "Usage: use p<n>|t<n>|b<n> (see 'lib')"
            return
        item_id = items[number - 1].id
        if kind == 'p':
            self.session.apply(lifecycle.add_scheduled_instance(state, item_id))
        elif kind == 't':
            self.session.apply(lifecycle.copy_from_library(state, item_id))
        else:
            self.session.apply(lifecycle.promote_from_backlog(state, item_id))

    def _cmd_template(self, tokens: List[str], rest: str) -> None:
        if not self.session.apply(lifecycle.add_library_item(self.session.state, rest, 'template')):
            self.message = "Title required."

    def _cmd_backlog(self, tokens: List[str], rest: str) -> None:
        if not self.session.apply(lifecycle.add_library_item(self.session.state, rest, 'backlog')):
            self.message = "Title required."

    def _cmd_drop(self, tokens: List[str], rest: str) -> None:
        kind, number = _library_ref(tokens[1]) if len(tokens) == 2 else ('', 0)
        state = self.session.state
        if kind == 'p' and 1 <= number <= len(state.scheduled_tasks):
            self.session.apply(lifecycle.remove_plan(state, state.scheduled_tasks[number - 1].id))
            return
        items = {'t': state.templates, 'b': state.backlog}.get(kind, [])
        if not 1 <= number <= len(items):
            self.message = "Usage: drop p<n>|t<n>|b<n>"
            return
        self.session.apply(lifecycle.remove_library_item(
            state, items[number - 1].id, 'template' if kind == 't' else 'backlog'))

    def _cmd_plan(self, tokens: List[str], rest: str) -> None:
        self._save_plan(tokens[1:], None)

    def _cmd_replan(self, tokens: List[str], rest: str) -> None:
        kind, number = _library_ref(tokens[1]) if len(tokens) > 1 else ('', 0)
        plans = self.session.state.scheduled_tasks
        if kind != 'p' or not 1 <= number <= len(plans):
            self.message = "Usage: replan p<n> <title> <cost> <days:0,3|week:N|month:N> [note=...]"
            return
        self._save_plan(tokens[2:], plans[number - 1].id)

    def _save_plan(self, args: List[str], plan_id: Optional[str]) -> None:
        usage = "Usage: plan <title> <cost> <days:0,3|week:N|month:N> [note=...]"
        note = ''
        words = []
        for arg in args:
            if arg.startswith('note='):
                note = arg[len('note='):]
            else:
                words.append(arg)
        if len(words) < 2:
            self.message = usage
            return
        schedule_config = parse_schedule_spec(words[-1])
        if schedule_config is None:
            self.message = usage
            return
        title, cost = parse_task_input(' '.join(words[:-1]), DEFAULT_LIBRARY_COST)
        if not self.session.apply(lifecycle.save_plan(
                self.session.state, title, cost, schedule_config, note=note, plan_id=plan_id)):
            self.message = usage

    # ---- phases ----
    def _cmd_go(self, tokens: List[str], rest: str) -> None:
        if not self.session.apply(rollover.start_execution(self.session.state)):
            self.message = "Already executing."

    def _cmd_newday(self, tokens: List[str], rest: str) -> None:
        record = self.session.close_day()
        if record.awakening:
            self.message = f"Awakening! You went {-record.final_balance} WP past your limit."
        else:
            self.message = f"A new day begins. Base capacity: {self.session.state.base_max} WP."

    # ---- views & settings ----
    def _cmd_stats(self, tokens: List[str], rest: str) -> None:
        self.message = '\n'.join(self.session.render_stats())

    def _cmd_settings(self, tokens: List[str], rest: str) -> None:
        self.session.apply(lifecycle.toggle_bottom_nav_offset(self.session.state))
        offset = self.session.state.settings.bottom_nav_offset
        self.message = f"Bottom navigation offset: {'on' if offset else 'off'}"

    def _cmd_import(self, tokens: List[str], rest: str) -> None:
        if not rest:
            self.message = "Usage: import <file>"
            return
        try:
            with open(rest, 'r', encoding='utf-8') as f:
                text = f.read()
            state = self.session.storage.import_backup(text, self.session.clock())
        except (OSError, UnicodeDecodeError) as exc:
            self.message = f"Could not read {rest}: {exc}"
            return
        except BackupImportError as exc:
            self.message = f"Import failed: {exc}"
            return
        self.session.reload(state)
        self.message = "Backup imported."

    def _cmd_export(self, tokens: List[str], rest: str) -> None:
        directory = None
        if rest:
            directory = Path(rest)
        try:
            path = self.session.storage.export_backup(self.session.state, directory, self.session.clock())
        except OSError as exc:
            self.message = f"Export failed: {exc}"
            return
        self.message = f"Backup written to {path}"

    # -------------------- help --------------------
    def _help(self) -> None:
        click.echo("Commands:")
        click.echo("  add <title> [cost]      Add a task to today (cost defaults to 5; '读书20' works too)")
        click.echo("  do <n>                  Tick / untick task n (execution phase)")
        click.echo("  cost <n> <cost>         Change the cost of task n")
        click.echo("  rm <n>                  Remove task n")
        click.echo("  defer <n>               Push scheduled task n to the backlog (planning phase)")
        click.echo("  fill                    Fill the remaining budget with a free-time task")
        click.echo("  diary <text>            Write today's diary; numbers in it adjust the pool")
        click.echo("  lib                     Show plans (p), templates (t) and backlog (b)")
        click.echo("  use p<n>|t<n>|b<n>      Bring a library entry into today")
        click.echo("  template <title> [cost] Add a template (cost defaults to 10)")
        click.echo("  backlog <title> [cost]  Add a backlog item (cost defaults to 10)")
        click.echo("  drop p<n>|t<n>|b<n>     Delete a library entry")
        click.echo("  plan <title> <cost> <days:0,3|week:N|month:N> [note=...]")
        click.echo("                          Create a recurring plan (days: 0 = Sunday)")
        click.echo("  replan p<n> ...         Replace plan n, same arguments as plan")
        click.echo("  go                      Finish planning, start execution")
        click.echo("  newday                  Close the day and start planning the next one")
        click.echo("  stats                   Capacity, 30-day heatmap and history")
        click.echo("  settings                Toggle the bottom navigation offset")
        click.echo("  export [dir]            Write a dated backup file")
        click.echo("  import <file>           Replace all data with a backup file")
        click.echo("  help                    Show this help (press Enter to return)")
        click.echo("  exit                    Save and exit")
