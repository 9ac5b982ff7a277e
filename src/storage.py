"""Persistence helpers: snapshot load/save and backup export/import.

The whole AppState is stored as one JSON document. Saves replace the file
atomically (temp file + os.replace), never patch it in place.

Loading is forgiving: a missing or unreadable file gives the default
snapshot, a partial one is merged field by field over the default, and
individual malformed entries are skipped. Importing is strict: the
document is validated before anything on disk is touched.
"""
import json
import logging
import math
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

import config
from models import (AppSettings, AppState, DayRecord, PHASES, PLANNING, ScheduledTask, Task,
                    default_state)

logger = logging.getLogger(__name__)

T = TypeVar('T')
Document = Dict[str, Any]


class BackupImportError(ValueError):
    """Raised when a backup document is rejected; nothing was written."""


def _load_list(raw: Any, loader: Callable[[Mapping[str, Any]], T], label: str) -> List[T]:
    items: List[T] = []
    if not isinstance(raw, list):
        logger.warning("Expected a list for %s, got %s; using default", label, type(raw).__name__)
        return items
    for entry in raw:
        try:
            items.append(loader(entry))
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as exc:
            logger.warning("Skipping malformed %s entry %r: %s", label, entry, exc)
    return items


def state_from_document(data: Mapping[str, Any], today: Optional[date] = None) -> AppState:
    """Merge a (possibly partial) document over the default snapshot."""
    state = default_state(today)
    if 'baseMax' in data:
        try:
            state.base_max = int(data['baseMax'])
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring non-numeric baseMax %r", data['baseMax'])
    settings = data.get('settings')
    if isinstance(settings, Mapping):
        state.settings = AppSettings(
            bottom_nav_offset=bool(settings.get('bottomNavOffset', state.settings.bottom_nav_offset)))
    if isinstance(data.get('lastActiveDate'), str):
        state.last_active_date = data['lastActiveDate']
    if isinstance(data.get('diaryContent'), str):
        state.diary_content = data['diaryContent']
    if 'diaryAdjustment' in data:
        try:
            state.diary_adjustment = int(data['diaryAdjustment'])
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring non-numeric diaryAdjustment %r", data['diaryAdjustment'])
    if 'todayTasks' in data:
        state.today_tasks = _load_list(data['todayTasks'], Task.from_dict, 'todayTasks')
    if 'templates' in data:
        state.templates = _load_list(data['templates'], Task.from_dict, 'templates')
    if 'backlog' in data:
        state.backlog = _load_list(data['backlog'], Task.from_dict, 'backlog')
    if 'scheduledTasks' in data:
        state.scheduled_tasks = _load_list(data['scheduledTasks'], ScheduledTask.from_dict, 'scheduledTasks')
    if 'history' in data:
        state.history = _load_list(data['history'], DayRecord.from_dict, 'history')
    phase = data.get('phase', PLANNING)
    state.phase = phase if phase in PHASES else PLANNING
    return state


def validate_backup(data: Any) -> None:
    if not isinstance(data, dict):
        raise BackupImportError('Backup must be a JSON object')
    base_max = data.get('baseMax')
    if isinstance(base_max, bool) or not isinstance(base_max, (int, float)):
        raise BackupImportError('Backup is missing a numeric "baseMax" field')
    if not math.isfinite(base_max):
        raise BackupImportError(f'Backup "baseMax" must be a finite number, got {base_max}')
    if not isinstance(data.get('history'), list):
        raise BackupImportError('Backup is missing a "history" list')
    if not isinstance(data.get('templates'), list):
        raise BackupImportError('Backup is missing a "templates" list')


def backup_filename(on: Optional[date] = None) -> str:
    return f"willpower-backup-{(on or date.today()).isoformat()}.json"


class Storage:
    def __init__(self, path: Optional[Path] = None):
        self.path: Path = path or config.data_file()

    def load_snapshot(self, today: Optional[date] = None) -> AppState:
        """Load the stored snapshot; any problem yields the default one."""
        if not self.path.exists():
            return default_state(today)
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read snapshot %s (%s); starting from defaults", self.path, exc)
            return default_state(today)
        if not isinstance(data, dict):
            logger.warning("Snapshot %s is not a JSON object; starting from defaults", self.path)
            return default_state(today)
        return state_from_document(data, today)

    def save_snapshot(self, state: AppState) -> None:
        self._write_json(self.path, state.to_dict())

    def export_backup(self, state: AppState, directory: Optional[Path] = None,
                      today: Optional[date] = None) -> Path:
        """Write the full snapshot to a dated backup file and return its path."""
        target = (directory or config.backup_dir()) / backup_filename(today)
        self._write_json(target, state.to_dict())
        return target

    def import_backup(self, text: str, today: Optional[date] = None) -> AppState:
        """Validate and store a backup document, returning the state to reload.

        Raises BackupImportError without touching the stored snapshot when
        the document is not acceptable.
        """
        try:
            data = json.loads(text)
        except ValueError as exc:
            logger.warning("Rejected backup: %s", exc)
            raise BackupImportError(f'Backup is not valid JSON: {exc}') from exc
        try:
            validate_backup(data)
        except BackupImportError as exc:
            logger.warning("Rejected backup: %s", exc)
            raise
        state = state_from_document(data, today)
        self.save_snapshot(state)
        return state

    @staticmethod
    def _write_json(path: Path, data: Document) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix='.tmp', dir=str(path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
