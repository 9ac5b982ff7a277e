"""Runtime configuration.

Decisions:
- Priority: real environment variable > project .env file > default.
- The .env file is optional; malformed lines are skipped.
- Values are read on each call so tests can patch os.environ.
"""
from __future__ import annotations
import os
from pathlib import Path
from typing import Dict, Optional

ENV_FILE = Path(__file__).resolve().parent.parent / '.env'
KNOWN_KEYS = {
    'WILLPOWER_DATA_FILE', 'WILLPOWER_BACKUP_DIR', 'WILLPOWER_ALT_SCREEN', 'WILLPOWER_LOG_LEVEL',
    'WILLPOWER_PRIMARY', 'WILLPOWER_SCHEDULED', 'WILLPOWER_TEMPLATE', 'WILLPOWER_BACKLOG',
    'WILLPOWER_DONE', 'WILLPOWER_OVERDRAFT', 'WILLPOWER_PERFECT_PLUS', 'WILLPOWER_PERFECT_MINUS',
}
DEFAULT_DATA_FILE = Path.home() / '.willpower' / 'state.json'


def read_env_file(path: Path = ENV_FILE) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        k = k.strip()
        if k in KNOWN_KEYS:
            values[k] = v.strip().strip('"\'')
    return values


def get(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(key)
    if value:
        return value
    return read_env_file().get(key, default)


def truthy(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


def data_file() -> Path:
    value = get('WILLPOWER_DATA_FILE')
    return Path(value).expanduser() if value else DEFAULT_DATA_FILE


def backup_dir() -> Path:
    return Path(get('WILLPOWER_BACKUP_DIR') or '.').expanduser()


def alt_screen() -> bool:
    return truthy(get('WILLPOWER_ALT_SCREEN'), True)


def log_level() -> str:
    return (get('WILLPOWER_LOG_LEVEL') or 'WARNING').upper()
