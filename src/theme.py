"""Color & style helpers.

Decisions:
- Truecolor preferred; falls back to 256-color cube if unsupported.
- Disables automatically when not a TTY unless FORCE_COLOR=1.
- Honors NO_COLOR for complete disable.
- Palette overrides come from the environment or the project .env file
  (see config.py), e.g. WILLPOWER_SCHEDULED=#E0B84C.
"""
from __future__ import annotations
import os, sys

import config

_FORCE = os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

_HEX_DIGITS = frozenset('0123456789abcdefABCDEF')

def _sgr(*params: object) -> str:
    """Escape sequence for the given SGR parameters, or '' with color off."""
    return f"\033[{';'.join(str(p) for p in params)}m" if _ENABLE else ''

def foreground(hex_code: str, truecolor: bool) -> str:
    """Foreground escape for '#RRGGBB'; snaps to the xterm 6x6x6 cube without truecolor."""
    rgb = bytes.fromhex(hex_code.lstrip('#'))
    if truecolor:
        return "\033[38;2;{};{};{}m".format(*rgb)
    r, g, b = (round(c * 5 / 255) for c in rgb)
    return f"\033[38;5;{16 + 36 * r + 6 * g + b}m"

def _palette(key: str, default: str) -> str:
    value = config.get(key) or default
    h = value.lstrip('#')
    if len(h) != 6 or not _HEX_DIGITS.issuperset(h):
        value = default
    return foreground(value, _USE_TRUECOLOR) if _ENABLE else ''

RESET = _sgr(0)
BOLD = _sgr(1)
DIM = _sgr(2)
STRIKE = _sgr(9)

PRIMARY = _palette('WILLPOWER_PRIMARY', '#57534E')
SCHEDULED = _palette('WILLPOWER_SCHEDULED', '#CA8A04')
TEMPLATE = _palette('WILLPOWER_TEMPLATE', '#DB2777')
BACKLOG = _palette('WILLPOWER_BACKLOG', '#2563EB')
DONE = _palette('WILLPOWER_DONE', '#A8A29E')
OVERDRAFT = _palette('WILLPOWER_OVERDRAFT', '#EF4444')

HEADER_COLOR = PRIMARY + BOLD
INDEX_COLOR = PRIMARY + BOLD
EMPTY_COLOR = DIM + PRIMARY
TYPE_COLOR = {
    'scheduled': SCHEDULED,
    'template': TEMPLATE,
    'backlog': BACKLOG,
    'filler': DIM,
    'normal': '',
}

# heatmap glyph colors, keyed by analytics category
HEATMAP_COLOR = {
    'awakening': OVERDRAFT,
    'remaining': DONE,
    'perfect_plus': _palette('WILLPOWER_PERFECT_PLUS', '#047857'),
    'perfect_minus': _palette('WILLPOWER_PERFECT_MINUS', '#6EE7B7'),
    'perfect': BACKLOG,
    'no_data': DIM,
}

def color(text: str, *styles: str) -> str:
    """Apply ANSI styles to a given text."""
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET

__all__ = [
    'color','RESET','BOLD','DIM','STRIKE','PRIMARY','SCHEDULED','TEMPLATE','BACKLOG','DONE',
    'OVERDRAFT','HEADER_COLOR','INDEX_COLOR','EMPTY_COLOR','TYPE_COLOR','HEATMAP_COLOR',
]
