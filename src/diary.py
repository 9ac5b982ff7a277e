"""Integer-literal scanning for diary text and quick-add task input.

A literal is an optional '-' immediately followed by one or more ASCII
digits; scanning is greedy so "--12" yields -12 and "3-4" yields 3 and -4.
Nothing here raises: input without literals simply yields no numbers.
"""
from __future__ import annotations
from typing import Iterator, List, Optional, Tuple

DEFAULT_HOME_COST = 5
DEFAULT_LIBRARY_COST = 10


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def scan_integers(text: str) -> Iterator[int]:
    """Yield every signed integer literal in text, left to right."""
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == '-' and i + 1 < n and _is_digit(text[i + 1]):
            start = i
            i += 1
        elif _is_digit(ch):
            start = i
        else:
            i += 1
            continue
        while i < n and _is_digit(text[i]):
            i += 1
        yield int(text[start:i])


def parse_adjustment(text: str) -> int:
    """Sum of all integer literals in a diary entry ("tired -10 but +5 win" -> -5)."""
    return sum(scan_integers(text or ''))


def _leading_int(token: str) -> Optional[int]:
    """Integer prefix of token ("5x" -> 5, "-3kg" -> -3), None if there is none."""
    sign = token[:1] if token[:1] in ('-', '+') else ''
    end = len(sign)
    while end < len(token) and _is_digit(token[end]):
        end += 1
    if end == len(sign):
        return None
    return int(token[:end])


def parse_task_input(text: str, default_cost: int = DEFAULT_HOME_COST) -> Tuple[str, int]:
    """Split quick-add input into (title, cost).

    Trailing digits win ("阅读30" -> ("阅读", 30)); otherwise a last
    whitespace token starting with an integer ("read 5x" -> ("read", 5));
    otherwise default_cost. The returned
    title may be empty, callers treat that as "do nothing".
    """
    raw = (text or '').strip()
    end = len(raw)
    while end > 0 and _is_digit(raw[end - 1]):
        end -= 1
    if end < len(raw):
        return raw[:end].strip(), int(raw[end:])
    parts: List[str] = raw.split()
    if parts:
        maybe_cost = _leading_int(parts[-1])
        if maybe_cost is not None:
            return ' '.join(parts[:-1]).strip(), maybe_cost
    return raw, default_cost
