# drvinf/inf/quoting.py
# -*- coding: utf-8 -*-
"""
Quote-aware helpers for INF value strings.

INF files have no backslash escaping: a double quote simply toggles an
"inside quotes" state. Doubled quotes inside REG_MULTI_SZ data are handled
by the registry codec, not here.
"""
from __future__ import annotations

from typing import List, Optional

QUOTE = '"'


def index_of_unquoted(s: str, ch: str, start: int = 0) -> Optional[int]:
    """
    Position of the first `ch` at or after `start` that is not inside a
    quoted span, or None.
    """
    if start >= len(s):
        return None
    in_quote = False
    for i in range(start, len(s)):
        cur = s[i]
        if cur == QUOTE:
            in_quote = not in_quote
        elif not in_quote and cur == ch:
            return i
    return None


def split_ignoring_quoted(s: str, sep: str) -> List[str]:
    """
    Split on unquoted separators. Quotes are kept in the fields and the
    trailing field is always emitted, even when empty:

        split_ignoring_quoted('a,"b,c",d', ',') == ['a', '"b,c"', 'd']
        split_ignoring_quoted('a,', ',') == ['a', '']
    """
    out: List[str] = []
    begin = 0
    idx = index_of_unquoted(s, sep)
    while idx is not None:
        out.append(s[begin:idx])
        begin = idx + 1
        idx = index_of_unquoted(s, sep, begin)
    out.append(s[begin:])
    return out


def has_unterminated_quote(s: str) -> bool:
    return s.count(QUOTE) % 2 == 1


def quote(s: str) -> str:
    return f"{QUOTE}{s}{QUOTE}"


def unquote(s: str) -> str:
    if len(s) >= 2 and s.startswith(QUOTE) and s.endswith(QUOTE):
        return s[1:-1]
    return s
