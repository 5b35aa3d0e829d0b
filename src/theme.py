"""Color & style helpers.

Decisions:
- One colour per board status; header and ids use the primary colour.
- Truecolor preferred; falls back to 256-color cube if unsupported.
- Disables automatically when not a TTY unless FORCE_COLOR=1.
- Honors NO_COLOR for complete disable.
- Palette overrides via PLANNER_PRIMARY / PLANNER_<STATUS> (env or .env).
"""
from __future__ import annotations
import os, sys

from config import env

_FORCE = os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

def _code(part: str) -> str:
    return f"\033[{part}m" if _ENABLE else ''

def _hex_to_rgb(hex_code: str) -> tuple[int,int,int]:
    h = hex_code.lstrip('#')
    return int(h[0:2],16), int(h[2:4],16), int(h[4:6],16)

def _fg_256(r: int, g: int, b: int) -> str:
    """Approximate RGB to xterm 256-color cube."""
    def to_6(x: int) -> int:
        return int(round(x / 255 * 5))
    idx = 16 + 36 * to_6(r) + 6 * to_6(g) + to_6(b)
    return f"\033[38;5;{idx}m"

def _valid_hex(value: str) -> bool:
    h = value.lstrip('#')
    return len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h)

def _from_hex(hex_code: str) -> str:
    if not _ENABLE:
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return f"\033[38;2;{r};{g};{b}m"
    return _fg_256(r, g, b)

def _resolve(key: str, default: str) -> str:
    value = env(key)
    if value and _valid_hex(value):
        return '#' + value.lstrip('#')
    return default

RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')

HEX_PRIMARY = _resolve('PLANNER_PRIMARY', '#476EAE')
HEX_STATUS = {
    'icebox': _resolve('PLANNER_ICEBOX', '#9AA5B1'),
    'backlog': _resolve('PLANNER_BACKLOG', '#7F8FD1'),
    'todo': _resolve('PLANNER_TODO', '#48B3AF'),
    'in-progress': _resolve('PLANNER_INPROGRESS', '#F6FF99'),
    'review': _resolve('PLANNER_REVIEW', '#F2B880'),
    'done': _resolve('PLANNER_DONE', '#A7E399'),
}

PRIMARY = _from_hex(HEX_PRIMARY)
STATUS_COLOR = {status: _from_hex(h) for status, h in HEX_STATUS.items()}

HEADER_COLOR = PRIMARY
ID_COLOR = PRIMARY + BOLD
EMPTY_COLOR = DIM + PRIMARY
DATE_COLOR = DIM

def color(text: str, *styles: str) -> str:
    """Apply ANSI styles to a given text."""
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET

__all__ = [
    'color','RESET','BOLD','DIM','STATUS_COLOR','HEADER_COLOR','ID_COLOR','EMPTY_COLOR','DATE_COLOR',
    'HEX_PRIMARY','HEX_STATUS',
]
