"""Runtime configuration.

Values come from real environment variables first, then from an optional
project ``.env`` file, then from the defaults below. Recognised keys all
start with ``PLANNER_``.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Dict, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE = PROJECT_ROOT / '.env'
DEFAULT_DATA_FILE = PROJECT_ROOT / 'data' / 'planner.json'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def read_env_file(path: Path = ENV_FILE) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` lines; blank lines and ``#`` comments ignored."""
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        k = k.strip()
        if k.startswith('PLANNER_'):
            values[k] = v.strip().strip('"').strip("'")
    return values


try:
    _ENV_OVERRIDES = read_env_file()
except OSError:
    _ENV_OVERRIDES = {}


def env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name)
    if value:
        return value
    return _ENV_OVERRIDES.get(name, default)


def truthy_env(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


def data_file() -> Path:
    raw = env('PLANNER_DATA_FILE')
    return Path(raw).expanduser() if raw else DEFAULT_DATA_FILE


def alt_screen_enabled() -> bool:
    return truthy_env(env('PLANNER_ALT_SCREEN'), True)


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure root logging once.

    Default level is WARNING so log lines do not tear up the board; set
    PLANNER_LOG_FILE to send them somewhere else.
    """
    level_name = (level or env('PLANNER_LOG_LEVEL') or 'WARNING').upper()
    numeric = getattr(logging, level_name, None)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    target = log_file or env('PLANNER_LOG_FILE')
    handlers = [logging.FileHandler(target, encoding='utf-8')] if target else [logging.StreamHandler()]
    logging.basicConfig(level=numeric, format=LOG_FORMAT, handlers=handlers, force=True)
    logger.debug("Logging configured at %s", level_name)
