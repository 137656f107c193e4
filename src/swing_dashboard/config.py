from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from swing_dashboard.trading.models import LotMethod

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_REPORTING_CURRENCY = "USD"
DEFAULT_PERIOD = "ALL"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _load_env_file() -> dict[str, str]:
    """Read key=value pairs from .env at project root."""
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.exists():
        return {}
    result = {}
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        result[key.strip()] = value.strip()
    return result


def _env(name: str) -> str | None:
    """Environment variable, falling back to the project .env file."""
    value = os.environ.get(name)
    if value:
        return value
    return _load_env_file().get(name)


def _env_bool(name: str, default: bool) -> bool:
    value = (_env(name) or "").strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    lot_method: LotMethod = field(default_factory=lambda: LotMethod.parse(
        _env("SWING_LOT_METHOD") or LotMethod.FIFO.value
    ))
    include_fees: bool = field(default_factory=lambda: _env_bool("SWING_INCLUDE_FEES", True))
    include_dividends: bool = field(default_factory=lambda: _env_bool("SWING_INCLUDE_DIVIDENDS", True))
    reporting_currency: str = field(default_factory=lambda: (
        _env("SWING_REPORTING_CURRENCY") or DEFAULT_REPORTING_CURRENCY
    ).upper())
    default_period: str = field(default_factory=lambda: (
        _env("SWING_DEFAULT_PERIOD") or DEFAULT_PERIOD
    ).upper())
