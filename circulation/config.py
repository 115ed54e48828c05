"""Environment-backed configuration for the circulation engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from environs import Env

env = Env()

log = logging.getLogger(__name__)

_DEFAULT_TIMEZONE = "UTC"


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(frozen=True)
class CirculationEnv:
    timezone: str
    policy_dir: Optional[Path]
    strict_policy_schema: bool
    debug: bool

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)

    @classmethod
    def from_env(cls) -> "CirculationEnv":
        """Load circulation configuration from environment variables."""

        return load_circulation_env()


def resolve_timezone(name: Optional[str]) -> tzinfo:
    text = (name or "").strip()
    if not text or text.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(text)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("CIRCULATION_TIMEZONE_UNKNOWN timezone=%s fallback=UTC", text)
        return timezone.utc


def load_circulation_env() -> CirculationEnv:
    timezone_name = env.str("CIRCULATION_TIMEZONE", _DEFAULT_TIMEZONE) or _DEFAULT_TIMEZONE
    policy_dir_raw = env.str("CIRCULATION_POLICY_DIR", "") or ""
    return CirculationEnv(
        timezone=timezone_name.strip() or _DEFAULT_TIMEZONE,
        policy_dir=Path(policy_dir_raw).expanduser() if policy_dir_raw.strip() else None,
        strict_policy_schema=env_bool("CIRCULATION_STRICT_POLICY_SCHEMA", False),
        debug=env_bool("CIRCULATION_DEBUG", False),
    )


def system_now() -> datetime:
    """Current UTC time for callers that orchestrate a computation."""

    return datetime.now(timezone.utc)


__all__ = [
    "CirculationEnv",
    "env_bool",
    "load_circulation_env",
    "resolve_timezone",
    "system_now",
]
