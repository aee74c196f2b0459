"""Configuration for the task timer service.

Settings come from environment variables, optionally seeded from a ``.env``
file next to this module.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_HOME = Path.home() / ".task-timers"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass
class TimerSettings:
    db_path: Path = field(default_factory=lambda: DEFAULT_HOME / "timers.db")
    port: int = 7788
    agent_id: str = "local-agent"
    max_age_hours: int = 24
    tick_seconds: int = 1
    crash_log_path: Path = field(default_factory=lambda: DEFAULT_HOME / "crash.log")

    @property
    def max_age_ms(self) -> int:
        return self.max_age_hours * 60 * 60 * 1000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TimerSettings":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            db_path=Path(env.get("TASK_TIMERS_DB") or defaults.db_path).expanduser(),
            port=_int_env(env, "TASK_TIMERS_PORT", defaults.port),
            agent_id=env.get("TASK_TIMERS_AGENT_ID") or defaults.agent_id,
            max_age_hours=_int_env(env, "TASK_TIMERS_MAX_AGE_HOURS", defaults.max_age_hours),
            tick_seconds=_int_env(env, "TASK_TIMERS_TICK_SECONDS", defaults.tick_seconds),
            crash_log_path=Path(env.get("TASK_TIMERS_CRASH_LOG") or defaults.crash_log_path).expanduser(),
        )


def load_settings() -> TimerSettings:
    """Load .env (if present) and build settings from the environment."""
    load_dotenv(Path(__file__).parent / ".env")
    return TimerSettings.from_env()
