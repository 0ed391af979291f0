"""
Aurora Configuration - Environment-based with sensible defaults

All settings come from AURORA_* environment variables. Secrets and
deployment specifics belong in the environment; everything else has a
default that works for a single venue installation.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


def _env_bool(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in ('1', 'true', 'yes')


def _env_origins(value: Optional[str]) -> List[str]:
    origins = [o.strip() for o in (value or '*').split(',') if o.strip()]
    return origins or ['*']


@dataclass
class CoreConfig:
    """Runtime configuration of the show core."""
    api_port: int = 8892
    db_path: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), "aurora-core.db"))
    tapes_file: Optional[str] = None
    lights_tick_ms: int = 25
    centurion_tick_ms: int = 50
    strict_invariants: bool = False
    log_level: str = 'INFO'
    log_dir: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: ['*'])

    @property
    def lights_tick_interval(self) -> float:
        return self.lights_tick_ms / 1000.0

    @property
    def centurion_tick_interval(self) -> float:
        return self.centurion_tick_ms / 1000.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CoreConfig":
        """Build a config from the process environment (or the given mapping)."""
        env = os.environ if environ is None else environ
        config = cls()
        config.api_port = int(env.get('AURORA_API_PORT', config.api_port))
        config.db_path = env.get('AURORA_DB_PATH', config.db_path)
        config.tapes_file = env.get('AURORA_TAPES_FILE') or None
        # Tick intervals below 1ms would spin the timer threads
        config.lights_tick_ms = max(1, int(env.get('AURORA_LIGHTS_TICK_MS', config.lights_tick_ms)))
        config.centurion_tick_ms = max(1, int(env.get('AURORA_CENTURION_TICK_MS', config.centurion_tick_ms)))
        config.strict_invariants = _env_bool(env.get('AURORA_STRICT_INVARIANTS'))
        config.log_level = env.get('AURORA_LOG_LEVEL', config.log_level).upper()
        config.log_dir = env.get('AURORA_LOG_DIR') or None
        config.cors_origins = _env_origins(env.get('AURORA_CORS_ORIGINS'))
        return config
