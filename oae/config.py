import os
from dataclasses import dataclass
from typing import Optional

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class EmitterConfig:
    """
    Per-emitter settings for the ambient concerns around dispatch.

    name:    label used in log lines and span attributes
    debug:   log every emission at INFO instead of DEBUG
    tracing: wrap each dispatch in an OpenTelemetry span
    metrics: record Prometheus counters for each dispatch
    """
    name: Optional[str] = None
    debug: bool = False
    tracing: bool = True
    metrics: bool = True

    @classmethod
    def from_env(cls, name: Optional[str] = None) -> "EmitterConfig":
        """
        Build a config from OAE_* environment variables.
        An explicit name wins over OAE_EMITTER_NAME.
        """
        return cls(
            name=name or os.getenv("OAE_EMITTER_NAME"),
            debug=_env_flag("OAE_DEBUG", False),
            tracing=_env_flag("OAE_TRACING", True),
            metrics=_env_flag("OAE_METRICS", True),
        )
