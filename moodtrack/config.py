"""Runtime settings, resolved from arguments, then environment, then defaults."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .store import DEFAULT_CAPACITY, STORAGE_KEY
from .suggestions import DEFAULT_SUGGESTION_URL, DEFAULT_TIMEOUT

logger = logging.getLogger("moodtrack")

DEFAULT_DATA_DIR = "./moodtrack_data"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    data_dir: str = DEFAULT_DATA_DIR
    storage_key: str = STORAGE_KEY
    capacity: int = DEFAULT_CAPACITY
    suggestion_url: str = DEFAULT_SUGGESTION_URL
    suggestion_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """Build settings from ``MOODTRACK_*`` variables.

        Keyword *overrides* that are not None win over the environment.
        Unparseable numbers fall back to the default with a warning.
        """
        env = os.environ if environ is None else environ
        values = {
            "data_dir": env.get("MOODTRACK_DATA_DIR", DEFAULT_DATA_DIR),
            "storage_key": env.get("MOODTRACK_STORAGE_KEY", STORAGE_KEY),
            "capacity": _parse(env, "MOODTRACK_CAPACITY", int, DEFAULT_CAPACITY),
            "suggestion_url": env.get("MOODTRACK_SUGGESTION_URL", DEFAULT_SUGGESTION_URL),
            "suggestion_timeout": _parse(
                env, "MOODTRACK_SUGGESTION_TIMEOUT", float, DEFAULT_TIMEOUT,
            ),
            "log_level": env.get("MOODTRACK_LOG_LEVEL", "WARNING").upper(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse(env: Mapping[str, str], name: str, kind, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = kind(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a valid %s", name, raw, kind.__name__)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def configure_logging(level: str = "WARNING") -> None:
    """Attach a stderr handler to the root logger. Only entry points call this."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.WARNING), format=LOG_FORMAT)
