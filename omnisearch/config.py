"""Runtime settings read from the environment."""

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .backend import DEFAULT_REQUEST_TIMEOUT, DEFAULT_STARTUP_TIMEOUT

logger = logging.getLogger(__name__)

# Default state location
DEFAULT_STATE_PATH = Path.home() / ".cache" / "omnisearch" / "session.json"
DEFAULT_SERVER_COMMAND = "omnisearch-server"

SERVER_ENV = "OMNISEARCH_SERVER"
STARTUP_TIMEOUT_ENV = "OMNISEARCH_STARTUP_TIMEOUT"
REQUEST_TIMEOUT_ENV = "OMNISEARCH_REQUEST_TIMEOUT"
STATE_PATH_ENV = "OMNISEARCH_STATE_PATH"


@dataclass
class Settings:
    server_command: list[str] = field(default_factory=lambda: [DEFAULT_SERVER_COMMAND])
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    state_path: Path = DEFAULT_STATE_PATH

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from OMNISEARCH_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        settings = cls()

        command = env.get(SERVER_ENV)
        if command:
            settings.server_command = shlex.split(command)
        settings.startup_timeout = _float_env(env, STARTUP_TIMEOUT_ENV, settings.startup_timeout)
        settings.request_timeout = _float_env(env, REQUEST_TIMEOUT_ENV, settings.request_timeout)
        state_path = env.get(STATE_PATH_ENV)
        if state_path:
            settings.state_path = Path(state_path).expanduser()
        return settings


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default
