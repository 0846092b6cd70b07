"""
src/config.py

Runtime settings read from the environment, plus logging setup.
"""


import os
import logging
from enum import Enum
from typing import Optional


class Backend(str, Enum):

    OLLAMA = "ollama"
    OPENAI = "openai"

class TemperatureUnit(str, Enum):

    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


def _env_timeout(name: str) -> Optional[float]:
    """Read a timeout in seconds; unset, empty or "none" means no timeout."""

    raw = os.getenv(name, "").strip().lower()

    if raw in ("", "none", "0"):
        return None

    return float(raw)


# Defaults
OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
DEFAULT_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2")
DEFAULT_BACKEND: Backend = Backend(os.getenv("LLM_BACKEND", Backend.OLLAMA.value).lower())
REQUEST_TIMEOUT: Optional[float] = _env_timeout("LLM_REQUEST_TIMEOUT")
DEFAULT_UNIT: TemperatureUnit = TemperatureUnit.CELSIUS
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the app process."""

    resolved = logging.getLevelName((level or LOG_LEVEL).upper())

    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
# EOF
