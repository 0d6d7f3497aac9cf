"""Runtime configuration — env-driven via pydantic-settings.

Reads ``NOTCH_BUILD_*`` environment variables and an optional ``.env``
file.  The wrapper and the listener both build a fresh ``NotchSettings``
per invocation so that environment overrides are picked up at call time.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 34345
DEFAULT_LOG_LEVEL = "INFO"


class NotchSettings(BaseSettings):
    """Listener endpoint and timing settings.

    Examples
    --------
    Override via environment::

        export NOTCH_BUILD_HOST=127.0.0.1
        export NOTCH_BUILD_PORT=40000
        export NOTCH_BUILD_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NOTCH_BUILD_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Loopback endpoint shared by wrapper and listener
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    log_level: str = DEFAULT_LOG_LEVEL

    # Seconds in SUCCESS before the indicator returns to IDLE
    auto_idle_delay: float = 2.0

    # Fire-and-forget connect timeout
    connect_timeout: float = 0.5

    read_chunk_size: int = 4096

    @field_validator("port", mode="before")
    @classmethod
    def _fallback_port(cls, value: Any) -> Any:
        """Unparseable or out-of-range ports fall back to the default."""
        try:
            port = int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring invalid port %r; using %d.", value, DEFAULT_PORT
            )
            return DEFAULT_PORT
        if not 0 <= port <= 65535:
            logger.warning(
                "Port %d out of range; using %d.", port, DEFAULT_PORT
            )
            return DEFAULT_PORT
        return port

    @field_validator("log_level", mode="before")
    @classmethod
    def _fallback_log_level(cls, value: Any) -> Any:
        """Unknown level names fall back to INFO."""
        level = str(value).strip().upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning(
                "Ignoring invalid log level %r; using %s.", value, DEFAULT_LOG_LEVEL
            )
            return DEFAULT_LOG_LEVEL
        return level
