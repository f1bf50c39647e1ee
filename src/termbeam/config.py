"""
Client Configuration

Default values live in module constants; ClientConfig.from_env() lets the
TERMBEAM_* environment variables override them, and the CLI overrides the
environment.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:8080"
MAX_CONNECTION_RETRIES = 3  # quick health probes before asking the user
CONNECTION_RETRY_DELAY = 2.0  # seconds between health probes
MAX_MESSAGE_HISTORY = 100  # messages kept per session for /history
MAX_RECONNECT_ATTEMPTS = 3
RECONNECT_DELAY_STEP = 2.0  # seconds added per reconnect attempt
RECONNECT_DELAY_CAP = 10.0  # upper bound for a single reconnect delay
HISTORY_FETCH_LIMIT = 50  # messages preloaded when joining a room
REQUEST_TIMEOUT = 10.0  # total timeout for one directory request
CLEANUP_TIMEOUT = 3.0  # upper bound for shutdown cleanup
LOG_FILE = "term_beam.log"
LOG_LEVEL = "WARNING"


@dataclass
class ClientConfig:
    """Runtime configuration for the chat client."""

    default_server_url: str = DEFAULT_SERVER_URL
    max_connection_retries: int = MAX_CONNECTION_RETRIES
    connection_retry_delay: float = CONNECTION_RETRY_DELAY
    max_message_history: int = MAX_MESSAGE_HISTORY
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    reconnect_delay_step: float = RECONNECT_DELAY_STEP
    reconnect_delay_cap: float = RECONNECT_DELAY_CAP
    history_fetch_limit: int = HISTORY_FETCH_LIMIT
    request_timeout: float = REQUEST_TIMEOUT
    cleanup_timeout: float = CLEANUP_TIMEOUT
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "ClientConfig":
        """
        Build a configuration from TERMBEAM_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            ClientConfig with overrides applied. Unparseable integers are
            logged and ignored.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if env.get("TERMBEAM_SERVER"):
            config.default_server_url = env["TERMBEAM_SERVER"]
        if env.get("TERMBEAM_LOG_FILE"):
            config.log_file = env["TERMBEAM_LOG_FILE"]
        if env.get("TERMBEAM_LOG_LEVEL"):
            config.log_level = env["TERMBEAM_LOG_LEVEL"].upper()

        config.max_connection_retries = _int_from_env(
            env, "TERMBEAM_CONNECTION_RETRIES", config.max_connection_retries
        )
        config.max_reconnect_attempts = _int_from_env(
            env, "TERMBEAM_RECONNECT_ATTEMPTS", config.max_reconnect_attempts
        )
        return config


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default
