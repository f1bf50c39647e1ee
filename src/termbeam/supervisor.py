"""
Server Reachability Supervisor

Runs before any session exists: probes the server's health endpoint a few
times with a fixed delay and gives up with ConnectionFailedError, leaving
the retry / change-address / quit decision to the caller.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from .config import CONNECTION_RETRY_DELAY, MAX_CONNECTION_RETRIES
from .directory import check_health
from .errors import ConnectionFailedError
from .utils.validation import is_localhost

logger = logging.getLogger(__name__)

HealthProbe = Callable[[str], Awaitable[bool]]


class ConnectionSupervisor:
    """
    Health-probe retry loop.

    Attributes:
        presenter: Presenter for progress and hints
        retry_delay: Seconds between probes
    """

    def __init__(
        self,
        presenter,
        probe: HealthProbe = check_health,
        retry_delay: float = CONNECTION_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.presenter = presenter
        self.retry_delay = retry_delay
        self._probe = probe
        self._sleep = sleep

    async def wait_for_server(
        self, url: str, quick_attempts: int = MAX_CONNECTION_RETRIES
    ) -> None:
        """
        Wait until ``url`` answers its health check.

        Makes one initial probe plus up to ``quick_attempts`` retries.

        Raises:
            ConnectionFailedError: If every probe failed
        """
        self.presenter.show_checking_connection()

        attempts = 0
        while True:
            if await self._probe(url):
                logger.info("Server %s is healthy", url)
                return

            attempts += 1
            if attempts == 1:
                self.presenter.show_connection_error(url, is_localhost(url))

            if attempts > quick_attempts:
                logger.warning(
                    "Server %s unreachable after %d probes", url, attempts
                )
                raise ConnectionFailedError(url)

            self.presenter.show_retrying(attempts, quick_attempts)
            await self._sleep(self.retry_delay)
