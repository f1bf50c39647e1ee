#!/usr/bin/env python3
"""
term-beam Application

Terminal chat client: connects to a chat server, lets the user pick or
create a room and chats over a WebSocket connection. Logs go to a file so
they never interleave with the interactive console.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Callable, List, Optional

from . import __version__
from .config import ClientConfig
from .coordinator import Coordinator
from .errors import QuitRequested
from .ui import ConsoleInputReader, ConsoleOutputWriter, Presenter

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="term-beam",
        description="Terminal chat client - beam messages across the network",
    )
    parser.add_argument(
        "-s",
        "--server",
        default=None,
        help="Chat server URL (prompted for when omitted)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Log file path (default: term_beam.log)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def configure_logging(level: str, log_file: str) -> None:
    """Send log records to ``log_file`` only."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file, mode="a")],
    )


class Application:
    """
    Owns the console, the coordinator and the shutdown sequence.

    run() is the only writer of the coordinator reference; the shutdown
    path only reads it.
    """

    def __init__(
        self,
        config: ClientConfig,
        server: Optional[str] = None,
        input_reader: Optional[ConsoleInputReader] = None,
        presenter: Optional[Presenter] = None,
        coordinator_factory: Callable[..., Coordinator] = Coordinator,
    ):
        self.config = config
        self.server = server
        self.input_reader = input_reader or ConsoleInputReader()
        self.presenter = presenter or Presenter(
            ConsoleOutputWriter(input_reader=self.input_reader)
        )
        self._coordinator_factory = coordinator_factory
        self._coordinator: Optional[Coordinator] = None

    @property
    def coordinator(self) -> Optional[Coordinator]:
        return self._coordinator

    async def run(self) -> int:
        """
        Run the client until the user quits.

        Returns:
            Process exit status
        """
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop, asyncio.current_task())
        exit_code = 0

        try:
            self.presenter.show_welcome()
            self._coordinator = self._coordinator_factory(
                self.presenter, self.input_reader, self.config
            )
            await self._coordinator.prepare(self.server)
            await self._coordinator.start()
        except QuitRequested as e:
            logger.info("Quit: %s", e)
            exit_code = e.exit_code
        except EOFError:
            logger.info("stdin closed")
            self.presenter.show_goodbye()
        except asyncio.CancelledError:
            logger.info("Interrupted")
            self.presenter.show_info("Shutting down...")
        finally:
            await self.shutdown()
            for sig in installed:
                loop.remove_signal_handler(sig)

        return exit_code

    async def shutdown(self) -> None:
        """
        Stop input, then close the session and HTTP client.

        Cleanup is bounded by config.cleanup_timeout.
        """
        self.input_reader.stop()

        coordinator = self._coordinator
        if coordinator is None:
            return
        try:
            await asyncio.wait_for(
                coordinator.cleanup(), self.config.cleanup_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Cleanup did not finish within %.1fs",
                self.config.cleanup_timeout,
            )
        except Exception:
            logger.exception("Cleanup failed")

    @staticmethod
    def _install_signal_handlers(loop, task) -> List[int]:
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                continue
            installed.append(sig)
        return installed


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the chat client."""
    args = parse_args(argv)

    config = ClientConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file
    configure_logging(config.log_level, config.log_file)
    logger.info("Starting term-beam %s", __version__)

    app = Application(config, server=args.server)
    try:
        exit_code = asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nExiting...")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
