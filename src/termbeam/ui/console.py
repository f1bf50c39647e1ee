"""
Console Input and Output

ConsoleInputReader reads lines on a daemon thread so the event loop keeps
delivering room messages while the user types. ConsoleOutputWriter prints
through a rich Console and keeps the prompt the user is typing at on the
last line: it clears the line, prints, then redraws the prompt.

Architecture:
    - input() / getpass() run on one daemon thread, driven by a
      queue.Queue of requests
    - Answers cross back into the loop with call_soon_threadsafe
    - A read abandoned by the caller keeps its outstanding line; the next
      read receives it instead of starting a second blocking read
    - The writer only reads the reader's current prompt
"""

import asyncio
import getpass
import logging
import queue
import sys
import threading
from typing import Any, Callable, Optional, TextIO, Tuple

from rich.console import Console
from rich.theme import Theme

logger = logging.getLogger(__name__)

CLEAR_LINE = "\r\x1b[K"

THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "error": "bold red",
        "warning": "yellow",
        "system": "magenta",
    }
)

# (prompt, secure) or None to stop the reader thread
_ReadRequest = Optional[Tuple[str, bool]]


class ConsoleInputReader:
    """
    Line input from the terminal without blocking the event loop.

    Attributes:
        current_prompt: Prompt of the read in progress ("" if none)
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        secure_input_func: Callable[[str], str] = getpass.getpass,
        stream: Optional[TextIO] = None,
    ):
        """
        Initialize the input reader.

        Args:
            input_func: Blocking line reader (input by default)
            secure_input_func: Blocking reader without echo (getpass)
            stream: Where abandoned prompts are redrawn (stdout by default)
        """
        self._input = input_func
        self._secure_input = secure_input_func
        self._stream = stream
        self._requests: "queue.Queue[_ReadRequest]" = queue.Queue()
        self._responses: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._current_prompt = ""
        self._outstanding = False

    @property
    def current_prompt(self) -> str:
        return self._current_prompt

    def start(self) -> None:
        """Start the reader thread on the running event loop."""
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._responses = asyncio.Queue()
        self._thread = threading.Thread(
            target=self._run, name="console-input", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Ask the reader thread to exit.

        A thread blocked inside input() stays blocked; as a daemon it does
        not keep the process alive.
        """
        self._current_prompt = ""
        if self._thread is not None:
            self._requests.put(None)

    async def read_line(self, prompt: str) -> str:
        """
        Read one line, stripped of surrounding whitespace.

        Raises:
            EOFError: If stdin is closed
        """
        return await self._read(prompt, secure=False)

    async def read_secure_line(self, prompt: str) -> str:
        """Read one line without echoing it (for passwords)."""
        return await self._read(prompt, secure=True)

    async def _read(self, prompt: str, secure: bool) -> str:
        self.start()
        self._current_prompt = prompt

        if self._outstanding:
            # The previous read was abandoned; the thread is still waiting
            # on that line, so only the prompt needs redrawing.
            stream = self._stream or sys.stdout
            stream.write(CLEAR_LINE + prompt)
            stream.flush()
        else:
            self._outstanding = True
            self._requests.put((prompt, secure))

        try:
            line = await self._responses.get()
        except asyncio.CancelledError:
            self._current_prompt = ""
            raise

        self._outstanding = False
        self._current_prompt = ""
        if line is None:
            raise EOFError("stdin closed")
        return line.strip()

    def _run(self) -> None:
        while True:
            request = self._requests.get()
            if request is None:
                return

            prompt, secure = request
            reader = self._secure_input if secure else self._input
            try:
                line: Optional[str] = reader(prompt)
            except EOFError:
                line = None
            except OSError as e:
                logger.error("Console input failed: %s", e)
                line = None

            try:
                self._loop.call_soon_threadsafe(
                    self._responses.put_nowait, line
                )
            except RuntimeError:
                # Event loop already closed
                return


class ConsoleOutputWriter:
    """
    Prints lines without trampling the prompt being typed at.

    Attributes:
        console: rich Console used for rendering
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        input_reader: Optional[ConsoleInputReader] = None,
    ):
        self.console = console or Console(
            theme=THEME, markup=False, highlight=False
        )
        self._input_reader = input_reader

    def write_line(self, renderable: Any = "", style: Optional[str] = None):
        """
        Print one line (a str, rich Text or any rich renderable).

        Strings are printed literally; console markup is not interpreted.
        """
        prompt = (
            self._input_reader.current_prompt if self._input_reader else ""
        )
        if prompt:
            self.console.file.write(CLEAR_LINE)

        self.console.print(renderable, style=style, markup=False)

        if prompt:
            self.console.file.write(prompt)
            self.console.file.flush()
