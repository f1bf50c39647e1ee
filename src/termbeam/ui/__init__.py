"""
UI Package for term-beam

This package provides the line-based terminal interface: a threaded input
reader, a rich-backed output writer, the presenter and message formatting.
"""

from .console import ConsoleInputReader, ConsoleOutputWriter
from .formatting import format_message, format_time
from .presenter import Presenter

__all__ = [
    "ConsoleInputReader",
    "ConsoleOutputWriter",
    "Presenter",
    "format_message",
    "format_time",
]
