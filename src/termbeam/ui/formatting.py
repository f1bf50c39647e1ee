"""
Message Formatting Helpers

Turns wire messages into rich Text lines for the console. Text objects are
rendered literally, so user content can never inject console markup.
"""

from datetime import datetime

from rich.text import Text

from ..schemas import Message, MessageType

UNKNOWN_TIME = "??:??"


def format_time(iso_timestamp: str) -> str:
    """
    Render an ISO 8601 timestamp as local HH:MM:SS.

    Args:
        iso_timestamp: Timestamp such as "2024-01-01T12:30:00Z"

    Returns:
        "HH:MM:SS" in local time, or "??:??" if the value can't be parsed
    """
    value = iso_timestamp.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return UNKNOWN_TIME

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%H:%M:%S")


def format_message(message: Message, current_username: str) -> Text:
    """
    Build the display line for one message.

    Own chat messages are labelled "You"; joins use an arrow in, leaves an
    arrow out, and system messages are tagged [SYSTEM].
    """
    line = Text()
    line.append(f"[{format_time(message.timestamp)}] ", style="dim")

    if message.type == MessageType.CHAT:
        if message.username == current_username:
            line.append("You", style="bold green")
        else:
            line.append(message.username, style="bold cyan")
        line.append(": ")
        line.append(message.content)
    elif message.type == MessageType.USER_JOINED:
        line.append(f"→ {message.content}", style="green")
    elif message.type == MessageType.USER_LEFT:
        line.append(f"← {message.content}", style="yellow")
    else:
        line.append("[SYSTEM] ", style="bold magenta")
        line.append(message.content, style="magenta")
    return line
