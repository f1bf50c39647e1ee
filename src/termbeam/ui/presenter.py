"""
Presenter

Every user-facing line the client prints goes through the Presenter, so the
coordinator, chat session and command router never format output
themselves.
"""

from typing import List

from rich.table import Table

from ..schemas import JoinRoomResponse, Message, RoomInfo, UserInfo
from .formatting import format_message, format_time

APP_VERSION = "1.0"

SEPARATOR = "━" * 43

HELP_TEXT = """\
📚 Available Commands:

  Global Commands (work anywhere):
    /help         - Show this help message
    /bye          - Exit application
    /quit         - Exit application (alias)

  In-Room Commands:
    /exit         - Leave current room and join another
    /leave        - Leave current room (alias)
    /users        - List users in current room
    /rooms        - List all available rooms
    /info         - Show current room information
    /history      - Show recent message history
"""

SERVER_EXAMPLES = (
    "localhost:8080",
    "192.168.1.100:8080",
    "chat.example.com",
)


class Presenter:
    """
    Renders application events to a ConsoleOutputWriter.

    Attributes:
        output: Writer with a write_line(renderable, style=None) method
    """

    def __init__(self, output):
        self.output = output

    def _line(self, text="", style=None) -> None:
        self.output.write_line(text, style=style)

    # Startup

    def show_welcome(self) -> None:
        self._line("╔════════════════════════════════════════╗", "info")
        self._line(f"║          term-beam v{APP_VERSION}               ║", "info")
        self._line("║   Beam messages across the network    ║", "info")
        self._line("╚════════════════════════════════════════╝", "info")
        self._line()

    def show_server_prompt(self) -> None:
        self._line("Enter the chat server address (or press Enter for default):")
        self._line("  Examples:")
        for example in SERVER_EXAMPLES:
            self._line(f"    • {example}")
        self._line()

    def show_connecting(self, url: str) -> None:
        self._line()
        self._line(f"🌐 Connecting to: {url}")

    def show_checking_connection(self) -> None:
        self._line("🔍 Checking server connection...")

    def show_server_online(self) -> None:
        self._line("✅ Server is online", "success")
        self._line()

    def show_connection_error(self, url: str, is_localhost: bool) -> None:
        """Hint shown after the first failed health probe."""
        self._line(f"⚠️  Cannot connect to server at {url}", "warning")
        self._line()
        if is_localhost:
            self._line("💡 The server is not running. You can:")
            self._line("   1. Start the server locally in another terminal")
            self._line("   2. Try a different server address")
            self._line(
                "   3. Wait for the server to start (will retry automatically)"
            )
            self._line()

    def show_retrying(self, attempt: int, max_attempts: int) -> None:
        self._line(f"🔄 Retrying... (attempt {attempt}/{max_attempts})")

    def show_retry_options(self) -> None:
        self._line()
        self._line("Choose an option:")
        self._line("  [r] Retry connection")
        self._line("  [c] Change server address")
        self._line("  [q] Quit")
        self._line()

    # Rooms

    def show_rooms(self, rooms: List[RoomInfo]) -> None:
        if not rooms:
            self._line("📭 No rooms available.")
            self._line()
            return

        table = Table(title="💬 Available rooms", title_justify="left")
        table.add_column("")
        table.add_column("Name")
        table.add_column("Users", justify="right")
        table.add_column("ID", style="dim")
        for room in rooms:
            table.add_row(
                "🔒" if room.has_password else "🔓",
                room.name,
                str(room.user_count),
                room.id,
            )
        self._line()
        self._line(table)
        self._line()

    def show_joined_room(self, joined: JoinRoomResponse, username: str) -> None:
        """Banner printed once the join request succeeded."""
        self._line(f"✅ Joined '{joined.room.name}'", "success")

        others = [user for user in joined.users if user.username != username]
        if others:
            self._line("👥 Users already in room:")
            for user in others:
                self._line(
                    f"  [{format_time(user.joined_at)}] → {user.username} is here"
                )
        else:
            self._line("👤 You are the first one here!")

        self._line()
        self._line("💬 Loading chat interface...")
        self._line(SEPARATOR)
        self._line(f"Room: {joined.room.name} | User: @{username}")
        self._line("Type /help for commands | Type /bye to exit app")
        self._line(SEPARATOR)
        self._line()

    def show_room_info(self, room: RoomInfo) -> None:
        self._line()
        self._line("📋 Room Information:")
        self._line(f"  Name: {room.name}")
        self._line(f"  ID: {room.id}")
        self._line(f"  Users: {room.user_count}")
        self._line(f"  Password: {'Yes' if room.has_password else 'No'}")
        self._line(f"  Created: {room.created_at}")
        self._line()

    def show_users(self, users: List[UserInfo]) -> None:
        self._line()
        self._line(f"👥 Users in room ({len(users)}):")
        for user in users:
            self._line(f"  • {user.username}")
        self._line()

    # Messages

    def show_message(self, message: Message, username: str) -> None:
        self._line(format_message(message, username))

    def show_history(self, messages: List[Message], username: str) -> None:
        if not messages:
            self._line()
            self._line("📭 No message history yet")
            self._line()
            return

        self._line()
        self._line(f"📜 Recent Messages ({len(messages)}):")
        for message in messages:
            self._line(format_message(message, username))
        self._line()

    # Commands and status

    def show_help(self) -> None:
        self._line()
        self._line(HELP_TEXT)

    def show_unknown_command(self, name: str) -> None:
        self.show_error(f"Unknown command: /{name}")
        self.show_info("Type /help to see available commands")

    def show_error(self, message: str) -> None:
        self._line(f"❌ {message}", "error")

    def show_info(self, message: str) -> None:
        self._line(f"ℹ️  {message}", "info")

    def show_success(self, message: str) -> None:
        self._line(f"✅ {message}", "success")

    def show_reconnecting(self, attempt: int, max_attempts: int) -> None:
        self._line(
            f"🔄 Connection lost. Reconnecting... (attempt {attempt}/{max_attempts})",
            "warning",
        )

    def show_reconnected(self) -> None:
        self._line("✅ Reconnected", "success")

    def show_disconnected(self) -> None:
        self._line()
        self._line("🔌 Disconnected from server", "error")

    def show_goodbye(self) -> None:
        self._line()
        self._line("👋 Goodbye!")
