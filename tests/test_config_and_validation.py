"""
Tests for Configuration and Validation

Tests for:
- ClientConfig defaults and TERMBEAM_* environment overrides
- Username, room name and message validation
- Server address helpers
"""

import pytest

from termbeam import ClientConfig
from termbeam.utils import (
    MAX_MESSAGE_LENGTH,
    is_localhost,
    normalize_url,
    to_websocket_url,
    validate_message_content,
    validate_room_name,
    validate_username,
)


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_defaults(self):
        """Test the built-in defaults."""
        config = ClientConfig.from_env({})
        assert config.default_server_url == "http://localhost:8080"
        assert config.max_connection_retries == 3
        assert config.max_reconnect_attempts == 3
        assert config.max_message_history == 100
        assert config.log_level == "WARNING"

    def test_environment_overrides(self):
        """Test that TERMBEAM_* variables override the defaults."""
        config = ClientConfig.from_env(
            {
                "TERMBEAM_SERVER": "chat.example.com",
                "TERMBEAM_LOG_LEVEL": "debug",
                "TERMBEAM_LOG_FILE": "/tmp/beam.log",
                "TERMBEAM_CONNECTION_RETRIES": "5",
                "TERMBEAM_RECONNECT_ATTEMPTS": "1",
            }
        )
        assert config.default_server_url == "chat.example.com"
        assert config.log_level == "DEBUG"
        assert config.log_file == "/tmp/beam.log"
        assert config.max_connection_retries == 5
        assert config.max_reconnect_attempts == 1

    def test_bad_integer_is_ignored(self):
        """Test that a non-numeric override keeps the default."""
        config = ClientConfig.from_env({"TERMBEAM_RECONNECT_ATTEMPTS": "many"})
        assert config.max_reconnect_attempts == 3


class TestValidateUsername:
    """Tests for validate_username."""

    @pytest.mark.parametrize("username", ["al", "alice", "bob_smith", "mary-jo", "Jo 2"])
    def test_valid(self, username):
        assert validate_username(username) == (True, None)

    def test_empty(self):
        """Test that whitespace-only usernames are rejected."""
        is_valid, error = validate_username("   ")
        assert not is_valid
        assert error == "Username cannot be empty"

    @pytest.mark.parametrize("username", ["a", "x" * 51])
    def test_length(self, username):
        is_valid, error = validate_username(username)
        assert not is_valid
        assert "2-50" in error

    def test_invalid_characters(self):
        """Test that punctuation is rejected."""
        is_valid, _ = validate_username("alice!")
        assert not is_valid


class TestValidateRoomName:
    """Tests for validate_room_name."""

    def test_valid(self):
        assert validate_room_name("general") == (True, None)

    def test_empty(self):
        assert validate_room_name("") == (False, "Room name cannot be empty")

    def test_too_long(self):
        is_valid, error = validate_room_name("r" * 101)
        assert not is_valid
        assert "2-100" in error


class TestValidateMessageContent:
    """Tests for validate_message_content."""

    def test_valid(self):
        assert validate_message_content("hello") == (True, None)

    def test_empty(self):
        is_valid, _ = validate_message_content("")
        assert not is_valid

    def test_limit(self):
        """Test the maximum message length boundary."""
        assert validate_message_content("x" * MAX_MESSAGE_LENGTH)[0]
        assert not validate_message_content("x" * (MAX_MESSAGE_LENGTH + 1))[0]


class TestServerAddresses:
    """Tests for the server address helpers."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("localhost:8080", "http://localhost:8080"),
            ("  chat.example.com/ ", "http://chat.example.com"),
            ("https://chat.example.com//", "https://chat.example.com"),
            ("http://10.0.0.5:8080", "http://10.0.0.5:8080"),
        ],
    )
    def test_normalize_url(self, raw, expected):
        assert normalize_url(raw) == expected

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://localhost:8080", "ws://localhost:8080"),
            ("https://chat.example.com", "wss://chat.example.com"),
        ],
    )
    def test_to_websocket_url(self, url, expected):
        assert to_websocket_url(url) == expected

    def test_is_localhost(self):
        assert is_localhost("http://localhost:8080")
        assert is_localhost("http://127.0.0.1:8080")
        assert not is_localhost("http://chat.example.com")
