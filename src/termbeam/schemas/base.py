"""
Base Schema Classes

This module provides base classes for request and response schemas with
common serialization and deserialization methods to avoid code duplication.

The chat server speaks flat camelCase JSON, so field names are translated
through an optional per-class ``_WIRE_NAMES`` mapping.
"""

import json
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, TypeVar

T = TypeVar("T", bound="BaseResponse")


class BaseRequest:
    """
    Base class for request schemas.

    Provides common serialization methods for converting request objects
    to dictionary and JSON formats.
    """

    _WIRE_NAMES: ClassVar[Dict[str, str]] = {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Returns:
            Dictionary keyed by wire names. Fields set to None are omitted,
            matching how the server treats optional values.
        """
        result: Dict[str, Any] = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            result[self._WIRE_NAMES.get(field.name, field.name)] = value
        return result

    def to_json(self) -> str:
        """
        Convert to JSON string.

        Returns:
            JSON string representation of the request.
        """
        return json.dumps(self.to_dict())


class BaseResponse:
    """
    Base class for response schemas.

    Provides common deserialization methods for creating response objects
    from dictionary and JSON formats.
    """

    @classmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from dictionary.

        Args:
            data: Dictionary containing response data.

        Returns:
            Instance of the response class.

        Raises:
            ValueError: If data is not a JSON object
            KeyError: If a required field is missing
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"{cls.__name__} payload must be a JSON object, "
                f"got {type(data).__name__}"
            )
        return cls._from_data(data)

    @classmethod
    def from_json(cls: type[T], json_str: str) -> T:
        """
        Create instance from JSON string.

        Args:
            json_str: JSON string containing response data.

        Returns:
            Instance of the response class.
        """
        data = json.loads(json_str)
        return cls.from_dict(data)

    @classmethod
    def list_from_data(cls: type[T], data: Any) -> List[T]:
        """Create a list of instances from a JSON array."""
        if not isinstance(data, list):
            raise ValueError(
                f"Expected a JSON array of {cls.__name__}, "
                f"got {type(data).__name__}"
            )
        return [cls.from_dict(item) for item in data]

    @classmethod
    def _from_data(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from response data dictionary.

        Should be overridden by subclasses for custom deserialization.

        Args:
            data: Dictionary containing response data.

        Returns:
            Instance of the response class.
        """
        return cls(**data)


@dataclass
class ErrorResponse(BaseResponse):
    """
    Error body returned by the server for non-2xx responses.

    Attributes:
        error: Always true for error bodies
        reason: Human readable reason for the failure
    """

    error: bool
    reason: str

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "ErrorResponse":
        """Create from response data dictionary."""
        return cls(error=bool(data.get("error", True)), reason=data["reason"])
