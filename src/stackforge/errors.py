"""Exceptions raised by stackforge."""

from typing import Any

DEFAULT_ERROR_MESSAGE = "Cannot connect to Stackdriver API"


class StackforgeError(Exception):
    """Base class for all stackforge errors."""


class ConfigError(StackforgeError):
    """A config file is missing, unreadable or invalid."""


class ApiError(StackforgeError):
    """The provider answered with a non-2xx status, or couldn't be reached.

    data is the decoded response body when there is one. the provider wraps
    its errors as {"error": {"code": ..., "message": ...}}.
    status is 0 for network failures.
    """

    def __init__(self, status: int, status_text: str = "", data: Any = None) -> None:
        self.status = status
        self.status_text = status_text
        self.data = data
        super().__init__(self.message)

    @property
    def error(self) -> dict[str, Any]:
        """The provider's error envelope, or an empty dict."""
        if isinstance(self.data, dict) and isinstance(self.data.get("error"), dict):
            return self.data["error"]
        return {}

    @property
    def message(self) -> str:
        # provider message first, then status text, then a generic fallback
        return self.error.get("message") or self.status_text or DEFAULT_ERROR_MESSAGE
