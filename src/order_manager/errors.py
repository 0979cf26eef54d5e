"""Exception hierarchy for the order manager.

Remote failures raised by tool calls propagate through the cache and the
pagination aggregator unchanged; nothing here wraps them.
"""

from __future__ import annotations


class OrderManagerError(Exception):
    """Base exception for order manager errors."""


class ConfigError(OrderManagerError):
    """Configuration file is missing or invalid."""


class CacheKeyError(OrderManagerError, ValueError):
    """Cache key parameters cannot be serialized deterministically."""


class NotConnectedError(OrderManagerError):
    """A remote call was attempted without an open tool session."""


class ToolCallError(OrderManagerError):
    """The remote tool reported an error.

    The message is the tool's own error text so the caller sees the
    original cause.
    """

    def __init__(self, tool: str, message: str = "Tool call failed"):
        self.tool = tool
        self.message = message
        super().__init__(message)
