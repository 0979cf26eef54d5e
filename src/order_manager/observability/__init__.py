"""Observability for the order manager: structured logging with command context."""

from order_manager.observability.logging import (
    LogContext,
    command_var,
    configure_logging,
    get_logger,
    tool_var,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "command_var",
    "tool_var",
]
