"""Structured logging for the orchestrator."""

from vto.logging.config import configure_logging
from vto.logging.context import (
    OperationContextFilter,
    get_operation_context,
    operation_context,
)
from vto.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "OperationContextFilter",
    "configure_logging",
    "get_operation_context",
    "operation_context",
]
