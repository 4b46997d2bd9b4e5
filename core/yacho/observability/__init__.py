"""
Observability: trace-context propagation and structured logging.

- Run/node context propagated via ContextVar, no manual ID passing
- JSON logs for production, colourised human-readable logs for development
"""

from yacho.observability.logging import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)

__all__ = [
    "configure_logging",
    "get_trace_context",
    "set_trace_context",
    "clear_trace_context",
]
