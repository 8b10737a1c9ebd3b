"""
Observability Module for the ERP Injection Pipeline

Provides:
- Structured logging with correlation IDs (run, entity kind, group key)
- JSON and human-readable formatters
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    get_correlation_context,
    with_correlation,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "get_correlation_context",
    "with_correlation",
]
