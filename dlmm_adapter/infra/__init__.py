"""
Infrastructure layer for the DLMM liquidity engine

Provides:
- execute_with_retry: caller-side async retry for quote-dependent planning
- CorrelationContext: correlation ID scoping for log tracing
"""

from .retry import (
    CorrelationContext,
    classify_error,
    execute_with_retry,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "CorrelationContext",
    "classify_error",
    "execute_with_retry",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]
