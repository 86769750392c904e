"""
Middlewares package
"""

from .correlation_id import (
    CorrelationIdMiddleware, init_correlation_id_logging, get_correlation_id, outgoing_headers
)

__all__ = ['CorrelationIdMiddleware', 'init_correlation_id_logging', 'get_correlation_id', 'outgoing_headers']
