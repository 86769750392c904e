"""
Correlation ID middleware for the stock ledger API
Tags every request and response log line, echoes X-Correlation-ID and
forwards it on calls to the catalog service
"""
import uuid
import logging
from contextvars import ContextVar
from typing import Dict, Optional
from flask import Response, g, request, current_app, has_request_context

# Context variable to store correlation ID for the current request
correlation_id_context: ContextVar[str] = ContextVar('correlation_id', default='')


class CorrelationIdMiddleware:
    """
    Flask middleware for handling correlation IDs
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        """Extract or generate correlation ID before request processing"""
        correlation_id = request.headers.get('X-Correlation-ID') or str(uuid.uuid4())

        # Store in Flask's g object for request-scoped access
        g.correlation_id = correlation_id
        correlation_id_context.set(correlation_id)

        current_app.logger.info(
            f"[{correlation_id}] {request.method} {request.path} - Processing request"
        )

    def after_request(self, response: Response) -> Response:
        """Add correlation ID to response headers"""
        correlation_id = getattr(g, 'correlation_id', 'unknown')
        response.headers['X-Correlation-ID'] = correlation_id

        current_app.logger.info(
            f"[{correlation_id}] {request.method} {request.path} - "
            f"Response: {response.status_code}"
        )

        return response


def get_correlation_id() -> str:
    """Current correlation ID, 'unknown' outside of a request"""
    if has_request_context() and hasattr(g, 'correlation_id'):
        return g.correlation_id
    return correlation_id_context.get() or 'unknown'


def outgoing_headers(additional_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Headers for a call to another service; carries the correlation ID of the current request"""
    headers = {'Accept': 'application/json'}
    if has_request_context() and hasattr(g, 'correlation_id'):
        headers['X-Correlation-ID'] = g.correlation_id
    if additional_headers:
        headers.update(additional_headers)
    return headers


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through a handler"""

    def filter(self, record):
        record.correlation_id = get_correlation_id()
        return True


def init_correlation_id_logging(app):
    """
    Initialize correlation ID logging configuration
    """
    formatter = logging.Formatter(
        '[%(correlation_id)s] %(levelname)s in %(module)s: %(message)s'
    )

    # Apply formatter to all handlers
    for handler in app.logger.handlers:
        handler.addFilter(CorrelationIdFilter())
        handler.setFormatter(formatter)
