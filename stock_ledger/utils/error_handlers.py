from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from stock_ledger.exceptions import StockLedgerError, DuplicateTransactionNumberError

logger = logging.getLogger(__name__)


def error_body(error: StockLedgerError):
    """JSON body and status code for a ledger error"""
    if isinstance(error, DuplicateTransactionNumberError):
        logger.critical(f"Ledger integrity failure: {error}")
    elif error.status_code >= 500:
        logger.error(f"Ledger unavailable: {error}")
    return error.to_dict(), error.status_code


def validation_body(error: ValidationError):
    """JSON body and status code for a marshmallow validation failure"""
    return {
        'error': 'Validation Error',
        'message': 'Request data validation failed',
        'details': error.messages,
        'status_code': 400
    }, 400


def internal_error_body():
    return {
        'error': 'Internal Server Error',
        'message': 'An unexpected error occurred',
        'status_code': 500
    }, 500


def register_error_handlers(app):
    """Register application error handlers"""

    @app.errorhandler(StockLedgerError)
    def ledger_error(error):
        body, status = error_body(error)
        return jsonify(body), status

    @app.errorhandler(ValidationError)
    def validation_error(error):
        body, status = validation_body(error)
        return jsonify(body), status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': 'Not Found',
            'message': 'The requested resource was not found',
            'status_code': 404
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        body, status = internal_error_body()
        return jsonify(body), status

    @app.errorhandler(HTTPException)
    def http_exception(error):
        return jsonify({
            'error': error.name,
            'message': error.description,
            'status_code': error.code
        }), error.code
