"""
Health check endpoints for the stock ledger
These endpoints are used by monitoring systems and load balancers
"""

from flask import Blueprint, jsonify, current_app
import os
import logging

from stock_ledger.ledger import get_ledger
from stock_ledger.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Create blueprint for health endpoints
health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health():
    """Main health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': os.environ.get('NAME', 'stock-ledger'),
        'timestamp': utcnow().isoformat() + 'Z',
        'version': os.environ.get('VERSION', '1.0.0'),
        'environment': os.environ.get('FLASK_ENV', 'development'),
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness():
    """Readiness probe - checks if the ledger storage can serve requests"""
    ledger = get_ledger()
    storage_ready = ledger.storage.ping()
    status = 'ready' if storage_ready else 'not ready'

    if not storage_ready:
        logger.warning(f"Readiness check failed: {ledger.storage.name} storage unavailable")

    return jsonify({
        'status': status,
        'service': 'stock-ledger',
        'timestamp': utcnow().isoformat() + 'Z',
        'checks': {
            'storage': {
                'backend': ledger.storage.name,
                'status': 'healthy' if storage_ready else 'unhealthy',
            },
            'catalog': {
                'client': type(ledger.catalog).__name__,
                'url': current_app.config.get('CATALOG_SERVICE_URL'),
            },
        },
    }), 200 if storage_ready else 503
