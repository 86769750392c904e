"""
Controllers package initialization
"""

from flask import Blueprint
from flask_restx import Api

from stock_ledger.api.controllers.movements import movements_ns
from stock_ledger.api.controllers.stocks import stocks_ns
from stock_ledger.api.controllers.transactions import transactions_ns
from stock_ledger.api.controllers.stats import stats_bp
from stock_ledger.api.controllers.health import health_bp

# Create blueprint
ledger_bp = Blueprint('ledger', __name__)
api = Api(ledger_bp, version='1.0', title='Stock Ledger API',
          description='Stock movements, positions and transaction history', doc='/docs/')

api.add_namespace(movements_ns)
api.add_namespace(stocks_ns)
api.add_namespace(transactions_ns)

__all__ = ['ledger_bp', 'api', 'stats_bp', 'health_bp']
