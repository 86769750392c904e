"""
Models package - Stock ledger domain objects and database rows
"""

# Import database instance
from stock_ledger.database import db

# Import enums first
from .enums import TransactionType, OutCostingPolicy

# Import models
from .stock_position import StockPosition
from .stock_transaction import StockTransaction
from .movement_request import MovementRequest
from .filters import StockFilter, TransactionFilter
from .records import StockRecord, TransactionRecord

# Export all models and enums
__all__ = [
    'db',
    'TransactionType',
    'OutCostingPolicy',
    'StockPosition',
    'StockTransaction',
    'MovementRequest',
    'StockFilter',
    'TransactionFilter',
    'StockRecord',
    'TransactionRecord',
]
