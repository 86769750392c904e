"""
Services - Business logic layer
"""

# Import service classes
from .numbering import NumberingService
from .locks import KeyLockRegistry
from .movement_engine import MovementEngine
from .query_service import StockQueryService

# Export services
__all__ = [
    'NumberingService',
    'KeyLockRegistry',
    'MovementEngine',
    'StockQueryService',
]
