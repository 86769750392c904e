"""
Repositories package - Storage backends for the stock ledger
"""

# Import interfaces
from .base import LedgerStorage, StockRecordStoreInterface, TransactionLedgerInterface

# Import concrete implementations
from .memory import MemoryStorage
from .sql import SqlStorage

# Export all interfaces and implementations
__all__ = [
    'LedgerStorage',
    'StockRecordStoreInterface',
    'TransactionLedgerInterface',
    'MemoryStorage',
    'SqlStorage',
]
