"""
Base Repository Interface - Abstract base classes
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import List, Optional

from stock_ledger.exceptions import StorageUnavailableError
from stock_ledger.models import StockPosition, StockTransaction, StockFilter, TransactionFilter


class StockRecordStoreInterface(ABC):
    """Keyed map from (product_id, warehouse_id) to a StockPosition"""

    @abstractmethod
    def get(self, product_id: str, warehouse_id: str) -> Optional[StockPosition]:
        pass

    @abstractmethod
    def upsert(self, position: StockPosition) -> None:
        """Replace the whole position stored under its key"""
        pass

    @abstractmethod
    def list(self, filter: Optional[StockFilter] = None) -> List[StockPosition]:
        pass


class TransactionLedgerInterface(ABC):
    """Append-only transaction history. There is no update or delete."""

    @abstractmethod
    def append(self, transaction: StockTransaction) -> None:
        """Raises DuplicateTransactionNumberError if the number exists"""
        pass

    @abstractmethod
    def list(self, filter: Optional[TransactionFilter] = None) -> List[StockTransaction]:
        """Ordered by created_at ascending, ties in insertion order"""
        pass

    @abstractmethod
    def find(self, transaction_no: str) -> Optional[StockTransaction]:
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class LedgerStorage(ABC):
    """
    Storage backend holding a stock record store and a transaction ledger.

    Writes made inside ``atomic()`` become visible together when the block
    exits cleanly and are discarded when it raises.
    """

    stocks: StockRecordStoreInterface
    transactions: TransactionLedgerInterface

    name = 'abstract'

    def __init__(self):
        self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self):
        self._is_open = True
        return self

    def close(self):
        self._is_open = False

    def ensure_open(self):
        if not self._is_open:
            raise StorageUnavailableError(f"{self.name} storage is not open")

    @abstractmethod
    @contextmanager
    def atomic(self):
        pass

    def ping(self) -> bool:
        """Return True when the backend can serve requests"""
        return self._is_open

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
