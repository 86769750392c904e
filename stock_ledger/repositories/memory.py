"""
In-memory storage backend

Committed state lives in plain dicts guarded by a commit lock. Writes made
inside ``atomic()`` are staged per thread and published together on a clean
exit, so a rejected movement never becomes visible.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple

from stock_ledger.exceptions import DuplicateTransactionNumberError
from stock_ledger.models import StockPosition, StockTransaction, StockFilter, TransactionFilter
from .base import LedgerStorage, StockRecordStoreInterface, TransactionLedgerInterface

logger = logging.getLogger(__name__)


class _PendingWrites:
    """Writes staged by one thread inside an atomic block"""

    def __init__(self):
        self.positions: Dict[Tuple[str, str], StockPosition] = {}
        self.transactions: List[StockTransaction] = []

    def has_transaction_no(self, transaction_no: str) -> bool:
        return any(t.transaction_no == transaction_no for t in self.transactions)


class MemoryStockStore(StockRecordStoreInterface):
    """Dict-backed stock record store"""

    def __init__(self, storage: 'MemoryStorage'):
        self._storage = storage
        self._positions: Dict[Tuple[str, str], StockPosition] = {}

    def get(self, product_id: str, warehouse_id: str) -> Optional[StockPosition]:
        self._storage.ensure_open()
        key = (product_id, warehouse_id)
        pending = self._storage.pending
        if pending is not None and key in pending.positions:
            return pending.positions[key]
        with self._storage.commit_lock:
            return self._positions.get(key)

    def upsert(self, position: StockPosition) -> None:
        self._storage.ensure_open()
        if not isinstance(position, StockPosition):
            raise TypeError(f"Expected StockPosition, got {type(position).__name__}")
        pending = self._storage.pending
        if pending is not None:
            pending.positions[position.key] = position
            return
        with self._storage.commit_lock:
            self._positions[position.key] = position

    def list(self, filter: Optional[StockFilter] = None) -> List[StockPosition]:
        self._storage.ensure_open()
        with self._storage.commit_lock:
            positions = list(self._positions.values())
        if filter is None:
            return positions
        return [p for p in positions if filter.matches(p)]

    def _publish(self, positions: Dict[Tuple[str, str], StockPosition]):
        self._positions.update(positions)


class MemoryTransactionLedger(TransactionLedgerInterface):
    """List-backed append-only ledger with a transaction number index"""

    def __init__(self, storage: 'MemoryStorage'):
        self._storage = storage
        self._entries: List[StockTransaction] = []
        self._by_number: Dict[str, StockTransaction] = {}

    def append(self, transaction: StockTransaction) -> None:
        self._storage.ensure_open()
        if not isinstance(transaction, StockTransaction):
            raise TypeError(f"Expected StockTransaction, got {type(transaction).__name__}")
        pending = self._storage.pending
        if pending is not None:
            with self._storage.commit_lock:
                exists = transaction.transaction_no in self._by_number
            if exists or pending.has_transaction_no(transaction.transaction_no):
                raise DuplicateTransactionNumberError(transaction.transaction_no)
            pending.transactions.append(transaction)
            return
        with self._storage.commit_lock:
            self._publish([transaction])

    def list(self, filter: Optional[TransactionFilter] = None) -> List[StockTransaction]:
        self._storage.ensure_open()
        with self._storage.commit_lock:
            entries = list(self._entries)
        if filter is not None:
            entries = [t for t in entries if filter.matches(t)]
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(entries, key=lambda t: t.created_at)

    def find(self, transaction_no: str) -> Optional[StockTransaction]:
        self._storage.ensure_open()
        with self._storage.commit_lock:
            return self._by_number.get(transaction_no)

    def count(self) -> int:
        self._storage.ensure_open()
        with self._storage.commit_lock:
            return len(self._entries)

    def _publish(self, transactions: List[StockTransaction]):
        # Check the whole batch before touching the index
        for transaction in transactions:
            if transaction.transaction_no in self._by_number:
                raise DuplicateTransactionNumberError(transaction.transaction_no)
        for transaction in transactions:
            self._entries.append(transaction)
            self._by_number[transaction.transaction_no] = transaction


class MemoryStorage(LedgerStorage):
    """Process-local storage used by tests and embedded deployments"""

    name = 'memory'

    def __init__(self):
        super().__init__()
        self.commit_lock = threading.RLock()
        self._local = threading.local()
        self.stocks = MemoryStockStore(self)
        self.transactions = MemoryTransactionLedger(self)

    @property
    def pending(self) -> Optional[_PendingWrites]:
        return getattr(self._local, 'pending', None)

    @contextmanager
    def atomic(self):
        self.ensure_open()
        if self.pending is not None:
            # Nested block joins the outer unit
            yield
            return

        pending = _PendingWrites()
        self._local.pending = pending
        try:
            yield
            with self.commit_lock:
                self.transactions._publish(pending.transactions)
                self.stocks._publish(pending.positions)
            logger.debug(
                f"Committed {len(pending.positions)} position(s) and "
                f"{len(pending.transactions)} transaction(s)"
            )
        finally:
            self._local.pending = None
