"""
SQL storage backend built on Flask-SQLAlchemy

All calls must run inside a Flask application context. ``atomic()`` maps to
one database transaction: commit on success, rollback on any error.
"""

import logging
import threading
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stock_ledger.database import db
from stock_ledger.exceptions import (
    DuplicateTransactionNumberError, StockKeyConflictError, StorageUnavailableError
)
from stock_ledger.models import (
    StockPosition, StockTransaction, StockFilter, TransactionFilter,
    StockRecord, TransactionRecord
)
from .base import LedgerStorage, StockRecordStoreInterface, TransactionLedgerInterface

logger = logging.getLogger(__name__)


@contextmanager
def _database_errors(action: str):
    """Surface driver failures as StorageUnavailableError"""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Database error while {action}: {e}")
        raise StorageUnavailableError(f"Database error while {action}") from e


class SqlStockStore(StockRecordStoreInterface):
    """Stock record store over the inventory_stocks table"""

    def __init__(self, storage: 'SqlStorage'):
        self._storage = storage

    def _find_record(self, product_id: str, warehouse_id: str) -> Optional[StockRecord]:
        query = StockRecord.query.filter_by(product_id=product_id, warehouse_id=warehouse_id)
        if self._storage.in_atomic:
            query = query.with_for_update()
        return query.first()

    def get(self, product_id: str, warehouse_id: str) -> Optional[StockPosition]:
        self._storage.ensure_open()
        with _database_errors('loading stock position'):
            record = self._find_record(product_id, warehouse_id)
            return record.to_position() if record else None

    def upsert(self, position: StockPosition) -> None:
        self._storage.ensure_open()
        try:
            record = self._find_record(position.product_id, position.warehouse_id)
            if record is None:
                db.session.add(StockRecord.from_position(position))
            else:
                record.apply(position)
            self._storage.flush_or_commit()
        except IntegrityError as e:
            # Another writer inserted the first row for this key
            db.session.rollback()
            logger.warning(
                f"Stock position for {position.product_id} in {position.warehouse_id} "
                f"was created concurrently"
            )
            raise StockKeyConflictError(position.product_id, position.warehouse_id) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error while saving stock position: {e}")
            raise StorageUnavailableError('Database error while saving stock position') from e

    def list(self, filter: Optional[StockFilter] = None) -> List[StockPosition]:
        self._storage.ensure_open()
        with _database_errors('listing stock positions'):
            query = StockRecord.query
            if filter is not None and filter.product_id is not None:
                query = query.filter(StockRecord.product_id == filter.product_id)
            if filter is not None and filter.warehouse_id is not None:
                query = query.filter(StockRecord.warehouse_id == filter.warehouse_id)
            records = query.order_by(StockRecord.created_at, StockRecord.id).all()
            return [record.to_position() for record in records]


class SqlTransactionLedger(TransactionLedgerInterface):
    """Append-only ledger over the inventory_transactions table"""

    def __init__(self, storage: 'SqlStorage'):
        self._storage = storage

    def append(self, transaction: StockTransaction) -> None:
        self._storage.ensure_open()
        try:
            db.session.add(TransactionRecord.from_transaction(transaction))
            self._storage.flush_or_commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateTransactionNumberError(transaction.transaction_no) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error while appending transaction: {e}")
            raise StorageUnavailableError('Database error while appending transaction') from e

    def list(self, filter: Optional[TransactionFilter] = None) -> List[StockTransaction]:
        self._storage.ensure_open()
        with _database_errors('listing transactions'):
            query = TransactionRecord.query
            if filter is not None:
                query = self._apply_filter(query, filter)
            records = query.order_by(TransactionRecord.created_at, TransactionRecord.id).all()
            return [record.to_transaction() for record in records]

    def find(self, transaction_no: str) -> Optional[StockTransaction]:
        self._storage.ensure_open()
        with _database_errors('loading transaction'):
            record = TransactionRecord.query.filter_by(transaction_no=transaction_no).first()
            return record.to_transaction() if record else None

    def count(self) -> int:
        self._storage.ensure_open()
        with _database_errors('counting transactions'):
            return TransactionRecord.query.count()

    @staticmethod
    def _apply_filter(query, filter: TransactionFilter):
        if filter.product_id is not None:
            query = query.filter(TransactionRecord.product_id == filter.product_id)
        if filter.warehouse_id is not None:
            query = query.filter(TransactionRecord.warehouse_id == filter.warehouse_id)
        if filter.transaction_type is not None:
            query = query.filter(TransactionRecord.transaction_type == filter.transaction_type)
        if filter.operator is not None:
            query = query.filter(TransactionRecord.operator == filter.operator)
        if filter.start_date is not None:
            query = query.filter(TransactionRecord.created_at >= filter.start_date)
        if filter.end_date is not None:
            query = query.filter(TransactionRecord.created_at <= filter.end_date)
        if filter.keyword:
            search_term = f"%{filter.keyword}%"
            query = query.filter(or_(
                TransactionRecord.transaction_no.ilike(search_term),
                TransactionRecord.remark.ilike(search_term),
                TransactionRecord.reference_id.ilike(search_term),
            ))
        return query


class SqlStorage(LedgerStorage):
    """Durable storage in the application's SQL database"""

    name = 'sql'

    def __init__(self):
        super().__init__()
        self._local = threading.local()
        self.stocks = SqlStockStore(self)
        self.transactions = SqlTransactionLedger(self)

    @property
    def in_atomic(self) -> bool:
        return getattr(self._local, 'depth', 0) > 0

    def flush_or_commit(self):
        """Flush inside an atomic block, commit outside of one"""
        if self.in_atomic:
            db.session.flush()
        else:
            db.session.commit()

    @contextmanager
    def atomic(self):
        self.ensure_open()
        if self.in_atomic:
            self._local.depth += 1
            try:
                yield
            finally:
                self._local.depth -= 1
            return

        self._local.depth = 1
        try:
            yield
            with _database_errors('committing movement'):
                db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        finally:
            self._local.depth = 0

    def close(self):
        try:
            db.session.remove()
        except RuntimeError:
            # No application context, nothing to release
            pass
        super().close()

    def ping(self) -> bool:
        if not self.is_open:
            return False
        try:
            db.session.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False
