"""
Query filters for stock positions and transactions
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import TransactionType
from .stock_position import StockPosition
from .stock_transaction import StockTransaction


@dataclass(frozen=True)
class StockFilter:
    product_id: Optional[str] = None
    warehouse_id: Optional[str] = None

    def matches(self, position: StockPosition) -> bool:
        if self.product_id is not None and position.product_id != self.product_id:
            return False
        if self.warehouse_id is not None and position.warehouse_id != self.warehouse_id:
            return False
        return True


@dataclass(frozen=True)
class TransactionFilter:
    """
    Transaction history filter.

    Date bounds are inclusive. ``keyword`` is matched case-insensitively
    against the transaction number, remark and reference id.
    """

    product_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    operator: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    keyword: Optional[str] = None

    def matches(self, transaction: StockTransaction) -> bool:
        if self.product_id is not None and transaction.product_id != self.product_id:
            return False
        if self.warehouse_id is not None and transaction.warehouse_id != self.warehouse_id:
            return False
        if self.transaction_type is not None and transaction.transaction_type is not self.transaction_type:
            return False
        if self.operator is not None and transaction.operator != self.operator:
            return False
        if self.start_date is not None and transaction.created_at < self.start_date:
            return False
        if self.end_date is not None and transaction.created_at > self.end_date:
            return False
        if self.keyword:
            needle = self.keyword.lower()
            haystack = (transaction.transaction_no, transaction.remark, transaction.reference_id)
            if not any(value and needle in value.lower() for value in haystack):
                return False
        return True
