"""
Stock Position Model
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from stock_ledger.exceptions import InvariantViolationError
from stock_ledger.utils.time_utils import isoformat_or_none


@dataclass(frozen=True)
class StockPosition:
    """
    Quantity and cost state of one product in one warehouse.

    Positions are immutable snapshots: every change produces a new object
    which the store swaps in as a whole. ``available_stock`` is derived from
    ``current_stock`` and ``reserved_stock`` and never stored.
    """

    id: str
    product_id: str
    warehouse_id: str
    current_stock: int = 0
    reserved_stock: int = 0
    avg_cost: Decimal = Decimal('0')
    last_in_date: Optional[datetime] = None
    last_out_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def empty(cls, stock_id: str, product_id: str, warehouse_id: str, now: datetime) -> 'StockPosition':
        """Zero position for a never-seen key"""
        return cls(
            id=stock_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def key(self) -> Tuple[str, str]:
        return (self.product_id, self.warehouse_id)

    @property
    def available_stock(self) -> int:
        return self.current_stock - self.reserved_stock

    @property
    def stock_value(self) -> Decimal:
        return self.current_stock * self.avg_cost

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock == 0

    def with_changes(self, **changes) -> 'StockPosition':
        return replace(self, **changes)

    def check_invariants(self) -> 'StockPosition':
        """Raise InvariantViolationError unless the position is consistent"""
        if self.current_stock < 0:
            raise InvariantViolationError(
                f"Current stock for product {self.product_id} in warehouse "
                f"{self.warehouse_id} would become negative ({self.current_stock})"
            )
        if self.reserved_stock < 0:
            raise InvariantViolationError(
                f"Reserved stock for product {self.product_id} in warehouse "
                f"{self.warehouse_id} would become negative ({self.reserved_stock})"
            )
        if self.available_stock < 0:
            raise InvariantViolationError(
                f"Available stock for product {self.product_id} in warehouse "
                f"{self.warehouse_id} would become negative "
                f"(current {self.current_stock}, reserved {self.reserved_stock})"
            )
        if self.avg_cost < 0:
            raise InvariantViolationError(
                f"Average cost for product {self.product_id} in warehouse "
                f"{self.warehouse_id} would become negative ({self.avg_cost})"
            )
        return self

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'current_stock': self.current_stock,
            'available_stock': self.available_stock,
            'reserved_stock': self.reserved_stock,
            'avg_cost': float(self.avg_cost),
            'stock_value': float(self.stock_value),
            'last_in_date': isoformat_or_none(self.last_in_date),
            'last_out_date': isoformat_or_none(self.last_out_date),
            'created_at': isoformat_or_none(self.created_at),
            'updated_at': isoformat_or_none(self.updated_at),
        }
