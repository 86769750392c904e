"""
Stock Transaction Model
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .enums import TransactionType


@dataclass(frozen=True)
class StockTransaction:
    """
    One committed stock movement.

    ``quantity`` is the signed delta applied to the position's current stock:
    positive for IN, negative for OUT, either sign for ADJUST.
    ``total_amount`` is always ``quantity * unit_price``.
    """

    transaction_no: str
    product_id: str
    warehouse_id: str
    transaction_type: TransactionType
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    operator: str
    created_at: datetime
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    remark: Optional[str] = None

    def __repr__(self):
        return f'<StockTransaction {self.transaction_no} {self.transaction_type.value} {self.quantity}>'

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'transaction_no': self.transaction_no,
            'product_id': self.product_id,
            'warehouse_id': self.warehouse_id,
            'transaction_type': self.transaction_type.value,
            'quantity': self.quantity,
            'unit_price': float(self.unit_price),
            'total_amount': float(self.total_amount),
            'reference_type': self.reference_type,
            'reference_id': self.reference_id,
            'operator': self.operator,
            'remark': self.remark,
            'created_at': self.created_at.isoformat(),
        }
