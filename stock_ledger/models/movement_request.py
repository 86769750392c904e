"""
Movement Request Model
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from stock_ledger.exceptions import InvalidRequestError
from .enums import TransactionType


def normalize_identifier(value, field_name: str) -> str:
    """Strip an identifier; blank or non-string values are rejected"""
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"{field_name} is required")
    return value.strip()


def to_decimal(value, field_name='unit_price') -> Optional[Decimal]:
    """Coerce a numeric value to Decimal, None stays None"""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidRequestError(f"{field_name} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidRequestError(f"{field_name} must be a number")
    if not result.is_finite():
        raise InvalidRequestError(f"{field_name} must be a finite number")
    return result


@dataclass
class MovementRequest:
    """
    A single IN, OUT or ADJUST request against one stock position.

    For IN and OUT ``quantity`` is a positive magnitude. For ADJUST it is the
    signed delta applied to current stock.
    """

    product_id: str
    warehouse_id: str
    transaction_type: TransactionType
    quantity: int
    operator: str
    unit_price: Optional[Decimal] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    remark: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MovementRequest':
        """Build a request from loosely typed input (API payload, CLI args)"""
        try:
            return cls(
                product_id=data.get('product_id'),
                warehouse_id=data.get('warehouse_id'),
                transaction_type=data.get('transaction_type'),
                quantity=data.get('quantity'),
                operator=data.get('operator'),
                unit_price=data.get('unit_price'),
                reference_type=data.get('reference_type'),
                reference_id=data.get('reference_id'),
                remark=data.get('remark'),
            )
        except AttributeError:
            raise InvalidRequestError('Movement request must be a mapping')

    @property
    def stock_key(self):
        return (self.product_id, self.warehouse_id)

    def validate(self) -> 'MovementRequest':
        """
        Check and normalise every field in place.

        Raises:
            InvalidRequestError: on the first field that fails
        """
        self.product_id = normalize_identifier(self.product_id, 'product_id')
        self.warehouse_id = normalize_identifier(self.warehouse_id, 'warehouse_id')

        try:
            self.transaction_type = TransactionType.parse(self.transaction_type)
        except ValueError as e:
            raise InvalidRequestError(str(e))

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidRequestError('quantity must be an integer')
        if self.transaction_type is TransactionType.ADJUST:
            if self.quantity == 0:
                raise InvalidRequestError('Adjustment quantity must not be zero')
        elif self.quantity <= 0:
            raise InvalidRequestError(
                f"{self.transaction_type.name} quantity must be greater than zero"
            )

        self.unit_price = to_decimal(self.unit_price)
        if self.unit_price is not None and self.unit_price < 0:
            raise InvalidRequestError('unit_price must not be negative')
        if self.transaction_type is TransactionType.IN and self.unit_price is None:
            raise InvalidRequestError('unit_price is required for IN movements')

        if not isinstance(self.operator, str) or not self.operator.strip():
            raise InvalidRequestError('operator is required')
        self.operator = self.operator.strip()

        return self
