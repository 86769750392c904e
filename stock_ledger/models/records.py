"""
Database rows backing the SQL storage
"""

from decimal import Decimal

from sqlalchemy import Numeric

from stock_ledger.database import db
from .enums import TransactionType
from .stock_position import StockPosition
from .stock_transaction import StockTransaction


class StockRecord(db.Model):
    """Stock position row, unique per (product_id, warehouse_id)"""
    __tablename__ = 'inventory_stocks'
    __table_args__ = (
        db.UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_stocks_product_warehouse'),
    )

    id = db.Column(db.String(36), primary_key=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    warehouse_id = db.Column(db.String(64), nullable=False, index=True)
    current_stock = db.Column(db.Integer, default=0, nullable=False)
    reserved_stock = db.Column(db.Integer, default=0, nullable=False)
    avg_cost = db.Column(Numeric(18, 6), default=0, nullable=False)
    last_in_date = db.Column(db.DateTime, nullable=True)
    last_out_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f'<StockRecord {self.product_id}:{self.warehouse_id}>'

    @classmethod
    def from_position(cls, position: StockPosition) -> 'StockRecord':
        record = cls(id=position.id)
        record.apply(position)
        return record

    def apply(self, position: StockPosition):
        """Overwrite every mutable column from the position"""
        self.product_id = position.product_id
        self.warehouse_id = position.warehouse_id
        self.current_stock = position.current_stock
        self.reserved_stock = position.reserved_stock
        self.avg_cost = position.avg_cost
        self.last_in_date = position.last_in_date
        self.last_out_date = position.last_out_date
        self.created_at = position.created_at
        self.updated_at = position.updated_at

    def to_position(self) -> StockPosition:
        return StockPosition(
            id=self.id,
            product_id=self.product_id,
            warehouse_id=self.warehouse_id,
            current_stock=self.current_stock,
            reserved_stock=self.reserved_stock,
            avg_cost=Decimal(self.avg_cost or 0),
            last_in_date=self.last_in_date,
            last_out_date=self.last_out_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class TransactionRecord(db.Model):
    """Append-only transaction row; ``id`` preserves insertion order"""
    __tablename__ = 'inventory_transactions'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    transaction_no = db.Column(db.String(64), unique=True, nullable=False, index=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    warehouse_id = db.Column(db.String(64), nullable=False, index=True)
    transaction_type = db.Column(db.Enum(TransactionType), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(Numeric(18, 6), nullable=False)
    total_amount = db.Column(Numeric(20, 6), nullable=False)
    reference_type = db.Column(db.String(50), nullable=True)
    reference_id = db.Column(db.String(100), nullable=True, index=True)
    operator = db.Column(db.String(100), nullable=False)
    remark = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True)

    def __repr__(self):
        return f'<TransactionRecord {self.transaction_no}>'

    @classmethod
    def from_transaction(cls, transaction: StockTransaction) -> 'TransactionRecord':
        return cls(
            transaction_no=transaction.transaction_no,
            product_id=transaction.product_id,
            warehouse_id=transaction.warehouse_id,
            transaction_type=transaction.transaction_type,
            quantity=transaction.quantity,
            unit_price=transaction.unit_price,
            total_amount=transaction.total_amount,
            reference_type=transaction.reference_type,
            reference_id=transaction.reference_id,
            operator=transaction.operator,
            remark=transaction.remark,
            created_at=transaction.created_at,
        )

    def to_transaction(self) -> StockTransaction:
        return StockTransaction(
            transaction_no=self.transaction_no,
            product_id=self.product_id,
            warehouse_id=self.warehouse_id,
            transaction_type=self.transaction_type,
            quantity=self.quantity,
            unit_price=Decimal(self.unit_price),
            total_amount=Decimal(self.total_amount),
            reference_type=self.reference_type,
            reference_id=self.reference_id,
            operator=self.operator,
            remark=self.remark,
            created_at=self.created_at,
        )
