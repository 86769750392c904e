"""
Stock Query Service - read-only projections over the stock ledger
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from stock_ledger.clients import CatalogClient
from stock_ledger.exceptions import InvalidRequestError, UnknownStockKeyError
from stock_ledger.models import (
    StockFilter, StockPosition, StockTransaction, TransactionFilter, TransactionType
)
from stock_ledger.repositories import LedgerStorage
from .costing import blend_average_cost

logger = logging.getLogger(__name__)


class StockQueryService:
    """
    Read side of the ledger.

    Nothing here takes a key lock or writes. Every projection is computed
    from the store's current state on each call, so two calls with no
    movement in between return equal results.
    """

    def __init__(self, storage: LedgerStorage, catalog: CatalogClient):
        self._storage = storage
        self._catalog = catalog

    # =========================================================================
    # Stock positions
    # =========================================================================

    def find_all_stocks(self) -> List[StockPosition]:
        return self._storage.stocks.list()

    def find_stock(self, product_id: str, warehouse_id: str) -> Optional[StockPosition]:
        return self._storage.stocks.get(product_id, warehouse_id)

    def find_stocks_by_product(self, product_id: str) -> List[StockPosition]:
        return self._storage.stocks.list(StockFilter(product_id=product_id))

    def find_stocks_by_warehouse(self, warehouse_id: str) -> List[StockPosition]:
        return self._storage.stocks.list(StockFilter(warehouse_id=warehouse_id))

    def find_stocks(self, product_id: Optional[str] = None,
                    warehouse_id: Optional[str] = None) -> List[StockPosition]:
        return self._storage.stocks.list(StockFilter(product_id=product_id, warehouse_id=warehouse_id))

    def find_low_stock_items(self) -> List[StockPosition]:
        """
        Positions at or below their product's reorder threshold.

        Thresholds are looked up once per product per call. Products without
        a threshold are never reported as low.
        """
        thresholds: Dict[str, Optional[int]] = {}
        low_stock = []
        for position in self._storage.stocks.list():
            if position.product_id not in thresholds:
                thresholds[position.product_id] = self._catalog.get_reorder_threshold(position.product_id)
            threshold = thresholds[position.product_id]
            if threshold is not None and position.current_stock <= threshold:
                low_stock.append(position)
        return low_stock

    def find_out_of_stock_items(self) -> List[StockPosition]:
        return [p for p in self._storage.stocks.list() if p.is_out_of_stock]

    # =========================================================================
    # Transactions
    # =========================================================================

    def find_all_transactions(self, filter: Optional[TransactionFilter] = None) -> List[StockTransaction]:
        return self._storage.transactions.list(filter)

    def find_transaction(self, transaction_no: str) -> Optional[StockTransaction]:
        return self._storage.transactions.find(transaction_no)

    # =========================================================================
    # Summaries and reports
    # =========================================================================

    def get_inventory_summary(self) -> Dict[str, Any]:
        stocks = self.find_all_stocks()
        total_value = sum((p.stock_value for p in stocks), Decimal('0'))
        return {
            'total_positions': len(stocks),
            'total_units': sum(p.current_stock for p in stocks),
            'total_reserved': sum(p.reserved_stock for p in stocks),
            'total_value': total_value,
            'low_stock_count': len(self.find_low_stock_items()),
            'out_of_stock_count': len(self.find_out_of_stock_items()),
            'total_transactions': self._storage.transactions.count(),
        }

    def get_stock_movement_report(self, start_date: datetime, end_date: datetime) -> Dict[str, Any]:
        """
        Transactions between two instants (inclusive) with per-type totals.

        Quantities and values are reported as magnitudes. ADJUST movements
        count towards ``total_adjust`` only.
        """
        if start_date and end_date and start_date > end_date:
            raise InvalidRequestError('start_date must not be after end_date')

        transactions = self.find_all_transactions(
            TransactionFilter(start_date=start_date, end_date=end_date)
        )
        summary = {
            'total_in': 0,
            'total_out': 0,
            'total_adjust': 0,
            'value_in': Decimal('0'),
            'value_out': Decimal('0'),
        }
        for transaction in transactions:
            if transaction.transaction_type is TransactionType.IN:
                summary['total_in'] += transaction.quantity
                summary['value_in'] += transaction.total_amount
            elif transaction.transaction_type is TransactionType.OUT:
                summary['total_out'] += abs(transaction.quantity)
                summary['value_out'] += abs(transaction.total_amount)
            else:
                summary['total_adjust'] += abs(transaction.quantity)

        return {
            'start_date': start_date,
            'end_date': end_date,
            'transactions': transactions,
            'summary': summary,
        }

    def get_top_products_by_value(self, limit: int = 10) -> List[StockPosition]:
        if limit <= 0:
            raise InvalidRequestError('limit must be greater than zero')
        stocks = sorted(self.find_all_stocks(), key=lambda p: p.stock_value, reverse=True)
        return stocks[:limit]

    def replay_position(self, product_id: str, warehouse_id: str) -> Dict[str, Any]:
        """
        Rebuild a position's quantity and average cost from its ledger entries.

        Returns the replayed figures next to the stored ones and whether they
        agree. Reserved stock is not part of the ledger and is not replayed.
        """
        position = self.find_stock(product_id, warehouse_id)
        if position is None:
            raise UnknownStockKeyError(product_id, warehouse_id)

        transactions = self.find_all_transactions(
            TransactionFilter(product_id=product_id, warehouse_id=warehouse_id)
        )
        stock = 0
        avg_cost = Decimal('0')
        for transaction in transactions:
            if transaction.quantity > 0:
                avg_cost = blend_average_cost(stock, avg_cost, transaction.quantity, transaction.unit_price)
            stock += transaction.quantity

        consistent = stock == position.current_stock and avg_cost == position.avg_cost
        if not consistent:
            logger.error(
                f"Ledger replay mismatch for {product_id} in {warehouse_id}: "
                f"stored {position.current_stock} @ {position.avg_cost}, "
                f"replayed {stock} @ {avg_cost}"
            )
        return {
            'product_id': product_id,
            'warehouse_id': warehouse_id,
            'transaction_count': len(transactions),
            'current_stock': position.current_stock,
            'replayed_stock': stock,
            'avg_cost': position.avg_cost,
            'replayed_avg_cost': avg_cost,
            'consistent': consistent,
        }
