"""
Movement Engine - the only writer of stock positions and ledger entries
"""

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple, Union

from stock_ledger.clients import CatalogClient
from stock_ledger.exceptions import (
    StockLedgerError, InvalidRequestError, UnknownEntityError, UnknownStockKeyError,
    InsufficientAvailableStockError, InvariantViolationError, DuplicateTransactionNumberError
)
from stock_ledger.models import (
    MovementRequest, OutCostingPolicy, StockPosition, StockTransaction, TransactionType
)
from stock_ledger.models.movement_request import normalize_identifier
from stock_ledger.repositories import LedgerStorage
from stock_ledger.utils.time_utils import utcnow
from .costing import blend_average_cost
from .locks import KeyLockRegistry
from .numbering import NumberingService

logger = logging.getLogger(__name__)

MovementResult = Tuple[StockPosition, StockTransaction]


class MovementEngine:
    """
    Applies IN, OUT and ADJUST movements to stock positions.

    Every call validates its request, then reads, recomputes and writes the
    position under the key's lock and inside one storage transaction, so
    concurrent movements on one key are serialised and a rejected movement
    leaves nothing behind.
    """

    def __init__(self, storage: LedgerStorage, catalog: CatalogClient,
                 numbering: Optional[NumberingService] = None,
                 locks: Optional[KeyLockRegistry] = None,
                 out_costing_policy: Union[OutCostingPolicy, str] = OutCostingPolicy.CALLER,
                 clock: Callable = utcnow):
        self._storage = storage
        self._catalog = catalog
        self._numbering = numbering or NumberingService(clock=clock)
        self._locks = locks or KeyLockRegistry()
        if isinstance(out_costing_policy, str):
            out_costing_policy = out_costing_policy.lower()
        self.out_costing_policy = OutCostingPolicy(out_costing_policy)
        self._clock = clock

    # =========================================================================
    # Movements
    # =========================================================================

    def apply_movement(self, request: Union[MovementRequest, Dict[str, Any]]) -> MovementResult:
        """
        Apply one movement and record it in the ledger.

        Args:
            request: MovementRequest or a mapping with the same fields

        Returns:
            Tuple of (updated StockPosition, new StockTransaction)

        Raises:
            InvalidRequestError, UnknownStockKeyError,
            InsufficientAvailableStockError, InvariantViolationError,
            DuplicateTransactionNumberError, StockKeyConflictError,
            StorageUnavailableError
        """
        if isinstance(request, dict):
            request = MovementRequest.from_dict(request)
        try:
            request.validate()
            position, transaction = self._locked(
                request.stock_key, lambda: self._apply_locked(request)
            )
        except StockLedgerError as e:
            self._log_rejection(request, e)
            raise

        logger.info(
            f"Recorded {transaction.transaction_no}: {transaction.transaction_type.name} "
            f"{transaction.quantity:+d} of {transaction.product_id} in {transaction.warehouse_id} "
            f"by {transaction.operator} (current {position.current_stock}, "
            f"available {position.available_stock}, avg cost {position.avg_cost})"
        )
        return position, transaction

    def stock_in(self, product_id: str, warehouse_id: str, quantity: int, unit_price,
                 operator: str, **kwargs) -> MovementResult:
        """Receive goods into a warehouse"""
        return self.apply_movement(MovementRequest(
            product_id=product_id, warehouse_id=warehouse_id,
            transaction_type=TransactionType.IN, quantity=quantity,
            unit_price=unit_price, operator=operator, **kwargs
        ))

    def stock_out(self, product_id: str, warehouse_id: str, quantity: int, operator: str,
                  unit_price=None, **kwargs) -> MovementResult:
        """Issue goods from a warehouse"""
        return self.apply_movement(MovementRequest(
            product_id=product_id, warehouse_id=warehouse_id,
            transaction_type=TransactionType.OUT, quantity=quantity,
            unit_price=unit_price, operator=operator, **kwargs
        ))

    def stock_adjust(self, product_id: str, warehouse_id: str, delta: int, operator: str,
                     unit_price=None, **kwargs) -> MovementResult:
        """Apply a signed correction to current stock"""
        return self.apply_movement(MovementRequest(
            product_id=product_id, warehouse_id=warehouse_id,
            transaction_type=TransactionType.ADJUST, quantity=delta,
            unit_price=unit_price, operator=operator, **kwargs
        ))

    def adjust_to(self, product_id: str, warehouse_id: str, new_quantity: int, operator: str,
                  unit_price=None, remark: Optional[str] = None,
                  reference_type: Optional[str] = None,
                  reference_id: Optional[str] = None) -> MovementResult:
        """
        Stock-take adjustment: bring current stock to ``new_quantity``.

        The delta is computed under the key lock, so it is exact even when
        other movements on the key are queued.
        """
        product_id, warehouse_id = self._normalize_key(product_id, warehouse_id)
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
            raise InvalidRequestError('new_quantity must be an integer')
        if new_quantity < 0:
            raise InvalidRequestError('Adjusted stock quantity must not be negative')

        def work():
            position = self._storage.stocks.get(product_id, warehouse_id)
            current = position.current_stock if position else 0
            delta = new_quantity - current
            if delta == 0:
                raise InvalidRequestError(
                    f"Stock of {product_id} in {warehouse_id} is already {new_quantity}, nothing to adjust"
                )
            request = MovementRequest(
                product_id=product_id, warehouse_id=warehouse_id,
                transaction_type=TransactionType.ADJUST, quantity=delta,
                unit_price=unit_price, operator=operator, remark=remark,
                reference_type=reference_type, reference_id=reference_id,
            ).validate()
            return self._apply_locked(request)

        try:
            position, transaction = self._locked((product_id, warehouse_id), work)
        except StockLedgerError as e:
            logger.warning(
                f"Rejected stock-take adjustment of {product_id} in {warehouse_id} "
                f"to {new_quantity}: {e.message}"
            )
            raise

        logger.info(
            f"Recorded {transaction.transaction_no}: stock-take of {product_id} in "
            f"{warehouse_id} set to {position.current_stock} ({transaction.quantity:+d})"
        )
        return position, transaction

    # =========================================================================
    # Reservations
    # =========================================================================

    def reserve(self, product_id: str, warehouse_id: str, quantity: int) -> StockPosition:
        """Promise available units to a pending outbound movement"""
        product_id, warehouse_id = self._normalize_key(product_id, warehouse_id)
        self._check_positive(quantity, 'Reservation')

        def work():
            position = self._require_position(product_id, warehouse_id)
            if quantity > position.available_stock:
                raise InsufficientAvailableStockError(
                    product_id, warehouse_id, quantity, position.available_stock
                )
            updated = position.with_changes(
                reserved_stock=position.reserved_stock + quantity,
                updated_at=self._clock(),
            ).check_invariants()
            self._storage.stocks.upsert(updated)
            return updated

        position = self._locked((product_id, warehouse_id), work)
        logger.info(
            f"Reserved {quantity} of {product_id} in {warehouse_id} "
            f"(reserved {position.reserved_stock}, available {position.available_stock})"
        )
        return position

    def release(self, product_id: str, warehouse_id: str, quantity: int) -> StockPosition:
        """Return reserved units to available stock"""
        product_id, warehouse_id = self._normalize_key(product_id, warehouse_id)
        self._check_positive(quantity, 'Release')

        def work():
            position = self._require_position(product_id, warehouse_id)
            if quantity > position.reserved_stock:
                raise InvariantViolationError(
                    f"Cannot release {quantity} of {product_id} in {warehouse_id}: "
                    f"only {position.reserved_stock} reserved"
                )
            updated = position.with_changes(
                reserved_stock=position.reserved_stock - quantity,
                updated_at=self._clock(),
            ).check_invariants()
            self._storage.stocks.upsert(updated)
            return updated

        position = self._locked((product_id, warehouse_id), work)
        logger.info(
            f"Released {quantity} of {product_id} in {warehouse_id} "
            f"(reserved {position.reserved_stock}, available {position.available_stock})"
        )
        return position

    # =========================================================================
    # Internals
    # =========================================================================

    def _locked(self, key, work):
        with self._locks.hold(key):
            with self._storage.atomic():
                return work()

    def _apply_locked(self, request: MovementRequest) -> MovementResult:
        now = self._clock()
        position = self._storage.stocks.get(request.product_id, request.warehouse_id)
        if position is None:
            if not self._creates_position(request):
                raise UnknownStockKeyError(request.product_id, request.warehouse_id)
            self._check_identifiers(request.product_id, request.warehouse_id)
            position = StockPosition.empty(
                self._numbering.next_stock_id(), request.product_id, request.warehouse_id, now
            )

        if request.transaction_type is TransactionType.IN:
            updated, delta, unit_price = self._compute_in(position, request, now)
        elif request.transaction_type is TransactionType.OUT:
            updated, delta, unit_price = self._compute_out(position, request, now)
        else:
            updated, delta, unit_price = self._compute_adjust(position, request, now)
        updated.check_invariants()

        self._storage.stocks.upsert(updated)
        transaction = StockTransaction(
            transaction_no=self._numbering.next_transaction_no(),
            product_id=request.product_id,
            warehouse_id=request.warehouse_id,
            transaction_type=request.transaction_type,
            quantity=delta,
            unit_price=unit_price,
            total_amount=Decimal(delta) * unit_price,
            operator=request.operator,
            created_at=now,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            remark=request.remark,
        )
        self._storage.transactions.append(transaction)
        return updated, transaction

    def _compute_in(self, position: StockPosition, request: MovementRequest, now):
        quantity = request.quantity
        avg_cost = blend_average_cost(
            position.current_stock, position.avg_cost, quantity, request.unit_price
        )
        updated = position.with_changes(
            current_stock=position.current_stock + quantity,
            avg_cost=avg_cost,
            last_in_date=now,
            updated_at=now,
        )
        return updated, quantity, request.unit_price

    def _compute_out(self, position: StockPosition, request: MovementRequest, now):
        quantity = request.quantity
        # Reserved units are off-limits, so check available rather than current
        if quantity > position.available_stock:
            raise InsufficientAvailableStockError(
                position.product_id, position.warehouse_id, quantity, position.available_stock
            )
        updated = position.with_changes(
            current_stock=position.current_stock - quantity,
            last_out_date=now,
            updated_at=now,
        )
        return updated, -quantity, self._out_unit_price(position, request)

    def _compute_adjust(self, position: StockPosition, request: MovementRequest, now):
        delta = request.quantity
        new_stock = position.current_stock + delta
        if new_stock < position.reserved_stock:
            raise InvariantViolationError(
                f"Adjusting {position.product_id} in {position.warehouse_id} by {delta:+d} "
                f"would leave current stock {new_stock} below reserved stock "
                f"{position.reserved_stock}"
            )
        unit_price = request.unit_price if request.unit_price is not None else position.avg_cost
        avg_cost = position.avg_cost
        if delta > 0:
            avg_cost = blend_average_cost(position.current_stock, position.avg_cost, delta, unit_price)
        updated = position.with_changes(
            current_stock=new_stock,
            avg_cost=avg_cost,
            updated_at=now,
        )
        return updated, delta, unit_price

    def _out_unit_price(self, position: StockPosition, request: MovementRequest) -> Decimal:
        if self.out_costing_policy is OutCostingPolicy.AVG_COST or request.unit_price is None:
            return position.avg_cost
        return request.unit_price

    @staticmethod
    def _creates_position(request: MovementRequest) -> bool:
        if request.transaction_type is TransactionType.IN:
            return True
        return request.transaction_type is TransactionType.ADJUST and request.quantity > 0

    def _check_identifiers(self, product_id: str, warehouse_id: str):
        if not self._catalog.product_exists(product_id):
            raise UnknownEntityError(f"Product does not exist: {product_id}")
        if not self._catalog.warehouse_exists(warehouse_id):
            raise UnknownEntityError(f"Warehouse does not exist: {warehouse_id}")

    def _require_position(self, product_id: str, warehouse_id: str) -> StockPosition:
        position = self._storage.stocks.get(product_id, warehouse_id)
        if position is None:
            raise UnknownStockKeyError(product_id, warehouse_id)
        return position

    @staticmethod
    def _normalize_key(product_id, warehouse_id):
        """Same identifier rule as MovementRequest.validate, applied before the key is locked"""
        return (
            normalize_identifier(product_id, 'product_id'),
            normalize_identifier(warehouse_id, 'warehouse_id'),
        )

    @staticmethod
    def _check_positive(quantity, label: str):
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidRequestError(f"{label} quantity must be an integer")
        if quantity <= 0:
            raise InvalidRequestError(f"{label} quantity must be greater than zero")

    @staticmethod
    def _log_rejection(request: MovementRequest, error: StockLedgerError):
        movement_type = getattr(request.transaction_type, 'name', request.transaction_type)
        message = (
            f"Rejected {movement_type} movement of {request.product_id} in "
            f"{request.warehouse_id}: {error.message}"
        )
        if isinstance(error, DuplicateTransactionNumberError):
            logger.critical(message)
        else:
            logger.warning(message)
