"""
Stock Ledger Exceptions

Every failure the ledger reports to a caller is one of these types. Business
rule violations and infrastructure failures are kept apart so that a form can
show the specific rejection while an outage is reported as such.
"""


class StockLedgerError(Exception):
    """Base exception for stock ledger errors."""

    error_code = 'STOCK_LEDGER_ERROR'
    status_code = 500
    default_message = 'An error occurred in the stock ledger'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.error_code}] {self.message}"

    def to_dict(self):
        """Convert the exception to a response dictionary."""
        error_dict = {
            'error': self.error_code,
            'message': self.message,
            'status_code': self.status_code,
        }
        if self.details:
            error_dict['details'] = self.details
        return error_dict


class InvalidRequestError(StockLedgerError):
    """Malformed movement request: bad quantity, negative price, missing operator."""

    error_code = 'INVALID_REQUEST'
    status_code = 400
    default_message = 'Invalid movement request'


class UnknownEntityError(InvalidRequestError):
    """The product or warehouse is not known to the catalog."""

    error_code = 'UNKNOWN_ENTITY'
    default_message = 'Unknown product or warehouse'


class UnknownStockKeyError(StockLedgerError):
    """No stock position exists for the (product, warehouse) pair."""

    error_code = 'UNKNOWN_STOCK_KEY'
    status_code = 404
    default_message = 'No stock position for this product and warehouse'

    def __init__(self, product_id, warehouse_id, message=None):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__(
            message or f"No stock position for product {product_id} in warehouse {warehouse_id}",
            details={'product_id': product_id, 'warehouse_id': warehouse_id},
        )


class InsufficientAvailableStockError(StockLedgerError):
    """Requested quantity exceeds the available (unreserved) stock."""

    error_code = 'INSUFFICIENT_AVAILABLE_STOCK'
    status_code = 409
    default_message = 'Insufficient available stock'

    def __init__(self, product_id, warehouse_id, requested, available):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient available stock for product {product_id} in warehouse "
            f"{warehouse_id}: requested {requested}, available {available}",
            details={
                'product_id': product_id,
                'warehouse_id': warehouse_id,
                'requested': requested,
                'available': available,
            },
        )


class StockKeyConflictError(StockLedgerError):
    """Another writer created the position for this key first."""

    error_code = 'STOCK_KEY_CONFLICT'
    status_code = 409
    default_message = 'Stock position was created concurrently'

    def __init__(self, product_id, warehouse_id):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Stock position for product {product_id} in warehouse {warehouse_id} "
            f"was created concurrently, retry the movement",
            details={'product_id': product_id, 'warehouse_id': warehouse_id},
        )


class InvariantViolationError(StockLedgerError):
    """The movement would break a stock position invariant."""

    error_code = 'INVARIANT_VIOLATION'
    status_code = 422
    default_message = 'Stock position invariant violated'


class DuplicateTransactionNumberError(StockLedgerError):
    """A transaction number was minted twice. Fatal integrity error."""

    error_code = 'DUPLICATE_TRANSACTION_NUMBER'
    status_code = 500
    default_message = 'Transaction number already exists'

    def __init__(self, transaction_no):
        self.transaction_no = transaction_no
        super().__init__(
            f"Transaction number {transaction_no} already exists in the ledger",
            details={'transaction_no': transaction_no},
        )


class StorageUnavailableError(StockLedgerError):
    """The stock store or transaction ledger cannot be reached."""

    error_code = 'STORAGE_UNAVAILABLE'
    status_code = 503
    default_message = 'Stock ledger storage is unavailable'


class CollaboratorUnavailableError(StockLedgerError):
    """An external collaborator (catalog service) could not be reached."""

    error_code = 'COLLABORATOR_UNAVAILABLE'
    status_code = 503
    default_message = 'Catalog service is unavailable'
