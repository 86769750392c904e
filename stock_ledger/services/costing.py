"""
Weighted-average costing
"""

from decimal import Decimal, ROUND_HALF_UP

from stock_ledger.exceptions import InvariantViolationError

COST_QUANTUM = Decimal('0.000001')


def blend_average_cost(current_stock: int, avg_cost: Decimal, quantity: int, unit_price: Decimal) -> Decimal:
    """
    Moving average after receiving ``quantity`` units at ``unit_price``.

    (current * avg + quantity * price) / (current + quantity), rounded to six
    decimal places.

    Raises:
        InvariantViolationError: resulting stock is not positive or the
            average would be negative
    """
    new_stock = current_stock + quantity
    if new_stock <= 0:
        raise InvariantViolationError(
            f"Cannot compute average cost for a resulting stock of {new_stock}"
        )
    total_cost = current_stock * avg_cost + quantity * unit_price
    average = (total_cost / new_stock).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)
    if average < 0:
        raise InvariantViolationError(f"Average cost would become negative ({average})")
    return average
