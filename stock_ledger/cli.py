"""
Command line interface for the stock ledger.

Registered on the app as ``flask ledger ...``:

    flask ledger apply-movement in P1 W1 100 --price 10 --operator alice
    flask ledger adjust-to P1 W1 95 --operator alice --remark "cycle count"
    flask ledger summary
"""

import json
import logging
import sys

import click
from flask.cli import AppGroup

from stock_ledger.exceptions import StockLedgerError
from stock_ledger.ledger import get_ledger
from stock_ledger.models import MovementRequest, TransactionType
from stock_ledger.utils.schemas import MovementResponseSchema, InventorySummarySchema

logger = logging.getLogger(__name__)

ledger_cli = AppGroup('ledger', help='Stock ledger movements and summaries.')

MOVEMENT_TYPES = click.Choice([t.value for t in TransactionType], case_sensitive=False)


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, sort_keys=True))


def _fail(error: StockLedgerError):
    click.echo(f"Error: {error.message}", err=True)
    sys.exit(1)


@ledger_cli.command('apply-movement')
@click.argument('transaction_type', type=MOVEMENT_TYPES)
@click.argument('product_id')
@click.argument('warehouse_id')
@click.argument('quantity', type=int)
@click.option('--price', 'unit_price', type=str, default=None, help='Unit price (required for in).')
@click.option('--operator', required=True, help='Who performed the movement.')
@click.option('--reference-type', default=None, help='Kind of source document.')
@click.option('--reference-id', default=None, help='Source document identifier.')
@click.option('--remark', default=None, help='Free text note.')
def apply_movement(transaction_type, product_id, warehouse_id, quantity, unit_price,
                   operator, reference_type, reference_id, remark):
    """Apply one IN, OUT or ADJUST movement.

    For adjust, QUANTITY is the signed delta; use -- before a negative value.
    """
    request = MovementRequest(
        product_id=product_id,
        warehouse_id=warehouse_id,
        transaction_type=transaction_type,
        quantity=quantity,
        operator=operator,
        unit_price=unit_price,
        reference_type=reference_type,
        reference_id=reference_id,
        remark=remark,
    )
    try:
        position, transaction = get_ledger().engine.apply_movement(request)
    except StockLedgerError as e:
        _fail(e)
    _echo_json(MovementResponseSchema().dump({'position': position, 'transaction': transaction}))


@ledger_cli.command('adjust-to')
@click.argument('product_id')
@click.argument('warehouse_id')
@click.argument('new_quantity', type=int)
@click.option('--price', 'unit_price', type=str, default=None, help='Unit price for upward adjustments.')
@click.option('--operator', required=True, help='Who performed the count.')
@click.option('--remark', default=None, help='Free text note.')
def adjust_to(product_id, warehouse_id, new_quantity, unit_price, operator, remark):
    """Set current stock to a counted quantity."""
    try:
        position, transaction = get_ledger().engine.adjust_to(
            product_id, warehouse_id, new_quantity, operator,
            unit_price=unit_price,
            remark=remark,
        )
    except StockLedgerError as e:
        _fail(e)
    _echo_json(MovementResponseSchema().dump({'position': position, 'transaction': transaction}))


@ledger_cli.command('summary')
def summary():
    """Print the inventory summary."""
    try:
        result = get_ledger().queries.get_inventory_summary()
    except StockLedgerError as e:
        _fail(e)
    _echo_json(InventorySummarySchema().dump(result))


def init_cli(app):
    app.cli.add_command(ledger_cli)
