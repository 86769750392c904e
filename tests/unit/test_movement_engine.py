import logging
from decimal import Decimal

import pytest

from stock_ledger.exceptions import (
    InvalidRequestError, UnknownEntityError, UnknownStockKeyError,
    InsufficientAvailableStockError, InvariantViolationError, DuplicateTransactionNumberError
)
from stock_ledger.models import TransactionType, OutCostingPolicy
from stock_ledger.services import KeyLockRegistry, MovementEngine
from tests.conftest import create_test_request, receive, issue


def snapshot(storage):
    """Everything a caller could observe in the storage"""
    return storage.stocks.list(), storage.transactions.list()


class TestStockIn:
    """Test IN movements."""

    def test_first_in_creates_position(self, engine, memory_storage):
        """The first IN for a key creates its position lazily."""
        position, transaction = receive(engine, 10, 5)

        assert position.current_stock == 10
        assert position.available_stock == 10
        assert position.reserved_stock == 0
        assert position.avg_cost == Decimal('5')
        assert position.last_in_date is not None
        assert position.last_out_date is None
        assert position.id
        assert memory_storage.stocks.get('P1', 'W1') == position

        assert transaction.transaction_type is TransactionType.IN
        assert transaction.quantity == 10
        assert transaction.unit_price == Decimal('5')
        assert transaction.total_amount == Decimal('50')
        assert transaction.operator == 'tester'
        assert transaction.transaction_no.startswith('TXN-')
        assert memory_storage.transactions.find(transaction.transaction_no) == transaction

    def test_weighted_average_cost(self, engine):
        """IN 10 @ 5 then IN 10 @ 15 gives 20 units at an average of 10."""
        receive(engine, 10, 5)
        position, _ = receive(engine, 10, 15)

        assert position.current_stock == 20
        assert position.avg_cost == Decimal('10')

    def test_average_cost_rounded_to_six_places(self, engine):
        receive(engine, 1, 1)
        position, _ = receive(engine, 2, 2)

        assert position.avg_cost == Decimal('1.666667')

    def test_in_keeps_reservations(self, engine):
        receive(engine, 10, 5)
        engine.reserve('P1', 'W1', 4)

        position, _ = receive(engine, 5, 5)

        assert position.reserved_stock == 4
        assert position.available_stock == 11

    def test_in_at_zero_price(self, engine):
        receive(engine, 10, 10)
        position, transaction = receive(engine, 10, 0)

        assert position.avg_cost == Decimal('5')
        assert transaction.total_amount == Decimal('0')

    def test_position_id_is_stable(self, engine):
        first, _ = receive(engine, 1, 1)
        second, _ = receive(engine, 1, 1)

        assert first.id == second.id
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at

    def test_unknown_product_rejected(self, engine, memory_storage):
        with pytest.raises(UnknownEntityError):
            receive(engine, 10, 5, product_id='NOPE')

        assert snapshot(memory_storage) == ([], [])

    def test_unknown_warehouse_rejected(self, engine):
        with pytest.raises(InvalidRequestError):
            receive(engine, 10, 5, warehouse_id='NOPE')


class TestStockOut:
    """Test OUT movements."""

    def test_out_reduces_current_and_available(self, engine):
        receive(engine, 100, 10)

        position, transaction = issue(engine, 30)

        assert position.current_stock == 70
        assert position.available_stock == 70
        assert position.avg_cost == Decimal('10')
        assert position.last_out_date is not None
        assert transaction.quantity == -30
        assert transaction.unit_price == Decimal('10')
        assert transaction.total_amount == Decimal('-300')

    def test_out_records_caller_price(self, engine):
        receive(engine, 10, 10)

        _, transaction = issue(engine, 2, unit_price=Decimal('12.5'))

        assert transaction.unit_price == Decimal('12.5')
        assert transaction.total_amount == Decimal('-25.0')

    def test_avg_cost_policy_ignores_caller_price(self, memory_storage, catalog, clock):
        engine = MovementEngine(memory_storage, catalog, clock=clock, out_costing_policy='AVG_COST')
        assert engine.out_costing_policy is OutCostingPolicy.AVG_COST
        receive(engine, 10, 10)

        _, transaction = issue(engine, 2, unit_price=Decimal('12.5'))

        assert transaction.unit_price == Decimal('10')

    def test_out_of_entire_stock(self, engine):
        receive(engine, 10, 10)

        position, _ = issue(engine, 10)

        assert position.current_stock == 0
        assert position.is_out_of_stock

    def test_insufficient_stock_leaves_state_unchanged(self, engine, memory_storage):
        receive(engine, 10, 10)
        before = snapshot(memory_storage)

        with pytest.raises(InsufficientAvailableStockError) as exc_info:
            issue(engine, 11)

        assert exc_info.value.requested == 11
        assert exc_info.value.available == 10
        assert snapshot(memory_storage) == before

    def test_reserved_units_cannot_be_issued(self, engine, memory_storage):
        """With current 10 and reserved 10 any OUT is rejected."""
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 10)
        before = snapshot(memory_storage)

        with pytest.raises(InsufficientAvailableStockError):
            issue(engine, 1)

        assert snapshot(memory_storage) == before
        position = memory_storage.stocks.get('P1', 'W1')
        assert position.current_stock == 10
        assert position.available_stock == 0

    def test_out_on_unknown_key(self, engine, memory_storage):
        with pytest.raises(UnknownStockKeyError):
            issue(engine, 1)

        assert snapshot(memory_storage) == ([], [])


class TestStockAdjust:
    """Test ADJUST movements."""

    def test_downward_adjust_keeps_average(self, engine):
        receive(engine, 10, 8)

        position, transaction = engine.stock_adjust('P1', 'W1', -3, 'tester')

        assert position.current_stock == 7
        assert position.avg_cost == Decimal('8')
        assert transaction.quantity == -3
        assert transaction.unit_price == Decimal('8')
        assert transaction.total_amount == Decimal('-24')

    def test_upward_adjust_blends_average(self, engine):
        receive(engine, 10, 10)

        position, transaction = engine.stock_adjust('P1', 'W1', 10, 'tester', unit_price=Decimal('20'))

        assert position.current_stock == 20
        assert position.avg_cost == Decimal('15')
        assert transaction.total_amount == Decimal('200')

    def test_upward_adjust_without_price_uses_average(self, engine):
        receive(engine, 10, 10)

        position, transaction = engine.stock_adjust('P1', 'W1', 5, 'tester')

        assert position.avg_cost == Decimal('10')
        assert transaction.unit_price == Decimal('10')

    def test_adjust_does_not_touch_movement_dates(self, engine):
        first, _ = receive(engine, 10, 10)

        position, _ = engine.stock_adjust('P1', 'W1', -1, 'tester')

        assert position.last_in_date == first.last_in_date
        assert position.last_out_date is None

    def test_upward_adjust_creates_position(self, engine):
        position, _ = engine.stock_adjust('P1', 'W2', 4, 'tester', unit_price=Decimal('3'))

        assert position.current_stock == 4
        assert position.avg_cost == Decimal('3')

    def test_downward_adjust_on_unknown_key(self, engine):
        with pytest.raises(UnknownStockKeyError):
            engine.stock_adjust('P1', 'W1', -1, 'tester')

    def test_adjust_below_reserved_rejected(self, engine, memory_storage):
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 8)
        before = snapshot(memory_storage)

        with pytest.raises(InvariantViolationError):
            engine.stock_adjust('P1', 'W1', -3, 'tester')

        assert snapshot(memory_storage) == before

    def test_adjust_down_to_reserved_allowed(self, engine):
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 8)

        position, _ = engine.stock_adjust('P1', 'W1', -2, 'tester')

        assert position.current_stock == 8
        assert position.available_stock == 0


class TestAdjustTo:
    """Test stock-take adjustments."""

    def test_adjust_to_counted_quantity(self, engine):
        receive(engine, 100, 10)

        position, transaction = engine.adjust_to('P1', 'W1', 95, 'counter', remark='cycle count')

        assert position.current_stock == 95
        assert transaction.transaction_type is TransactionType.ADJUST
        assert transaction.quantity == -5
        assert transaction.remark == 'cycle count'

    def test_adjust_to_new_key(self, engine):
        position, transaction = engine.adjust_to('P2', 'W1', 5, 'counter', unit_price=Decimal('2'))

        assert position.current_stock == 5
        assert transaction.quantity == 5

    def test_adjust_to_same_quantity_rejected(self, engine):
        receive(engine, 10, 10)

        with pytest.raises(InvalidRequestError):
            engine.adjust_to('P1', 'W1', 10, 'counter')

    @pytest.mark.parametrize('new_quantity', [-1, 1.5, True])
    def test_adjust_to_invalid_quantity(self, engine, new_quantity):
        with pytest.raises(InvalidRequestError):
            engine.adjust_to('P1', 'W1', new_quantity, 'counter')

    def test_adjust_to_zero_on_unknown_key(self, engine):
        with pytest.raises(InvalidRequestError):
            engine.adjust_to('P1', 'W1', 0, 'counter')

    @pytest.mark.parametrize('product_id,warehouse_id', [(' P1', 'W1'), ('P1 ', ' W1 ')])
    def test_adjust_to_padded_identifiers(self, engine, memory_storage, product_id, warehouse_id):
        receive(engine, 100, 10)

        position, transaction = engine.adjust_to(product_id, warehouse_id, 50, 'counter')

        assert position.key == ('P1', 'W1')
        assert position.current_stock == 50
        assert transaction.quantity == -50
        assert memory_storage.stocks.get('P1', 'W1').current_stock == 50
        assert len(memory_storage.stocks.list()) == 1

    def test_adjust_to_padded_identifiers_share_the_key_lock(self, memory_storage, catalog, clock):
        locks = KeyLockRegistry()
        engine = MovementEngine(memory_storage, catalog, locks=locks, clock=clock)
        receive(engine, 10, 1)

        engine.adjust_to(' P1 ', 'W1', 12, 'counter')

        assert len(locks) == 1

    @pytest.mark.parametrize('product_id', ['', '   ', None])
    def test_adjust_to_blank_identifier(self, engine, product_id):
        with pytest.raises(InvalidRequestError):
            engine.adjust_to(product_id, 'W1', 5, 'counter')


class TestIdentifierNormalization:
    """Every write path resolves padded identifiers to the same position."""

    @pytest.fixture
    def stocked(self, engine):
        receive(engine, 20, 2)
        return engine

    def test_apply_movement(self, stocked, memory_storage):
        issue(stocked, 5, product_id=' P1', warehouse_id='W1 ')

        assert memory_storage.stocks.get('P1', 'W1').current_stock == 15

    def test_stock_in_does_not_create_padded_key(self, stocked, memory_storage):
        receive(stocked, 5, 2, product_id='P1 ')

        assert [p.key for p in memory_storage.stocks.list()] == [('P1', 'W1')]
        assert memory_storage.stocks.get('P1', 'W1').current_stock == 25

    def test_reserve_and_release(self, stocked):
        reserved = stocked.reserve(' P1', ' W1', 6)
        released = stocked.release('P1 ', 'W1 ', 2)

        assert reserved.key == released.key == ('P1', 'W1')
        assert released.reserved_stock == 4

    @pytest.mark.parametrize('operation', ['reserve', 'release'])
    def test_blank_identifier_rejected(self, stocked, operation):
        with pytest.raises(InvalidRequestError):
            getattr(stocked, operation)('  ', 'W1', 1)


class TestReservations:
    """Test reserve and release."""

    def test_reserve_moves_available_to_reserved(self, engine, memory_storage):
        receive(engine, 10, 10)

        position = engine.reserve('P1', 'W1', 4)

        assert position.current_stock == 10
        assert position.reserved_stock == 4
        assert position.available_stock == 6
        assert memory_storage.transactions.count() == 1

    def test_release_moves_reserved_back(self, engine):
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 4)

        position = engine.release('P1', 'W1', 3)

        assert position.reserved_stock == 1
        assert position.available_stock == 9

    def test_reserve_more_than_available(self, engine):
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 6)

        with pytest.raises(InsufficientAvailableStockError):
            engine.reserve('P1', 'W1', 5)

    def test_release_more_than_reserved(self, engine):
        receive(engine, 10, 10)
        engine.reserve('P1', 'W1', 2)

        with pytest.raises(InvariantViolationError):
            engine.release('P1', 'W1', 3)

    def test_reserve_unknown_key(self, engine):
        with pytest.raises(UnknownStockKeyError):
            engine.reserve('P1', 'W1', 1)

    @pytest.mark.parametrize('quantity', [0, -1, '3'])
    def test_reserve_invalid_quantity(self, engine, quantity):
        receive(engine, 10, 10)

        with pytest.raises(InvalidRequestError):
            engine.reserve('P1', 'W1', quantity)


class TestInvalidRequests:
    """Rejected requests leave no trace."""

    @pytest.mark.parametrize('changes', [
        {'quantity': 0},
        {'quantity': -10},
        {'unit_price': Decimal('-1')},
        {'operator': ''},
        {'unit_price': None},
        {'transaction_type': 'transfer'},
        {'transaction_type': TransactionType.ADJUST, 'quantity': 0},
    ])
    def test_invalid_request_rejected(self, engine, memory_storage, changes):
        with pytest.raises(InvalidRequestError):
            engine.apply_movement(create_test_request(**changes))

        assert snapshot(memory_storage) == ([], [])

    def test_dict_request_accepted(self, engine):
        position, transaction = engine.apply_movement({
            'product_id': 'P1', 'warehouse_id': 'W1', 'transaction_type': 'in',
            'quantity': 3, 'unit_price': '2.5', 'operator': 'alice',
            'reference_type': 'purchase_receipt', 'reference_id': 'PR-1',
        })

        assert position.current_stock == 3
        assert transaction.reference_type == 'purchase_receipt'
        assert transaction.reference_id == 'PR-1'

    def test_rejection_logged_as_warning(self, engine, caplog):
        with caplog.at_level(logging.WARNING, logger='stock_ledger.services.movement_engine'):
            with pytest.raises(UnknownStockKeyError):
                issue(engine, 1)

        assert any('Rejected OUT movement' in record.getMessage() for record in caplog.records)

    def test_failed_append_rolls_back_position(self, engine, memory_storage, monkeypatch):
        """A failure after the upsert leaves neither the position nor the entry."""
        receive(engine, 10, 10)
        before = snapshot(memory_storage)

        def duplicate(transaction):
            raise DuplicateTransactionNumberError(transaction.transaction_no)

        monkeypatch.setattr(memory_storage.transactions, 'append', duplicate)

        with pytest.raises(DuplicateTransactionNumberError):
            issue(engine, 5)

        monkeypatch.undo()
        assert snapshot(memory_storage) == before


class TestLedgerScenario:
    """End-to-end behaviour of one stock key."""

    def test_in_out_adjust_scenario(self, engine, queries):
        """IN 100 @ 10, OUT 30, ADJUST -5 leaves 65 units and three ordered entries."""
        engine.stock_in('P1', 'W1', 100, Decimal('10'), 'alice', reference_type='purchase_receipt',
                        reference_id='PR-1')
        engine.stock_out('P1', 'W1', 30, 'bob', reference_type='sales_delivery', reference_id='SD-1')
        engine.stock_adjust('P1', 'W1', -5, 'carol', remark='damaged')

        position = queries.find_stock('P1', 'W1')
        assert position.current_stock == 65
        assert position.available_stock == 65
        assert position.reserved_stock == 0
        assert position.avg_cost == Decimal('10')

        transactions = queries.find_all_transactions()
        assert [t.transaction_type for t in transactions] == [
            TransactionType.IN, TransactionType.OUT, TransactionType.ADJUST
        ]
        assert [t.quantity for t in transactions] == [100, -30, -5]
        numbers = [t.transaction_no for t in transactions]
        assert numbers == sorted(numbers)
        assert len(set(numbers)) == 3

    def test_conservation(self, engine, queries):
        """Current stock equals the sum of signed ledger quantities."""
        receive(engine, 40, 3)
        issue(engine, 15)
        engine.stock_adjust('P1', 'W1', 7, 'tester', unit_price=Decimal('4'))
        engine.reserve('P1', 'W1', 5)
        issue(engine, 12)
        engine.adjust_to('P1', 'W1', 30, 'tester')

        position = queries.find_stock('P1', 'W1')
        total = sum(t.quantity for t in queries.find_all_transactions())
        assert position.current_stock == total == 30
        assert position.current_stock == position.available_stock + position.reserved_stock
        assert queries.replay_position('P1', 'W1')['consistent'] is True
