from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from stock_ledger.clients import InMemoryCatalog
from stock_ledger.exceptions import InvalidRequestError, UnknownStockKeyError
from stock_ledger.models import TransactionFilter, TransactionType
from stock_ledger.services import MovementEngine, StockQueryService
from tests.conftest import create_test_position, receive, issue


class TestStockQueries:
    """Test stock position projections."""

    def test_find_all_stocks(self, engine, queries):
        receive(engine, 10, 1, product_id='P1', warehouse_id='W1')
        receive(engine, 10, 1, product_id='P1', warehouse_id='W2')
        receive(engine, 10, 1, product_id='P2', warehouse_id='W1')

        assert len(queries.find_all_stocks()) == 3
        assert {p.warehouse_id for p in queries.find_stocks_by_product('P1')} == {'W1', 'W2'}
        assert {p.product_id for p in queries.find_stocks_by_warehouse('W1')} == {'P1', 'P2'}
        assert len(queries.find_stocks(product_id='P1', warehouse_id='W2')) == 1

    def test_find_stock(self, engine, queries):
        receive(engine, 10, 1)

        assert queries.find_stock('P1', 'W1').current_stock == 10
        assert queries.find_stock('P1', 'W2') is None

    def test_reads_are_idempotent(self, engine, queries):
        receive(engine, 10, 1)
        issue(engine, 3)

        assert queries.find_all_stocks() == queries.find_all_stocks()
        assert queries.find_all_transactions() == queries.find_all_transactions()
        assert queries.get_inventory_summary() == queries.get_inventory_summary()


class TestLowAndOutOfStock:
    """Test low stock and out of stock projections."""

    def test_low_stock_uses_threshold_inclusive(self, engine, queries):
        receive(engine, 10, 1, product_id='P1')  # threshold 10: low
        receive(engine, 6, 1, product_id='P2')  # threshold 5: not low
        receive(engine, 11, 1, product_id='P1', warehouse_id='W2')  # threshold 10: not low

        low = queries.find_low_stock_items()

        assert [(p.product_id, p.warehouse_id) for p in low] == [('P1', 'W1')]

    def test_low_stock_follows_current_threshold(self, engine, queries, catalog):
        receive(engine, 6, 1, product_id='P2')
        assert queries.find_low_stock_items() == []

        catalog.add_product('P2', reorder_threshold=6)

        assert len(queries.find_low_stock_items()) == 1

    def test_products_without_threshold_skipped(self, memory_storage, clock):
        catalog = InMemoryCatalog(default_reorder_threshold=None, accept_unknown=True)
        engine = MovementEngine(memory_storage, catalog, clock=clock)
        queries = StockQueryService(memory_storage, catalog)
        receive(engine, 1, 1)

        assert queries.find_low_stock_items() == []

    def test_out_of_stock(self, engine, queries):
        receive(engine, 5, 1, product_id='P1')
        receive(engine, 5, 1, product_id='P2')
        issue(engine, 5, product_id='P2')

        out = queries.find_out_of_stock_items()

        assert [p.product_id for p in out] == ['P2']

    def test_zero_threshold_reports_only_empty_positions(self, engine, queries):
        receive(engine, 1, 1, product_id='P3')
        assert queries.find_low_stock_items() == []

        issue(engine, 1, product_id='P3')

        assert [p.product_id for p in queries.find_low_stock_items()] == ['P3']


class TestTransactionQueries:
    """Test transaction history filters."""

    @pytest.fixture
    def history(self, engine, clock):
        receive(engine, 100, 10, reference_id='PR-100', remark='Supplier delivery')
        clock.advance(hours=1)
        issue(engine, 30, reference_id='SO-7')
        clock.advance(hours=1)
        engine.stock_adjust('P1', 'W1', -5, 'auditor', remark='Damaged in transit')
        clock.advance(hours=1)
        receive(engine, 20, 4, product_id='P2', warehouse_id='W2')

    def test_all_transactions_in_order(self, history, queries):
        transactions = queries.find_all_transactions()

        assert [t.quantity for t in transactions] == [100, -30, -5, 20]
        assert transactions == sorted(transactions, key=lambda t: t.created_at)

    def test_filter_by_key_and_type(self, history, queries):
        assert len(queries.find_all_transactions(TransactionFilter(product_id='P2'))) == 1
        assert len(queries.find_all_transactions(TransactionFilter(warehouse_id='W1'))) == 3
        outs = queries.find_all_transactions(TransactionFilter(transaction_type=TransactionType.OUT))
        assert [t.quantity for t in outs] == [-30]

    def test_filter_by_operator(self, history, queries):
        adjustments = queries.find_all_transactions(TransactionFilter(operator='auditor'))

        assert [t.transaction_type for t in adjustments] == [TransactionType.ADJUST]

    def test_keyword_search(self, history, queries):
        assert len(queries.find_all_transactions(TransactionFilter(keyword='damaged'))) == 1
        assert len(queries.find_all_transactions(TransactionFilter(keyword='pr-100'))) == 1
        assert len(queries.find_all_transactions(TransactionFilter(keyword='TXN'))) == 4

    def test_date_range_is_inclusive(self, history, queries):
        all_transactions = queries.find_all_transactions()
        second, third = all_transactions[1], all_transactions[2]

        selected = queries.find_all_transactions(
            TransactionFilter(start_date=second.created_at, end_date=third.created_at)
        )

        assert selected == [second, third]

    def test_find_transaction(self, history, queries):
        first = queries.find_all_transactions()[0]

        assert queries.find_transaction(first.transaction_no) == first
        assert queries.find_transaction('TXN-unknown') is None


class TestReports:
    """Test summaries and reports."""

    def test_inventory_summary(self, engine, queries):
        receive(engine, 10, 5, product_id='P1')  # value 50, low
        receive(engine, 20, 2, product_id='P2')  # value 40
        receive(engine, 3, 1, product_id='P3')
        issue(engine, 3, product_id='P3')  # out of stock
        engine.reserve('P2', 'W1', 5)

        summary = queries.get_inventory_summary()

        assert summary == {
            'total_positions': 3,
            'total_units': 30,
            'total_reserved': 5,
            'total_value': Decimal('90'),
            'low_stock_count': 2,
            'out_of_stock_count': 1,
            'total_transactions': 4,
        }

    def test_movement_report(self, engine, queries, clock):
        start = clock.now
        receive(engine, 100, 10)
        issue(engine, 30)
        engine.stock_adjust('P1', 'W1', -5, 'tester')
        engine.stock_adjust('P1', 'W1', 2, 'tester')
        end = clock.now
        clock.advance(days=1)
        issue(engine, 1)

        report = queries.get_stock_movement_report(start, end)

        assert len(report['transactions']) == 4
        assert report['summary'] == {
            'total_in': 100,
            'total_out': 30,
            'total_adjust': 7,
            'value_in': Decimal('1000'),
            'value_out': Decimal('300'),
        }

    def test_movement_report_rejects_reversed_range(self, queries):
        now = datetime(2026, 1, 1)

        with pytest.raises(InvalidRequestError):
            queries.get_stock_movement_report(now, now - timedelta(days=1))

    def test_top_products_by_value(self, engine, queries):
        receive(engine, 10, 1, product_id='P1')  # 10
        receive(engine, 10, 5, product_id='P2')  # 50
        receive(engine, 10, 3, product_id='P3')  # 30

        top = queries.get_top_products_by_value(limit=2)

        assert [p.product_id for p in top] == ['P2', 'P3']
        assert len(queries.get_top_products_by_value()) == 3

    def test_top_products_rejects_bad_limit(self, queries):
        with pytest.raises(InvalidRequestError):
            queries.get_top_products_by_value(limit=0)


class TestReplay:
    """Test ledger replay."""

    def test_replay_matches_position(self, engine, queries):
        receive(engine, 10, 5)
        receive(engine, 10, 15)
        issue(engine, 4)
        engine.stock_adjust('P1', 'W1', 2, 'tester', unit_price=Decimal('7'))

        result = queries.replay_position('P1', 'W1')

        assert result['consistent'] is True
        assert result['transaction_count'] == 4
        assert result['replayed_stock'] == result['current_stock'] == 18
        assert result['replayed_avg_cost'] == result['avg_cost']

    def test_replay_detects_tampering(self, engine, queries, memory_storage):
        receive(engine, 10, 5)
        tampered = memory_storage.stocks.get('P1', 'W1').with_changes(current_stock=11)
        memory_storage.stocks.upsert(tampered)

        result = queries.replay_position('P1', 'W1')

        assert result['consistent'] is False
        assert result['replayed_stock'] == 10

    def test_replay_unknown_key(self, queries):
        with pytest.raises(UnknownStockKeyError):
            queries.replay_position('P1', 'W1')

    def test_replay_without_entries(self, queries, memory_storage):
        memory_storage.stocks.upsert(create_test_position(current_stock=0, reserved_stock=0,
                                                          avg_cost=Decimal('0')))

        assert queries.replay_position('P1', 'W1')['consistent'] is True
