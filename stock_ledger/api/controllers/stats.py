"""
Stats Controller - Inventory statistics and movement reports for dashboards
"""

from flask import Blueprint, jsonify, request
from marshmallow import ValidationError
import logging

from stock_ledger.exceptions import StockLedgerError
from stock_ledger.ledger import get_ledger
from stock_ledger.utils.error_handlers import error_body, validation_body
from stock_ledger.utils.schemas import (
    InventorySummarySchema, MovementReportQuerySchema, MovementReportSchema,
    TopValueQuerySchema, StockPositionResponseSchema
)

logger = logging.getLogger(__name__)

# Create blueprint
stats_bp = Blueprint('stats', __name__)

summary_schema = InventorySummarySchema()
movement_report_query_schema = MovementReportQuerySchema()
movement_report_schema = MovementReportSchema()
top_value_query_schema = TopValueQuerySchema()
stock_response_schema = StockPositionResponseSchema()


@stats_bp.route('/api/stats', methods=['GET'])
def get_inventory_stats():
    """
    Get inventory statistics for admin dashboard

    Returns:
        JSON with inventory metrics:
        - total_positions: Count of stock positions
        - total_units / total_reserved: Units on hand and promised
        - total_value: Sum of (current_stock * avg_cost)
        - low_stock_count / out_of_stock_count
        - total_transactions: Ledger entries recorded
    """
    try:
        stats = summary_schema.dump(get_ledger().queries.get_inventory_summary())
        stats['service'] = 'stock-ledger'
        logger.info(f"Stats retrieved: {stats}")
        return jsonify(stats), 200

    except StockLedgerError as e:
        body, status = error_body(e)
        return jsonify(body), status


@stats_bp.route('/api/reports/movements', methods=['GET'])
def get_movement_report():
    """Transactions between start_date and end_date with per-type totals"""
    try:
        params = movement_report_query_schema.load(request.args.to_dict())
        report = get_ledger().queries.get_stock_movement_report(params['start_date'], params['end_date'])
        return jsonify(movement_report_schema.dump(report)), 200

    except ValidationError as e:
        body, status = validation_body(e)
        return jsonify(body), status
    except StockLedgerError as e:
        body, status = error_body(e)
        return jsonify(body), status


@stats_bp.route('/api/reports/top-value', methods=['GET'])
def get_top_products_by_value():
    """Stock positions with the highest stock value"""
    try:
        params = top_value_query_schema.load(request.args.to_dict())
        stocks = get_ledger().queries.get_top_products_by_value(params['limit'])
        return jsonify({'items': stock_response_schema.dump(stocks, many=True), 'limit': params['limit']}), 200

    except ValidationError as e:
        body, status = validation_body(e)
        return jsonify(body), status
    except StockLedgerError as e:
        body, status = error_body(e)
        return jsonify(body), status
