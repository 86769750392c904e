"""
Stocks Controller - stock positions, low stock and reservations
"""

from flask import request
from flask_restx import Namespace, Resource, fields
from marshmallow import ValidationError
import logging

from stock_ledger.exceptions import StockLedgerError, UnknownStockKeyError
from stock_ledger.ledger import get_ledger
from stock_ledger.utils.error_handlers import error_body, validation_body, internal_error_body
from stock_ledger.utils.pagination import paginate
from stock_ledger.utils.schemas import (
    StockQuerySchema, ReservationRequestSchema, StockPositionResponseSchema, ReplayResultSchema
)

logger = logging.getLogger(__name__)

stocks_ns = Namespace('stocks', description='Stock positions')

# Initialize schemas
stock_query_schema = StockQuerySchema()
reservation_request_schema = ReservationRequestSchema()
stock_response_schema = StockPositionResponseSchema()
replay_result_schema = ReplayResultSchema()

reservation_model = stocks_ns.model('ReservationRequest', {
    'quantity': fields.Integer(required=True, description='Units to reserve or release'),
})


@stocks_ns.route('')
class StockList(Resource):
    @stocks_ns.doc('list_stocks', params={
        'product_id': 'Only positions of this product',
        'warehouse_id': 'Only positions in this warehouse',
        'page': 'Page number',
        'per_page': 'Page size',
    })
    def get(self):
        """List stock positions with optional filtering"""
        try:
            params = stock_query_schema.load(request.args.to_dict())
            stocks = get_ledger().queries.find_stocks(
                product_id=params.get('product_id'),
                warehouse_id=params.get('warehouse_id'),
            )
            items, pagination = paginate(stocks, params['page'], params['per_page'])
            return {
                'items': stock_response_schema.dump(items, many=True),
                'pagination': pagination
            }, 200

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error listing stocks: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/low')
class LowStock(Resource):
    @stocks_ns.doc('list_low_stock')
    def get(self):
        """Positions at or below their product's reorder threshold"""
        try:
            stocks = get_ledger().queries.find_low_stock_items()
            return {'items': stock_response_schema.dump(stocks, many=True), 'total': len(stocks)}, 200

        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error listing low stock items: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/out-of-stock')
class OutOfStock(Resource):
    @stocks_ns.doc('list_out_of_stock')
    def get(self):
        """Positions with no stock left"""
        try:
            stocks = get_ledger().queries.find_out_of_stock_items()
            return {'items': stock_response_schema.dump(stocks, many=True), 'total': len(stocks)}, 200

        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error listing out of stock items: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/<string:product_id>/<string:warehouse_id>')
class StockItem(Resource):
    @stocks_ns.doc('get_stock')
    def get(self, product_id, warehouse_id):
        """Get one stock position"""
        try:
            position = get_ledger().queries.find_stock(product_id, warehouse_id)
            if position is None:
                return error_body(UnknownStockKeyError(product_id, warehouse_id))
            return stock_response_schema.dump(position), 200

        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error getting stock for {product_id} in {warehouse_id}: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/<string:product_id>/<string:warehouse_id>/reserve')
class ReserveStock(Resource):
    @stocks_ns.doc('reserve_stock')
    @stocks_ns.expect(reservation_model)
    def post(self, product_id, warehouse_id):
        """Reserve available units for a pending outbound movement"""
        try:
            data = reservation_request_schema.load(request.get_json(silent=True) or {})
            position = get_ledger().engine.reserve(product_id, warehouse_id, data['quantity'])
            return stock_response_schema.dump(position), 200

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error reserving stock for {product_id} in {warehouse_id}: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/<string:product_id>/<string:warehouse_id>/release')
class ReleaseStock(Resource):
    @stocks_ns.doc('release_stock')
    @stocks_ns.expect(reservation_model)
    def post(self, product_id, warehouse_id):
        """Return reserved units to available stock"""
        try:
            data = reservation_request_schema.load(request.get_json(silent=True) or {})
            position = get_ledger().engine.release(product_id, warehouse_id, data['quantity'])
            return stock_response_schema.dump(position), 200

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error releasing stock for {product_id} in {warehouse_id}: {e}", exc_info=True)
            return internal_error_body()


@stocks_ns.route('/<string:product_id>/<string:warehouse_id>/replay')
class ReplayStock(Resource):
    @stocks_ns.doc('replay_stock')
    def get(self, product_id, warehouse_id):
        """Rebuild the position from the ledger and compare with the stored one"""
        try:
            result = get_ledger().queries.replay_position(product_id, warehouse_id)
            return replay_result_schema.dump(result), 200

        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error replaying ledger for {product_id} in {warehouse_id}: {e}", exc_info=True)
            return internal_error_body()
