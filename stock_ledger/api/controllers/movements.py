"""
Movements Controller - IN, OUT and ADJUST stock movements
"""

from flask import request
from flask_restx import Namespace, Resource, fields
from marshmallow import ValidationError
import logging

from stock_ledger.exceptions import StockLedgerError
from stock_ledger.ledger import get_ledger
from stock_ledger.models import MovementRequest
from stock_ledger.utils.error_handlers import error_body, validation_body, internal_error_body
from stock_ledger.utils.schemas import (
    MovementRequestSchema, AdjustToRequestSchema, MovementResponseSchema
)

logger = logging.getLogger(__name__)

movements_ns = Namespace('movements', description='Stock movements')

# Initialize schemas
movement_request_schema = MovementRequestSchema()
adjust_to_request_schema = AdjustToRequestSchema()
movement_response_schema = MovementResponseSchema()

movement_model = movements_ns.model('MovementRequest', {
    'product_id': fields.String(required=True, description='Product identifier'),
    'warehouse_id': fields.String(required=True, description='Warehouse identifier'),
    'transaction_type': fields.String(required=True, enum=['in', 'out', 'adjust'],
                                      description='Movement type'),
    'quantity': fields.Integer(required=True,
                               description='Units moved; signed delta for adjust'),
    'unit_price': fields.Float(description='Unit price, required for in'),
    'operator': fields.String(required=True, description='Who performed the movement'),
    'reference_type': fields.String(description='Kind of source document'),
    'reference_id': fields.String(description='Source document identifier'),
    'remark': fields.String(description='Free text note'),
})

adjust_to_model = movements_ns.model('AdjustToRequest', {
    'product_id': fields.String(required=True, description='Product identifier'),
    'warehouse_id': fields.String(required=True, description='Warehouse identifier'),
    'new_quantity': fields.Integer(required=True, description='Counted stock'),
    'unit_price': fields.Float(description='Unit price for upward adjustments'),
    'operator': fields.String(required=True, description='Who performed the count'),
    'remark': fields.String(description='Free text note'),
})


@movements_ns.route('')
class Movements(Resource):
    @movements_ns.doc('apply_movement')
    @movements_ns.expect(movement_model)
    def post(self):
        """Apply one movement and record it in the ledger"""
        try:
            data = movement_request_schema.load(request.get_json(silent=True) or {})
            position, transaction = get_ledger().engine.apply_movement(MovementRequest.from_dict(data))
            result = movement_response_schema.dump({'position': position, 'transaction': transaction})
            return result, 201

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error applying movement: {e}", exc_info=True)
            return internal_error_body()


@movements_ns.route('/adjust-to')
class AdjustTo(Resource):
    @movements_ns.doc('adjust_to')
    @movements_ns.expect(adjust_to_model)
    def post(self):
        """Stock-take: set current stock to a counted quantity"""
        try:
            data = adjust_to_request_schema.load(request.get_json(silent=True) or {})
            position, transaction = get_ledger().engine.adjust_to(**data)
            result = movement_response_schema.dump({'position': position, 'transaction': transaction})
            return result, 201

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error applying stock-take adjustment: {e}", exc_info=True)
            return internal_error_body()
