"""
Transactions Controller - read-only ledger history
"""

from flask import request
from flask_restx import Namespace, Resource
from marshmallow import ValidationError
import logging

from stock_ledger.exceptions import StockLedgerError
from stock_ledger.ledger import get_ledger
from stock_ledger.models import TransactionFilter, TransactionType
from stock_ledger.utils.error_handlers import error_body, validation_body, internal_error_body
from stock_ledger.utils.pagination import paginate
from stock_ledger.utils.schemas import TransactionQuerySchema, StockTransactionResponseSchema

logger = logging.getLogger(__name__)

transactions_ns = Namespace('transactions', description='Transaction ledger')

# Initialize schemas
transaction_query_schema = TransactionQuerySchema()
transaction_response_schema = StockTransactionResponseSchema()


@transactions_ns.route('')
class TransactionList(Resource):
    @transactions_ns.doc('list_transactions', params={
        'product_id': 'Only this product',
        'warehouse_id': 'Only this warehouse',
        'transaction_type': 'in, out or adjust',
        'operator': 'Only movements by this operator',
        'start_date': 'Earliest creation time (ISO 8601, inclusive)',
        'end_date': 'Latest creation time (ISO 8601, inclusive)',
        'keyword': 'Matches transaction number, remark or reference id',
        'page': 'Page number',
        'per_page': 'Page size',
    })
    def get(self):
        """List ledger entries, oldest first"""
        try:
            params = transaction_query_schema.load(request.args.to_dict())
            transaction_type = params.get('transaction_type')
            filter = TransactionFilter(
                product_id=params.get('product_id'),
                warehouse_id=params.get('warehouse_id'),
                transaction_type=TransactionType.parse(transaction_type) if transaction_type else None,
                operator=params.get('operator'),
                start_date=params.get('start_date'),
                end_date=params.get('end_date'),
                keyword=params.get('keyword'),
            )
            transactions = get_ledger().queries.find_all_transactions(filter)
            items, pagination = paginate(transactions, params['page'], params['per_page'])
            return {
                'items': transaction_response_schema.dump(items, many=True),
                'pagination': pagination
            }, 200

        except ValidationError as e:
            return validation_body(e)
        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error listing transactions: {e}", exc_info=True)
            return internal_error_body()


@transactions_ns.route('/<string:transaction_no>')
class TransactionItem(Resource):
    @transactions_ns.doc('get_transaction')
    def get(self, transaction_no):
        """Get one ledger entry by its transaction number"""
        try:
            transaction = get_ledger().queries.find_transaction(transaction_no)
            if transaction is None:
                return {
                    'error': 'TRANSACTION_NOT_FOUND',
                    'message': f"Transaction {transaction_no} not found",
                    'status_code': 404
                }, 404
            return transaction_response_schema.dump(transaction), 200

        except StockLedgerError as e:
            return error_body(e)
        except Exception as e:
            logger.error(f"Error getting transaction {transaction_no}: {e}", exc_info=True)
            return internal_error_body()
