from marshmallow import Schema, fields, validate, validates_schema, post_load, ValidationError, EXCLUDE

from stock_ledger.models import TransactionType
from stock_ledger.utils.time_utils import to_naive_utc


TRANSACTION_TYPE_CHOICES = [t.value for t in TransactionType] + [t.name for t in TransactionType]


class MovementRequestSchema(Schema):
    """Schema for IN/OUT/ADJUST movement requests"""
    product_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    warehouse_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    transaction_type = fields.Str(required=True, validate=validate.OneOf(TRANSACTION_TYPE_CHOICES))
    quantity = fields.Int(required=True, strict=True)
    unit_price = fields.Decimal(allow_none=True, load_default=None)
    operator = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    reference_type = fields.Str(validate=validate.Length(max=50), allow_none=True, load_default=None)
    reference_id = fields.Str(validate=validate.Length(max=100), allow_none=True, load_default=None)
    remark = fields.Str(validate=validate.Length(max=500), allow_none=True, load_default=None)


class AdjustToRequestSchema(Schema):
    """Schema for stock-take adjustments to an absolute quantity"""
    product_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    warehouse_id = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    new_quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=0))
    unit_price = fields.Decimal(allow_none=True, load_default=None)
    operator = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    reference_type = fields.Str(validate=validate.Length(max=50), allow_none=True, load_default=None)
    reference_id = fields.Str(validate=validate.Length(max=100), allow_none=True, load_default=None)
    remark = fields.Str(validate=validate.Length(max=500), allow_none=True, load_default=None)


class ReservationRequestSchema(Schema):
    """Schema for reserving or releasing stock"""
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=1))


class PaginationSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    page = fields.Int(validate=validate.Range(min=1), load_default=1)
    per_page = fields.Int(validate=validate.Range(min=1), load_default=None)


class StockQuerySchema(PaginationSchema):
    """Schema for stock list query parameters"""
    product_id = fields.Str(validate=validate.Length(min=1))
    warehouse_id = fields.Str(validate=validate.Length(min=1))


class DateRangeSchema(Schema):
    """Loads start_date/end_date as naive UTC, the form stored in the ledger"""
    class Meta:
        unknown = EXCLUDE

    start_date = fields.DateTime()
    end_date = fields.DateTime()

    @validates_schema
    def validate_date_range(self, data, **kwargs):
        start, end = to_naive_utc(data.get('start_date')), to_naive_utc(data.get('end_date'))
        if start and end and start > end:
            raise ValidationError('start_date must not be after end_date', 'start_date')

    @post_load
    def normalize_dates(self, data, **kwargs):
        for key in ('start_date', 'end_date'):
            if data.get(key) is not None:
                data[key] = to_naive_utc(data[key])
        return data


class TransactionQuerySchema(PaginationSchema, DateRangeSchema):
    """Schema for transaction history query parameters"""
    product_id = fields.Str(validate=validate.Length(min=1))
    warehouse_id = fields.Str(validate=validate.Length(min=1))
    transaction_type = fields.Str(validate=validate.OneOf(TRANSACTION_TYPE_CHOICES))
    operator = fields.Str(validate=validate.Length(min=1))
    keyword = fields.Str(validate=validate.Length(min=1))


class MovementReportQuerySchema(DateRangeSchema):
    """Schema for movement report query parameters"""
    start_date = fields.DateTime(required=True)
    end_date = fields.DateTime(required=True)


class TopValueQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(validate=validate.Range(min=1, max=1000), load_default=10)


class StockPositionResponseSchema(Schema):
    """Schema for stock position responses"""
    id = fields.Str()
    product_id = fields.Str()
    warehouse_id = fields.Str()
    current_stock = fields.Int()
    available_stock = fields.Int()
    reserved_stock = fields.Int()
    avg_cost = fields.Float()
    stock_value = fields.Float()
    last_in_date = fields.DateTime(allow_none=True)
    last_out_date = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class StockTransactionResponseSchema(Schema):
    """Schema for ledger entry responses"""
    transaction_no = fields.Str()
    product_id = fields.Str()
    warehouse_id = fields.Str()
    transaction_type = fields.Function(lambda t: t.transaction_type.value)
    quantity = fields.Int()
    unit_price = fields.Float()
    total_amount = fields.Float()
    reference_type = fields.Str(allow_none=True)
    reference_id = fields.Str(allow_none=True)
    operator = fields.Str()
    remark = fields.Str(allow_none=True)
    created_at = fields.DateTime()


class MovementResponseSchema(Schema):
    """Schema for the result of an accepted movement"""
    position = fields.Nested(StockPositionResponseSchema)
    transaction = fields.Nested(StockTransactionResponseSchema)


class InventorySummarySchema(Schema):
    total_positions = fields.Int()
    total_units = fields.Int()
    total_reserved = fields.Int()
    total_value = fields.Float()
    low_stock_count = fields.Int()
    out_of_stock_count = fields.Int()
    total_transactions = fields.Int()


class MovementTotalsSchema(Schema):
    total_in = fields.Int()
    total_out = fields.Int()
    total_adjust = fields.Int()
    value_in = fields.Float()
    value_out = fields.Float()


class MovementReportSchema(Schema):
    """Schema for movement report responses"""
    start_date = fields.DateTime()
    end_date = fields.DateTime()
    transactions = fields.List(fields.Nested(StockTransactionResponseSchema))
    summary = fields.Nested(MovementTotalsSchema)


class ReplayResultSchema(Schema):
    product_id = fields.Str()
    warehouse_id = fields.Str()
    transaction_count = fields.Int()
    current_stock = fields.Int()
    replayed_stock = fields.Int()
    avg_cost = fields.Float()
    replayed_avg_cost = fields.Float()
    consistent = fields.Bool()
