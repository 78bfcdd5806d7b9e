"""Persist-time field validation for purchase order line items."""
from django.utils import timezone

from procurement.validation import (
    FieldError,
    check_choice,
    check_max_length,
    check_min,
    check_range,
    check_required,
)

DEFECT_SEVERITIES = ['minor', 'major', 'critical']


def validate_quality_check(errors, quality_check):
    if not quality_check:
        return
    check_max_length(errors, 'quality_check', quality_check.get('notes'), 500, 'Quality check notes')
    for defect in quality_check.get('defects') or []:
        if not isinstance(defect, dict) or not str(defect.get('type') or '').strip():
            errors.append(FieldError('quality_check', 'Each defect needs a type'))
            continue
        check_choice(errors, 'quality_check', defect.get('severity', 'minor'), DEFECT_SEVERITIES)
        check_min(errors, 'quality_check', defect.get('quantity'), 0, 'Defect quantity cannot be negative')


def validate_purchase_order_item(item):
    """Return the list of FieldError for a PurchaseOrderItem about to be saved."""
    from procurement.po.models import PurchaseOrderItem

    errors = []

    if check_required(errors, 'quantity', item.quantity, 'Quantity'):
        check_min(errors, 'quantity', item.quantity, '0.001', 'Quantity must be greater than 0')
    if check_required(errors, 'unit_price', item.unit_price, 'Unit price'):
        check_min(errors, 'unit_price', item.unit_price, 0, 'Unit price cannot be negative')
    check_range(errors, 'tax_rate', item.tax_rate, 0, 100, 'Tax rate')
    check_min(errors, 'discount', item.discount, 0, 'Discount cannot be negative')
    check_choice(errors, 'discount_type', item.discount_type, PurchaseOrderItem.DISCOUNT_TYPE_CHOICES)
    if item.discount_type == 'percentage':
        check_range(errors, 'discount', item.discount, 0, 100, 'Percentage discount')

    check_min(errors, 'received_quantity', item.received_quantity, 0, 'Received quantity cannot be negative')
    check_min(errors, 'rejected_quantity', item.rejected_quantity, 0, 'Rejected quantity cannot be negative')
    if item.received_quantity is not None and item.quantity is not None and item.received_quantity > item.quantity:
        errors.append(FieldError('received_quantity', 'Received quantity cannot exceed ordered quantity'))

    check_choice(errors, 'quality_status', item.quality_status, PurchaseOrderItem.QUALITY_STATUS_CHOICES)
    check_choice(errors, 'line_item_status', item.line_item_status, PurchaseOrderItem.LINE_ITEM_STATUS_CHOICES)
    validate_quality_check(errors, item.quality_check)

    if check_required(errors, 'unit', item.unit, 'Unit'):
        check_max_length(errors, 'unit', item.unit, 50, 'Unit')
    check_max_length(errors, 'description', item.description, 1000, 'Description')
    check_max_length(errors, 'notes', item.notes, 1000, 'Notes')
    check_max_length(errors, 'cancellation_reason', item.cancellation_reason, 500, 'Cancellation reason')

    # only caller-supplied dates are checked; stored dates may legitimately be in the past
    if item.expected_delivery_date and item.has_changed('expected_delivery_date'):
        if item.expected_delivery_date <= timezone.localdate():
            errors.append(FieldError('expected_delivery_date', 'Expected delivery date must be in the future'))

    return errors
