"""Persist-time field validation for requisition line items."""
from procurement.validation import (
    FieldError,
    check_choice,
    check_max_length,
    check_min,
    check_required,
)


def validate_requisition_item(item):
    """Return the list of FieldError for a RequisitionItem about to be saved."""
    from procurement.requisition.models import RequisitionItem, SOURCING_METHOD_CHOICES
    from procurement.catalog.models import STOCK_STATUS_CHOICES

    errors = []

    if check_required(errors, 'quantity', item.quantity, 'Quantity'):
        check_min(errors, 'quantity', item.quantity, '0.001', 'Quantity must be greater than 0')
    if check_required(errors, 'estimated_unit_price', item.estimated_unit_price, 'Estimated unit price'):
        check_min(errors, 'estimated_unit_price', item.estimated_unit_price, 0,
                  'Estimated unit price cannot be negative')
    check_min(errors, 'actual_unit_price', item.actual_unit_price, 0, 'Actual unit price cannot be negative')

    check_min(errors, 'approved_quantity', item.approved_quantity, 0, 'Approved quantity cannot be negative')
    if item.approved_quantity is not None and item.quantity is not None and item.approved_quantity > item.quantity:
        errors.append(FieldError('approved_quantity', 'Approved quantity cannot exceed requested quantity'))
    check_min(errors, 'approved_unit_price', item.approved_unit_price, 0, 'Approved unit price cannot be negative')

    check_choice(errors, 'status', item.status, RequisitionItem.STATUS_CHOICES)
    check_choice(errors, 'urgency', item.urgency, RequisitionItem.URGENCY_CHOICES)
    check_choice(errors, 'stock_status', item.stock_status, STOCK_STATUS_CHOICES)

    if check_required(errors, 'unit', item.unit, 'Unit'):
        check_max_length(errors, 'unit', item.unit, 50, 'Unit')
    if check_required(errors, 'intended_use', item.intended_use, 'Intended use'):
        check_max_length(errors, 'intended_use', item.intended_use, 500, 'Intended use')
    check_max_length(errors, 'description', item.description, 1000, 'Description')
    check_max_length(errors, 'approval_comments', item.approval_comments, 1000, 'Approval comments')
    check_max_length(errors, 'rejection_reason', item.rejection_reason, 500, 'Rejection reason')

    recommendation = item.sourcing_recommendation or {}
    if recommendation:
        check_choice(errors, 'sourcing_recommendation', recommendation.get('method'), SOURCING_METHOD_CHOICES)

    return errors
