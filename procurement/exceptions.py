"""
Typed failures raised by the procurement line-item operations.

All of them are Django ValidationErrors, so callers that already handle
ValidationError keep working, and the REST exception handler turns them into
the standard error envelope. ``status_code`` overrides the default 400.

    try:
        po_item.receive_items(Decimal('5'), received_by='store.keeper')
    except OverReceipt as e:
        ...
"""
from django.core.exceptions import ValidationError

from core.base.exceptions import StaleRecord


class ProcurementError(ValidationError):
    """Base class for every domain failure raised by the line-item operations."""
    default_code = 'procurement_error'
    default_message = 'Procurement operation failed.'
    status_code = 400

    def __init__(self, message=None, code=None, params=None):
        super().__init__(message or self.default_message, code=code or self.default_code, params=params)


class InvalidArgument(ProcurementError):
    """Bad input, including persist-time field validation failures (field -> messages)."""
    default_code = 'invalid_argument'
    default_message = 'Invalid argument.'


class InvalidQuantity(InvalidArgument):
    default_code = 'invalid_quantity'
    default_message = 'Quantity must be greater than 0.'


class OverReceipt(ProcurementError):
    default_code = 'over_receipt'
    default_message = 'Cannot receive more than ordered quantity.'


class ExcessReturn(ProcurementError):
    default_code = 'excess_return'
    default_message = 'Cannot return more than received quantity.'


class IllegalCancellation(ProcurementError):
    default_code = 'illegal_cancellation'
    default_message = 'Cannot cancel line item with received quantities.'


class InvalidTransition(ProcurementError):
    default_code = 'invalid_transition'
    default_message = 'Invalid status transition.'


class InsufficientPermission(ProcurementError):
    default_code = 'insufficient_permission'
    default_message = 'Insufficient permissions for this operation.'
    status_code = 403


class ApprovalRequired(ProcurementError):
    default_code = 'approval_required'
    default_message = 'This operation requires additional approval.'
    status_code = 403


__all__ = [
    'ProcurementError',
    'InvalidArgument',
    'InvalidQuantity',
    'OverReceipt',
    'ExcessReturn',
    'IllegalCancellation',
    'InvalidTransition',
    'InsufficientPermission',
    'ApprovalRequired',
    'StaleRecord',
]
