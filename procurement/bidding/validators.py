"""Persist-time field validation for bids and bid items."""
from procurement.validation import (
    FieldError,
    check_choice,
    check_max_length,
    check_min,
    check_range,
    check_required,
)

DEVIATION_IMPACT_CHOICES = ['minor', 'moderate', 'major', 'critical']
ATTACHMENT_TYPE_CHOICES = ['specification', 'certificate', 'test_report', 'catalog', 'quotation', 'other']
SUPPORT_TYPE_CHOICES = [
    'technical_support', 'maintenance', 'spare_parts', 'training', 'onsite_support', 'remote_support',
]
SPARE_PARTS_AVAILABILITY_CHOICES = [
    'readily_available', 'available_with_lead_time', 'limited_availability', 'not_available',
]
TRAINING_LOCATION_CHOICES = ['supplier_premises', 'customer_premises', 'online', 'hybrid']

COMPLIANCE_SCORE_FIELDS = ['technical_compliance', 'quality_compliance', 'documentation_compliance',
                           'overall_compliance']
EVALUATION_SCORE_FIELDS = ['technical_score', 'financial_score', 'delivery_score', 'quality_score',
                           'compliance_score', 'overall_score']


def validate_bid(bid):
    from procurement.bidding.status import BID_STATUS_CHOICES

    errors = []
    if check_required(errors, 'supplier_name', bid.supplier_name, 'Supplier'):
        check_max_length(errors, 'supplier_name', bid.supplier_name, 255, 'Supplier')
    check_choice(errors, 'status', bid.status, BID_STATUS_CHOICES)
    check_min(errors, 'total_amount', bid.total_amount, 0, 'Total amount cannot be negative')
    return errors


def _validate_deviations(errors, deviations):
    for deviation in deviations or []:
        if not str(deviation.get('aspect') or '').strip():
            errors.append(FieldError('deviations', 'Deviation aspect is required'))
        if not str(deviation.get('description') or '').strip():
            errors.append(FieldError('deviations', 'Deviation description is required'))
        check_choice(errors, 'deviations', deviation.get('impact'), DEVIATION_IMPACT_CHOICES)


def _validate_attachments(errors, attachments):
    for attachment in attachments or []:
        if not str(attachment.get('name') or '').strip() or not attachment.get('url'):
            errors.append(FieldError('attachments', 'Attachment name and url are required'))
        check_choice(errors, 'attachments', attachment.get('type'), ATTACHMENT_TYPE_CHOICES)


def _validate_alternative(errors, offer):
    if not offer:
        return
    check_max_length(errors, 'alternative_offer', offer.get('description'), 1000, 'Product description')
    check_max_length(errors, 'alternative_offer', offer.get('brand'), 100, 'Brand')
    check_max_length(errors, 'alternative_offer', offer.get('model'), 100, 'Model')
    check_max_length(errors, 'alternative_offer', offer.get('advantages'), 1000, 'Advantages')
    check_max_length(errors, 'alternative_offer', offer.get('disadvantages'), 1000, 'Disadvantages')
    check_max_length(errors, 'alternative_offer', offer.get('technical_comparison'), 2000, 'Technical comparison')


def _validate_support_records(errors, item):
    warranty = item.warranty or {}
    check_min(errors, 'warranty', warranty.get('period'), 0, 'Warranty period cannot be negative')
    check_min(errors, 'warranty', warranty.get('service_response_time'), 0,
              'Service response time cannot be negative')

    support = item.after_sales_support or {}
    check_min(errors, 'after_sales_support', support.get('duration'), 0, 'Support duration cannot be negative')
    check_min(errors, 'after_sales_support', support.get('additional_cost'), 0,
              'Support cost cannot be negative')
    for support_type in support.get('support_types') or []:
        check_choice(errors, 'after_sales_support', support_type, SUPPORT_TYPE_CHOICES)

    spare_parts = item.spare_parts or {}
    check_choice(errors, 'spare_parts', spare_parts.get('availability', 'readily_available'),
                 SPARE_PARTS_AVAILABILITY_CHOICES)
    check_min(errors, 'spare_parts', spare_parts.get('lead_time'), 0, 'Spare parts lead time cannot be negative')

    training = item.training or {}
    check_choice(errors, 'training', training.get('location'), TRAINING_LOCATION_CHOICES, allow_empty=True)
    check_min(errors, 'training', training.get('duration'), 0, 'Training duration cannot be negative')
    check_min(errors, 'training', training.get('additional_cost'), 0, 'Training cost cannot be negative')


def validate_bid_item(item):
    """Return the list of FieldError for a BidItem about to be saved."""
    from procurement.bidding.models import BidItem

    errors = []

    if check_required(errors, 'unit_price', item.unit_price, 'Unit price'):
        check_min(errors, 'unit_price', item.unit_price, 0, 'Unit price cannot be negative')
    if check_required(errors, 'quantity', item.quantity, 'Quantity'):
        check_min(errors, 'quantity', item.quantity, '0.001', 'Quantity must be greater than 0')
    if check_required(errors, 'delivery_time', item.delivery_time, 'Delivery time'):
        if not isinstance(item.delivery_time, int) or isinstance(item.delivery_time, bool):
            errors.append(FieldError('delivery_time', 'Delivery time must be a whole number of days'))
        else:
            check_min(errors, 'delivery_time', item.delivery_time, 0, 'Delivery time cannot be negative')

    check_choice(errors, 'specifications_compliance', item.specifications_compliance,
                 BidItem.COMPLIANCE_CHOICES)
    for field in COMPLIANCE_SCORE_FIELDS + EVALUATION_SCORE_FIELDS:
        check_range(errors, field, getattr(item, field), 0, 100, field.replace('_', ' ').capitalize())

    _validate_deviations(errors, item.deviations)
    _validate_attachments(errors, item.attachments)
    _validate_alternative(errors, item.alternative_offer)
    _validate_support_records(errors, item)

    check_max_length(errors, 'compliance_notes', item.compliance_notes, 2000, 'Compliance notes')
    check_max_length(errors, 'notes', item.notes, 2000, 'Notes')
    check_max_length(errors, 'supplier_notes', item.supplier_notes, 2000, 'Supplier notes')
    return errors
