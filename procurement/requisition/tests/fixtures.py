"""
Test fixtures and helper functions for requisition tests.
"""
from decimal import Decimal

from procurement.catalog.tests.fixtures import create_product, get_or_create_test_user
from procurement.requisition.models import Requisition, RequisitionItem


def create_requisition(title='IT equipment refresh', department='IT', requested_by='requester'):
    """Create a requisition header"""
    return Requisition.objects.create(title=title, department=department, requested_by=requested_by)


def create_requisition_item(requisition=None, product=None, quantity='10', estimated_unit_price='100.00',
                            **extra):
    """Create a requisition item; builds the requisition and product when not given"""
    requisition = requisition or create_requisition()
    product = product or create_product()
    defaults = {
        'unit': 'pcs',
        'intended_use': 'Team onboarding',
    }
    defaults.update(extra)
    return RequisitionItem.objects.create(
        requisition=requisition,
        product=product,
        quantity=Decimal(quantity),
        estimated_unit_price=Decimal(estimated_unit_price),
        created_by='requester',
        **defaults
    )


def create_valid_requisition_item_data(requisition, product):
    """Valid POST body for the requisition item endpoint"""
    return {
        'requisition_id': requisition.id,
        'product_id': product.id,
        'quantity': '10',
        'unit': 'pcs',
        'estimated_unit_price': '120.00',
        'intended_use': 'New hires onboarding',
        'urgency': 'urgent',
        'budget_code': 'IT-2025',
        'budget_available_balance': '5000.00',
    }


__all__ = [
    'create_product',
    'get_or_create_test_user',
    'create_requisition',
    'create_requisition_item',
    'create_valid_requisition_item_data',
]
