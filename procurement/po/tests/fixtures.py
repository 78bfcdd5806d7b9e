"""
Test fixtures and helper functions for PO tests.

This module provides common test data setup to avoid code duplication
across test files.
"""
from decimal import Decimal
from datetime import timedelta

from django.utils import timezone

from procurement.catalog.tests.fixtures import create_product, get_or_create_test_user
from procurement.po.models import PurchaseOrder, PurchaseOrderItem


def create_purchase_order(supplier_name='Acme Supplies', delivery_date=None):
    """Create a PO header; delivery_date defaults to two weeks out"""
    if delivery_date is None:
        delivery_date = timezone.localdate() + timedelta(days=14)
    return PurchaseOrder.objects.create(supplier_name=supplier_name, delivery_date=delivery_date)


def create_po_item(purchase_order=None, product=None, quantity='10', unit_price='100.00', **extra):
    """Create a PO line item; builds the purchase order and product when not given"""
    purchase_order = purchase_order or create_purchase_order()
    product = product or create_product()
    defaults = {'unit': 'pcs'}
    defaults.update(extra)
    return PurchaseOrderItem.objects.create(
        purchase_order=purchase_order,
        product=product,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        created_by='buyer',
        **defaults
    )


def create_valid_po_item_data(purchase_order, product):
    """Valid POST body for the PO item endpoint"""
    return {
        'purchase_order_id': purchase_order.id,
        'product_id': product.id,
        'quantity': '10',
        'unit': 'pcs',
        'unit_price': '100.00',
        'discount_type': 'percentage',
        'discount': '10',
        'tax_rate': '15',
    }


__all__ = [
    'create_product',
    'get_or_create_test_user',
    'create_purchase_order',
    'create_po_item',
    'create_valid_po_item_data',
]
