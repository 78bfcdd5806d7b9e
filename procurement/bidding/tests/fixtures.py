"""
Test fixtures and helper functions for bidding tests.
"""
from decimal import Decimal

from procurement.bidding.models import Bid, BidItem, RFQItem
from procurement.catalog.tests.fixtures import create_product, get_or_create_test_user


def create_bid(supplier_name='Acme Supplies', total_amount='45000.00', status='draft', **extra):
    """Create a bid; status is written directly, bypassing change_status"""
    return Bid.objects.create(
        supplier_name=supplier_name,
        rfq_reference=extra.pop('rfq_reference', 'RFQ-2025-001'),
        total_amount=Decimal(total_amount),
        status=status,
        created_by='buyer',
        **extra
    )


def create_rfq_item(product=None, quantity='10', rfq_reference='RFQ-2025-001'):
    return RFQItem.objects.create(
        rfq_reference=rfq_reference,
        product=product or create_product(),
        quantity=Decimal(quantity),
    )


def create_bid_item(bid=None, rfq_item=None, unit_price='500.00', quantity='10', delivery_time=14,
                    warranty_period=12, **extra):
    """Create a bid item; builds the bid and RFQ item when not given"""
    bid = bid or create_bid(status='open')
    rfq_item = rfq_item or create_rfq_item()
    item = BidItem(
        bid=bid,
        rfq_item=rfq_item,
        product=extra.pop('product', rfq_item.product),
        unit_price=Decimal(unit_price),
        quantity=Decimal(quantity),
        delivery_time=delivery_time,
        created_by='supplier',
        **extra
    )
    item.warranty = dict(item.warranty, period=warranty_period)
    item.save()
    return item


def create_valid_bid_item_data(bid, rfq_item):
    """Valid POST body for the bid item endpoint"""
    return {
        'bid_id': bid.id,
        'rfq_item_id': rfq_item.id,
        'product_id': rfq_item.product_id,
        'unit_price': '950.00',
        'quantity': '10',
        'delivery_time': 14,
        'warranty': {'period': 12, 'terms': 'Parts and labour'},
    }


__all__ = [
    'create_product',
    'get_or_create_test_user',
    'create_bid',
    'create_rfq_item',
    'create_bid_item',
    'create_valid_bid_item_data',
]
