"""
Integration tests for complete procurement workflow: Requisition → Bid → PO → Receiving
Tests the full end-to-end process through the API.
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from procurement.bidding.tests.fixtures import create_bid, create_rfq_item
from procurement.catalog.tests.fixtures import create_product, get_or_create_test_user
from procurement.po.models import PurchaseOrderItem
from procurement.po.tests.fixtures import create_purchase_order
from procurement.requisition.models import RequisitionItem
from procurement.requisition.tests.fixtures import create_requisition


class ProcurementIntegrationTestCase(TestCase):
    """Base class for integration tests with common setup."""

    def setUp(self):
        """Set up test data."""
        self.client = APIClient()

        self.requester = get_or_create_test_user(username='requester')
        self.approver = get_or_create_test_user(username='approver', role='manager')
        self.director = get_or_create_test_user(username='director', role='director')
        self.receiver = get_or_create_test_user(username='receiver')

        self.product = create_product(sku='LAPTOP01', current_stock='5', reorder_level='20')

    def as_user(self, user):
        self.client.force_authenticate(user=user)
        return self.client


class RequisitionToReceiptTests(ProcurementIntegrationTestCase):

    def test_full_workflow(self):
        # 1. Request ten laptops
        requisition = create_requisition()
        response = self.as_user(self.requester).post(reverse('requisition:item-list'), {
            'requisition_id': requisition.id,
            'product_id': self.product.id,
            'quantity': '10',
            'estimated_unit_price': '1000.00',
            'intended_use': 'New hires',
            'budget_available_balance': '20000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        requisition_item_id = response.data['data']['id']
        self.assertEqual(response.data['data']['stock_status'], 'low')

        # 2. Approve eight of them at a negotiated price
        response = self.as_user(self.approver).post(
            reverse('requisition:item-partially-approve', args=[requisition_item_id]),
            {'quantity': '8', 'unit_price': '950.00', 'version': 0},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['approved_total_cost']), Decimal('7600.00'))
        self.assertEqual(response.data['data']['approved_by'], 'approver')

        # 3. Order what was approved
        purchase_order = create_purchase_order()
        response = self.as_user(self.approver).post(reverse('po:item-list'), {
            'purchase_order_id': purchase_order.id,
            'product_id': self.product.id,
            'quantity': '8',
            'unit_price': '950.00',
            'tax_rate': '10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        po_item_id = response.data['data']['id']
        self.assertEqual(Decimal(response.data['data']['net_amount']), Decimal('8360.00'))

        # 4. Receive in two deliveries, return one damaged unit
        receiver = self.as_user(self.receiver)
        response = receiver.post(reverse('po:item-receive', args=[po_item_id]), {'quantity': '5'}, format='json')
        self.assertEqual(response.data['data']['delivery_status'], 'partially_received')

        response = receiver.post(reverse('po:item-receive', args=[po_item_id]), {'quantity': '3'}, format='json')
        self.assertEqual(response.data['data']['delivery_status'], 'fully_received')

        response = receiver.post(reverse('po:item-return', args=[po_item_id]), {
            'quantity': '1', 'reason': 'Cracked screen', 'condition': 'damaged',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = receiver.post(reverse('po:item-quality-check', args=[po_item_id]), {
            'status': 'partial',
            'defects': [{'type': 'screen', 'description': 'Cracked', 'severity': 'major', 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        # returned goods leave received and count as rejected
        po_item = PurchaseOrderItem.objects.get(pk=po_item_id)
        self.assertEqual(po_item.received_quantity, Decimal('7'))
        self.assertEqual(po_item.rejected_quantity, Decimal('1'))
        self.assertEqual(po_item.accepted_quantity, Decimal('6'))
        self.assertEqual(po_item.delivery_status, 'partially_received')
        self.assertEqual(po_item.quality_status, 'partial')
        self.assertEqual(len(po_item.inventory_updates), 3)
        self.assertFalse(purchase_order.is_fully_received())
        self.assertEqual(purchase_order.get_receiving_summary()['total_pending'], Decimal('1'))

        # 5. Cancelling a received line is refused
        response = self.as_user(self.approver).post(reverse('po:item-cancel', args=[po_item_id]),
                                                    {'reason': 'Too late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'illegal_cancellation')

        # 6. Record what was finally paid on the requisition
        response = self.as_user(self.approver).post(
            reverse('requisition:item-actual-costs', args=[requisition_item_id]),
            {'actual_unit_price': '950.00'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        requisition_item = RequisitionItem.objects.get(pk=requisition_item_id)
        self.assertEqual(requisition_item.actual_total_cost, Decimal('9500.00'))
        self.assertEqual(requisition_item.cost_variance, Decimal('-500.00'))

    def test_rejected_requisition_cannot_be_approved(self):
        requisition = create_requisition()
        response = self.as_user(self.requester).post(reverse('requisition:item-list'), {
            'requisition_id': requisition.id,
            'product_id': self.product.id,
            'quantity': '2',
            'estimated_unit_price': '1000.00',
            'intended_use': 'Spare units',
        }, format='json')
        item_id = response.data['data']['id']

        approver = self.as_user(self.approver)
        response = approver.post(reverse('requisition:item-reject', args=[item_id]),
                                 {'reason': 'Use the spares pool'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = approver.post(reverse('requisition:item-approve', args=[item_id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'invalid_transition')


class BidSelectionTests(ProcurementIntegrationTestCase):

    def test_quote_evaluate_and_award(self):
        rfq_item = create_rfq_item(product=self.product, quantity='8')
        bid = create_bid(total_amount='7600.00', status='open')

        response = self.as_user(self.requester).post(reverse('bidding:item-list'), {
            'bid_id': bid.id,
            'rfq_item_id': rfq_item.id,
            'product_id': self.product.id,
            'unit_price': '950.00',
            'quantity': '8',
            'delivery_time': 10,
            'warranty': {'period': 24},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item_id = response.data['data']['id']

        manager = self.as_user(self.approver)
        response = manager.post(reverse('bidding:bid-change-status', args=[bid.id]),
                                {'status': 'under_evaluation'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        # quotes are frozen once evaluation starts
        response = manager.patch(reverse('bidding:item-detail', args=[item_id]), {'unit_price': '1.00'},
                                 format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = manager.post(reverse('bidding:item-evaluate', args=[item_id]), {
            'technical_score': '90', 'financial_score': '80', 'delivery_score': '85',
            'quality_score': '90', 'compliance_score': '100',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['analysis']['risk_level'], 'low')

        response = manager.post(reverse('bidding:bid-change-status', args=[bid.id]),
                                {'status': 'awarded', 'reason': 'Best overall score'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = manager.post(reverse('bidding:bid-change-status', args=[bid.id]),
                                {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry['to_status'] for entry in response.data['data']['status_history']],
                         ['under_evaluation', 'awarded', 'completed'])
        self.assertEqual(response.data['data']['next_statuses'], [])

    def test_large_award_goes_through_legal_review(self):
        bid = create_bid(total_amount='150000.00', status='under_evaluation')
        director = self.as_user(self.director)
        url = reverse('bidding:bid-change-status', args=[bid.id])

        response = director.post(url, {'status': 'awarded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['data']['code'], 'approval_required')

        response = director.get(reverse('bidding:bid-next-status', args=[bid.id]),
                                {'evaluation_complete': 'true', 'requires_legal_review': 'true'})
        self.assertEqual(response.data['data']['recommended'], 'under_legal_review')

        response = director.post(url, {'status': 'under_legal_review'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = director.post(url, {'status': 'awarded', 'version': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'awarded')
