"""
Tests for bidding API endpoints.

Tests all endpoints:
- GET/POST /procurement/bidding/bids/                        - List / create bids
- GET      /procurement/bidding/bids/{id}/                   - Bid detail with items
- POST     /procurement/bidding/bids/{id}/change-status/     - Status change (role gated)
- GET      /procurement/bidding/bids/{id}/next-status/       - Next statuses + recommendation
- GET/POST /procurement/bidding/items/                       - List / create bid items
- GET/PATCH/DELETE /procurement/bidding/items/{id}/          - Bid item detail
- POST     /procurement/bidding/items/{id}/deviations/       - Add deviation
- POST     /procurement/bidding/items/{id}/alternative/      - Offer alternative product
- POST     /procurement/bidding/items/{id}/evaluate/         - Evaluation scores
- POST     /procurement/bidding/items/{id}/compliance/       - Compliance sub-scores
- POST     /procurement/bidding/items/{id}/attachments/      - Add attachment
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from procurement.bidding.models import Bid, BidItem
from procurement.bidding.tests.fixtures import (
    create_bid,
    create_bid_item,
    create_product,
    create_rfq_item,
    create_valid_bid_item_data,
    get_or_create_test_user,
)


class BidEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user(username='buyer'))

    def test_create_bid(self):
        response = self.client.post(reverse('bidding:bid-list'), {
            'supplier_name': 'Acme Supplies',
            'rfq_reference': 'RFQ-2025-009',
            'total_amount': '12000.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['next_statuses'], ['published', 'cancelled'])
        self.assertEqual(data['created_by'], 'buyer')
        self.assertTrue(data['bid_number'].startswith('BID-'))

    def test_create_bid_requires_supplier(self):
        response = self.client.post(reverse('bidding:bid-list'), {'total_amount': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('supplier_name', response.data['data'])

    def test_list_attention_required(self):
        create_bid(status='open')
        on_hold = create_bid(status='on_hold')

        response = self.client.get(reverse('bidding:bid-list'), {'attention': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['data']['results']], [on_hold.id])

    def test_detail_includes_items(self):
        item = create_bid_item(unit_price='100.00', quantity='3')
        response = self.client.get(reverse('bidding:bid-detail', args=[item.bid_id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']['items']), 1)
        self.assertEqual(response.data['data']['items_total'], Decimal('300.00'))
        self.assertFalse(response.data['data']['deadline_approaching'])

    def test_detail_not_found(self):
        response = self.client.get(reverse('bidding:bid-detail', args=[9999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BidChangeStatusEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.bid = create_bid(total_amount='45000.00', status='under_evaluation')
        self.url = reverse('bidding:bid-change-status', args=[self.bid.id])

    def test_manager_awards(self):
        self.client.force_authenticate(user=get_or_create_test_user(username='mgr', role='manager'))
        response = self.client.post(self.url, {'status': 'awarded', 'reason': 'Best value', 'version': 0},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'awarded')
        entry = response.data['data']['status_history'][-1]
        self.assertEqual(entry['changed_by'], 'mgr')
        self.assertEqual(entry['role'], 'manager')
        self.assertEqual(entry['reason'], 'Best value')

    def test_plain_user_cannot_award(self):
        self.client.force_authenticate(user=get_or_create_test_user(username='clerk'))
        response = self.client.post(self.url, {'status': 'awarded'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['data']['code'], 'insufficient_permission')
        self.bid.refresh_from_db()
        self.assertEqual(self.bid.status, 'under_evaluation')

    def test_amount_above_manager_limit(self):
        self.bid.total_amount = Decimal('60000.00')
        self.bid.save()
        self.client.force_authenticate(user=get_or_create_test_user(username='mgr', role='manager'))
        response = self.client.post(self.url, {'status': 'awarded'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['data']['code'], 'approval_required')

    def test_invalid_transition(self):
        self.client.force_authenticate(user=get_or_create_test_user(username='root', is_superuser=True))
        response = self.client.post(self.url, {'status': 'draft'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'invalid_transition')

    def test_stale_version(self):
        self.client.force_authenticate(user=get_or_create_test_user(username='mgr', role='manager'))
        response = self.client.post(self.url, {'status': 'on_hold', 'version': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['data']['code'], 'stale_record')

    def test_unknown_status_rejected_by_serializer(self):
        self.client.force_authenticate(user=get_or_create_test_user(username='mgr', role='manager'))
        response = self.client.post(self.url, {'status': 'archived'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['data'])


class BidNextStatusEndpointTests(TestCase):

    def test_next_statuses_for_plain_user(self):
        client = APIClient()
        client.force_authenticate(user=get_or_create_test_user(username='clerk'))
        bid = create_bid(status='under_evaluation')

        response = client.get(reverse('bidding:bid-next-status', args=[bid.id]), {'evaluation_complete': 'true'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['current_status'], 'under_evaluation')
        self.assertEqual(data['recommended'], 'awarded')
        by_status = {row['status']: row for row in data['next_statuses']}
        self.assertFalse(by_status['awarded']['allowed'])
        self.assertTrue(by_status['awarded']['requires_approval'])
        self.assertEqual(by_status['awarded']['blocked_by'], ['Insufficient permissions to award bids'])
        self.assertTrue(by_status['negotiation']['allowed'])


class BidItemEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user(username='supplier.rep'))
        self.url = reverse('bidding:item-list')
        self.bid = create_bid(status='open')
        self.rfq_item = create_rfq_item()

    def test_create_item(self):
        response = self.client.post(self.url, create_valid_bid_item_data(self.bid, self.rfq_item), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(Decimal(data['total']), Decimal('9500.00'))
        self.assertEqual(Decimal(data['overall_compliance']), Decimal('100.00'))
        self.assertEqual(data['warranty']['period'], 12)
        # defaults are kept for keys the caller did not send
        self.assertEqual(data['warranty']['coverage'], [])
        self.assertEqual(data['risk_level'], 'low')

    def test_create_item_on_closed_bid(self):
        closed = create_bid(status='under_evaluation')
        response = self.client.post(self.url, create_valid_bid_item_data(closed, self.rfq_item), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('bid_id', response.data['data'])

    def test_create_duplicate_quote(self):
        self.client.post(self.url, create_valid_bid_item_data(self.bid, self.rfq_item), format='json')
        response = self.client.post(self.url, create_valid_bid_item_data(self.bid, self.rfq_item), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rfq_item_id', response.data['data'])

    def test_create_item_with_negative_warranty(self):
        data = dict(create_valid_bid_item_data(self.bid, self.rfq_item), warranty={'period': -1})
        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'invalid_argument')
        self.assertIn('warranty', response.data['data']['errors'])

    def test_list_quotes_for_rfq_item(self):
        create_bid_item(bid=create_bid(status='open'), rfq_item=self.rfq_item, unit_price='700.00')
        cheapest = create_bid_item(bid=self.bid, rfq_item=self.rfq_item, unit_price='300.00')

        response = self.client.get(self.url, {'rfq_item': self.rfq_item.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['count'], 2)
        self.assertEqual(response.data['data']['results'][0]['id'], cheapest.id)

    def test_detail_includes_analysis(self):
        item = create_bid_item(bid=self.bid, rfq_item=self.rfq_item, delivery_time=45, warranty_period=0,
                               specifications_compliance='non_compliant')
        response = self.client.get(reverse('bidding:item-detail', args=[item.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['analysis']['risk_score'], 65)
        self.assertEqual(response.data['data']['analysis']['risk_level'], 'high')

    def test_patch_and_delete_while_open(self):
        item = create_bid_item(bid=self.bid, rfq_item=self.rfq_item)
        url = reverse('bidding:item-detail', args=[item.id])

        response = self.client.patch(url, {'unit_price': '450.00', 'version': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['total']), Decimal('4500.00'))

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BidItem.objects.filter(pk=item.pk).exists())

    def test_patch_refused_once_bid_is_under_evaluation(self):
        item = create_bid_item(bid=self.bid, rfq_item=self.rfq_item)
        Bid.objects.filter(pk=self.bid.pk).update(status='under_evaluation')

        response = self.client.patch(reverse('bidding:item-detail', args=[item.id]), {'unit_price': '1.00'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class BidItemActionEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user(username='evaluator'))
        self.item = create_bid_item()

    def test_add_deviation(self):
        response = self.client.post(reverse('bidding:item-deviations', args=[self.item.id]), {
            'aspect': 'Voltage',
            'description': '110V only',
            'impact': 'major',
            'version': 0,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['specifications_compliance'], 'partially_compliant')
        self.assertEqual(data['analysis']['risk_score'], 40)
        self.assertEqual(data['version'], 1)

    def test_add_deviation_with_stale_version(self):
        response = self.client.post(reverse('bidding:item-deviations', args=[self.item.id]), {
            'aspect': 'Voltage',
            'description': '110V only',
            'version': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_alternative(self):
        substitute = create_product(sku='ALT01')
        response = self.client.post(reverse('bidding:item-alternative', args=[self.item.id]), {
            'product_id': substitute.id,
            'description': 'Newer model',
            'brand': 'Contoso',
            'original_price': '500.00',
            'alternative_price': '550.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        comparison = response.data['data']['alternative_offer']['price_comparison']
        self.assertEqual(comparison['price_difference'], '50.00')
        self.assertEqual(comparison['price_difference_percentage'], '10.00')
        self.assertTrue(response.data['data']['is_alternative'])

    def test_alternative_unknown_product(self):
        response = self.client.post(reverse('bidding:item-alternative', args=[self.item.id]), {
            'product_id': 9999,
            'description': 'Ghost',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_id', response.data['data'])

    def test_evaluate(self):
        response = self.client.post(reverse('bidding:item-evaluate', args=[self.item.id]), {
            'technical_score': '80',
            'financial_score': '90',
            'delivery_score': '70',
            'quality_score': '60',
            'compliance_score': '100',
            'notes': 'Strong offer',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['overall_score']), Decimal('79.50'))
        self.assertEqual(response.data['data']['evaluated_by'], 'evaluator')

    def test_evaluate_missing_score(self):
        response = self.client.post(reverse('bidding:item-evaluate', args=[self.item.id]),
                                    {'technical_score': '80'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('financial_score', response.data['data'])

    def test_compliance(self):
        response = self.client.post(reverse('bidding:item-compliance', args=[self.item.id]), {
            'technical_compliance': '60',
            'quality_compliance': '70',
            'documentation_compliance': '80',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['overall_compliance']), Decimal('70.00'))

    def test_attachment(self):
        response = self.client.post(reverse('bidding:item-attachments', args=[self.item.id]), {
            'name': 'Datasheet',
            'url': 'https://example.com/datasheet.pdf',
            'type': 'specification',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['attachments'][0]['name'], 'Datasheet')
