"""
Tests for requisition item API endpoints.

Tests all endpoints:
- POST   /procurement/requisition/items/                        - Create item
- GET    /procurement/requisition/items/                        - List items
- GET    /procurement/requisition/items/{id}/                   - Item detail + stats
- PATCH  /procurement/requisition/items/{id}/                   - Edit requested item
- DELETE /procurement/requisition/items/{id}/                   - Delete requested item
- POST   /procurement/requisition/items/{id}/approve/           - Approve
- POST   /procurement/requisition/items/{id}/partially-approve/ - Partially approve
- POST   /procurement/requisition/items/{id}/reject/            - Reject
- POST   /procurement/requisition/items/{id}/actual-costs/      - Record actual costs
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from procurement.requisition.models import RequisitionItem
from procurement.requisition.tests.fixtures import (
    create_product,
    create_requisition,
    create_requisition_item,
    create_valid_requisition_item_data,
    get_or_create_test_user,
)


class RequisitionItemCreateTests(TestCase):
    """Test requisition item creation endpoint"""

    def setUp(self):
        self.client = APIClient()
        self.user = get_or_create_test_user()
        self.client.force_authenticate(user=self.user)
        self.url = reverse('requisition:item-list')

        self.requisition = create_requisition()
        self.product = create_product(current_stock='5', reorder_level='10')
        self.valid_data = create_valid_requisition_item_data(self.requisition, self.product)

    def test_create_item_success(self):
        response = self.client.post(self.url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'success')
        data = response.data['data']
        self.assertEqual(Decimal(data['total_estimated_cost']), Decimal('1200.00'))
        self.assertEqual(data['stock_status'], 'low')
        self.assertTrue(data['is_within_budget'])
        self.assertEqual(data['created_by'], 'testuser')
        self.assertEqual(data['version'], 0)

    def test_create_item_missing_intended_use(self):
        data = dict(self.valid_data)
        del data['intended_use']
        response = self.client.post(self.url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('intended_use', response.data['data'])

    def test_create_duplicate_product_on_requisition(self):
        self.client.post(self.url, self.valid_data, format='json')
        response = self.client.post(self.url, self.valid_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('product_id', response.data['data'])

    def test_create_item_unknown_requisition(self):
        data = dict(self.valid_data, requisition_id=9999)
        response = self.client.post(self.url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RequisitionItemListTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user())
        self.url = reverse('requisition:item-list')

        self.requisition = create_requisition()
        self.item_a = create_requisition_item(
            requisition=self.requisition,
            product=create_product(sku='A1'),
            budget_available_balance=Decimal('10')
        )
        self.item_b = create_requisition_item(
            requisition=self.requisition,
            product=create_product(sku='B1', current_stock='0'),
            urgency='critical'
        )

    def test_list_all(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['count'], 2)

    def test_filter_by_urgency(self):
        response = self.client.get(self.url, {'urgency': 'critical'})
        self.assertEqual(response.data['data']['count'], 1)
        self.assertEqual(response.data['data']['results'][0]['id'], self.item_b.id)

    def test_over_budget_filter(self):
        response = self.client.get(self.url, {'over_budget': 'true'})
        self.assertEqual([row['id'] for row in response.data['data']['results']], [self.item_a.id])

    def test_low_stock_filter(self):
        response = self.client.get(self.url, {'low_stock': 'true'})
        self.assertEqual([row['id'] for row in response.data['data']['results']], [self.item_b.id])


class RequisitionItemDetailTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user())
        self.item = create_requisition_item()
        self.url = reverse('requisition:item-detail', args=[self.item.id])

    def test_get_detail_includes_stats(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('stats', response.data['data'])
        self.assertEqual(response.data['data']['stats']['budget_status'], 'within_budget')

    def test_patch_recalculates_totals(self):
        response = self.client.patch(self.url, {'quantity': '20', 'version': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.item.refresh_from_db()
        self.assertEqual(self.item.total_estimated_cost, Decimal('2000.00'))
        self.assertEqual(self.item.version, 1)

    def test_patch_with_stale_version_conflicts(self):
        response = self.client.patch(self.url, {'quantity': '20', 'version': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['data']['code'], 'stale_record')

    def test_patch_after_approval_refused(self):
        self.item.approve('manager.one')
        response = self.client.patch(self.url, {'quantity': '20'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_requested_item(self):
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(RequisitionItem.objects.filter(pk=self.item.pk).exists())


class RequisitionItemWorkflowAPITests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=get_or_create_test_user(username='approver'))
        self.item = create_requisition_item(quantity='10', estimated_unit_price='100.00')

    def test_approve(self):
        url = reverse('requisition:item-approve', args=[self.item.id])
        response = self.client.post(url, {'comments': 'Go ahead', 'version': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'approved')
        self.assertEqual(response.data['data']['approved_by'], 'approver')

    def test_approve_above_requested_quantity(self):
        url = reverse('requisition:item-approve', args=[self.item.id])
        response = self.client.post(url, {'quantity': '12'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'invalid_argument')
        self.assertIn('approved_quantity', response.data['data']['errors'])

    def test_partially_approve(self):
        url = reverse('requisition:item-partially-approve', args=[self.item.id])
        response = self.client.post(url, {'quantity': '6'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'partially_approved')
        self.assertEqual(Decimal(response.data['data']['approval_percentage']), Decimal('60.00'))

    def test_partially_approve_full_quantity(self):
        url = reverse('requisition:item-partially-approve', args=[self.item.id])
        response = self.client.post(url, {'quantity': '10'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['status'], 'error')

    def test_reject_then_approve_is_refused(self):
        reject_url = reverse('requisition:item-reject', args=[self.item.id])
        response = self.client.post(reject_url, {'reason': 'Duplicate request'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['rejection_reason'], 'Duplicate request')

        approve_url = reverse('requisition:item-approve', args=[self.item.id])
        response = self.client.post(approve_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['data']['code'], 'invalid_transition')

    def test_actual_costs(self):
        url = reverse('requisition:item-actual-costs', args=[self.item.id])
        response = self.client.post(url, {'actual_unit_price': '90.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['stats']['cost_variance'], Decimal('-100.00'))

    def test_not_found(self):
        url = reverse('requisition:item-approve', args=[9999])
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
