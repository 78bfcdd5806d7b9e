"""
Tests for the Product model and catalog API endpoints.
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework import status

from procurement.catalog.models import Product, classify_stock
from procurement.exceptions import InvalidArgument
from .fixtures import get_or_create_test_user, create_product, create_valid_product_data


class StockClassificationTests(TestCase):
    """classify_stock thresholds"""

    def test_zero_stock_is_out_of_stock(self):
        self.assertEqual(classify_stock(0, 10), 'out_of_stock')

    def test_at_reorder_level_is_low(self):
        self.assertEqual(classify_stock(10, 10), 'low')

    def test_above_twice_reorder_level_is_excess(self):
        self.assertEqual(classify_stock(21, 10), 'excess')

    def test_between_reorder_and_twice_is_adequate(self):
        self.assertEqual(classify_stock(20, 10), 'adequate')

    def test_missing_values_count_as_zero(self):
        self.assertEqual(classify_stock(None, None), 'out_of_stock')


class ProductModelTests(TestCase):

    def test_sku_is_normalised(self):
        product = create_product(sku=' cable01 ')
        self.assertEqual(product.sku, 'CABLE01')
        self.assertEqual(Product.get_by_sku('cable01'), product)

    def test_negative_stock_rejected(self):
        with self.assertRaises(InvalidArgument) as ctx:
            create_product(current_stock='-1')
        self.assertIn('current_stock', ctx.exception.message_dict)

    def test_stock_status_property(self):
        product = create_product(current_stock='5', reorder_level='10')
        self.assertEqual(product.stock_status, 'low')


class ProductAPITests(TestCase):
    """Test cases for the product endpoints"""

    def setUp(self):
        self.client = APIClient()
        self.user = get_or_create_test_user()
        self.client.force_authenticate(user=self.user)
        self.url = '/procurement/catalog/products/'

    def test_create_product_success(self):
        response = self.client.post(self.url, create_valid_product_data(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'success')
        self.assertEqual(response.data['data']['sku'], 'MONITOR01')
        self.assertEqual(response.data['data']['stock_status'], 'adequate')

    def test_create_duplicate_sku_fails(self):
        create_product(sku='MONITOR01')
        response = self.client.post(self.url, create_valid_product_data(sku='monitor01'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['status'], 'error')
        self.assertIn('sku', response.data['data'])

    def test_list_products_paginated(self):
        create_product(sku='A1', name='Alpha')
        create_product(sku='B1', name='Beta', current_stock='0')

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['count'], 2)

        response = self.client.get(self.url, {'stock_status': 'out_of_stock'})
        self.assertEqual(response.data['data']['count'], 1)
        self.assertEqual(response.data['data']['results'][0]['sku'], 'B1')

    def test_update_stock_level(self):
        product = create_product()
        response = self.client.put(f'{self.url}{product.id}/', {'current_stock': '0'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.current_stock, Decimal('0'))

    def test_get_by_sku_not_found(self):
        response = self.client.get(f'{self.url}by-sku/NOPE/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unauthenticated_request_rejected(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(self.url)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
