"""
Test fixtures and helper functions for catalog tests.

Other procurement test packages import create_product / get_or_create_test_user
from here so every suite builds products the same way.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from procurement.catalog.models import Product

User = get_user_model()


def get_or_create_test_user(username='testuser', role=None, is_superuser=False):
    """Get or create a test user, optionally placed in an approval role group"""
    user, created = User.objects.get_or_create(
        username=username,
        defaults={'email': f'{username}@example.com', 'is_superuser': is_superuser}
    )

    if created:
        user.set_password('testpass123')
        user.save()

    if role:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)

    return user


def create_product(sku='LAPTOP01', name='Laptop Computer', current_stock='50', reorder_level='20', unit='pcs'):
    """Create a product for testing"""
    return Product.objects.create(
        sku=sku,
        name=name,
        unit=unit,
        current_stock=Decimal(current_stock),
        reorder_level=Decimal(reorder_level),
        description=f'{name} for testing'
    )


def create_valid_product_data(sku='MONITOR01', name='27in Monitor'):
    """Create valid product data for POST requests"""
    return {
        'sku': sku,
        'name': name,
        'unit': 'pcs',
        'description': 'Test product',
        'current_stock': '15.000',
        'reorder_level': '10.000',
    }
