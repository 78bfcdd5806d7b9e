"""
Serializers for the Product catalog.
"""
from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    Full serializer for Product.
    Used for create, update, and detail views.
    """
    stock_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'sku',
            'description',
            'unit',
            'current_stock',
            'reorder_level',
            'stock_status',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'stock_status', 'created_at', 'updated_at']

    def validate_sku(self, value):
        """Ensure SKU is uppercase and unique (case-insensitive)"""
        value = value.strip().upper()
        existing = Product.objects.filter(sku=value)
        if self.instance:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('A product with this SKU already exists.')
        return value


class ProductListSerializer(serializers.ModelSerializer):
    """
    Lightweight serializer for listing products.
    """
    stock_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'sku',
            'name',
            'unit',
            'current_stock',
            'stock_status',
            'is_active',
        ]
