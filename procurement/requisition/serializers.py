"""
Requisition Item Serializers - API Layer for requisition line items

Thin wrappers for validation and conversion:
1. Request validation (shape and types only)
2. Converting JSON to model calls
3. Response formatting

Business rules live on RequisitionItem itself.
"""
from decimal import Decimal

from rest_framework import serializers

from procurement.catalog.models import Product
from procurement.requisition.models import Requisition, RequisitionItem


class RequisitionItemSerializer(serializers.ModelSerializer):
    """Read serializer for requisition items, including derived metrics"""

    requisition_number = serializers.CharField(source='requisition.requisition_number', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    approval_percentage = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    cost_variance = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)
    cost_variance_percentage = serializers.DecimalField(max_digits=9, decimal_places=2, read_only=True)
    stock_status_description = serializers.CharField(read_only=True)
    can_be_modified = serializers.SerializerMethodField()

    class Meta:
        model = RequisitionItem
        fields = [
            'id', 'version',
            'requisition', 'requisition_number',
            'product', 'product_sku', 'product_name',
            'quantity', 'unit', 'estimated_unit_price', 'total_estimated_cost',
            'actual_unit_price', 'actual_total_cost',
            'description', 'specifications', 'intended_use', 'technical_requirements', 'urgency',
            'status', 'approval_comments',
            'approved_quantity', 'approved_unit_price', 'approved_total_cost',
            'approved_by', 'approved_at',
            'rejection_reason', 'rejected_by', 'rejected_at',
            'budget_code', 'budget_amount', 'budget_available_balance', 'is_within_budget',
            'current_stock', 'reorder_level', 'stock_status', 'stock_status_description',
            'alternative_products', 'sourcing_recommendation',
            'approval_percentage', 'cost_variance', 'cost_variance_percentage',
            'can_be_modified',
            'notes',
            'created_by', 'created_at', 'updated_by', 'updated_at',
        ]
        read_only_fields = fields

    def get_can_be_modified(self, obj):
        return obj.can_be_modified()


class RequisitionItemCreateSerializer(serializers.Serializer):
    """
    Serializer for creating requisition items.

    Example Request Body:
    {
        "requisition_id": 1,
        "product_id": 3,
        "quantity": "10",
        "unit": "pcs",
        "estimated_unit_price": "120.00",
        "intended_use": "New hires onboarding",
        "urgency": "normal",
        "budget_code": "IT-2025",
        "budget_available_balance": "5000.00"
    }
    """
    requisition_id = serializers.IntegerField(min_value=1)
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"))
    unit = serializers.CharField(max_length=50, required=False, default='pcs')
    estimated_unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"))
    intended_use = serializers.CharField(max_length=500)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    technical_requirements = serializers.CharField(required=False, allow_blank=True, default='')
    specifications = serializers.DictField(required=False, default=dict)
    urgency = serializers.ChoiceField(choices=RequisitionItem.URGENCY_CHOICES, required=False, default='normal')
    budget_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    budget_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    budget_available_balance = serializers.DecimalField(
        max_digits=15, decimal_places=2, required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not Requisition.objects.filter(pk=attrs['requisition_id']).exists():
            raise serializers.ValidationError({'requisition_id': 'Requisition not found'})
        if not Product.objects.filter(pk=attrs['product_id']).exists():
            raise serializers.ValidationError({'product_id': 'Product not found'})
        if RequisitionItem.objects.filter(
            requisition_id=attrs['requisition_id'], product_id=attrs['product_id']
        ).exists():
            raise serializers.ValidationError({'product_id': 'This product is already on the requisition'})
        return attrs

    def create(self, validated_data):
        actor = self.context.get('actor', '')
        return RequisitionItem.objects.create(created_by=actor, updated_by=actor, **validated_data)


class RequisitionItemUpdateSerializer(serializers.Serializer):
    """Editable fields while the item is still in 'requested' status"""
    version = serializers.IntegerField(required=False, min_value=0)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"), required=False)
    estimated_unit_price = serializers.DecimalField(
        max_digits=15, decimal_places=2, min_value=Decimal("0"), required=False
    )
    intended_use = serializers.CharField(max_length=500, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    urgency = serializers.ChoiceField(choices=RequisitionItem.URGENCY_CHOICES, required=False)
    budget_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    budget_available_balance = serializers.DecimalField(
        max_digits=15, decimal_places=2, required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)


# ==================== WORKFLOW ACTION SERIALIZERS ====================

class VersionedActionSerializer(serializers.Serializer):
    """Every action accepts the version the caller last read"""
    version = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class RequisitionApproveSerializer(VersionedActionSerializer):
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0"), required=False)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"), required=False)
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class RequisitionPartialApproveSerializer(VersionedActionSerializer):
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"))
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"), required=False)
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class RequisitionRejectSerializer(VersionedActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)


class RequisitionActualCostsSerializer(VersionedActionSerializer):
    actual_unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"))
