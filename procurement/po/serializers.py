"""
Purchase Order Item Serializers - API Layer for PO line items

Thin wrappers for validation and conversion:
1. Request validation (shape and types only)
2. Converting JSON to model calls
3. Response formatting

Receiving, returns, quality checks and cancellation live on PurchaseOrderItem.
"""
from decimal import Decimal

from rest_framework import serializers

from procurement.catalog.models import Product
from procurement.po.models import PurchaseOrder, PurchaseOrderItem
from procurement.po.validators import DEFECT_SEVERITIES
from procurement.requisition.serializers import VersionedActionSerializer


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for PO line items, including derived metrics"""

    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='purchase_order.supplier_name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    remaining_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)
    receipt_percentage = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    acceptance_rate = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    rejection_rate = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    delivery_timeliness = serializers.CharField(read_only=True)
    can_be_modified = serializers.SerializerMethodField()
    can_be_received = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'version',
            'purchase_order', 'po_number', 'supplier_name',
            'product', 'product_sku', 'product_name',
            'quantity', 'unit', 'unit_price', 'description', 'specifications',
            'tax_rate', 'tax_amount', 'discount', 'discount_type', 'discount_amount',
            'net_amount', 'total',
            'received_quantity', 'rejected_quantity', 'accepted_quantity', 'remaining_quantity',
            'delivery_status', 'expected_delivery_date', 'actual_delivery_date',
            'received_by', 'received_at',
            'quality_status', 'quality_check',
            'inventory_updates', 'return_history',
            'line_item_status', 'cancellation_reason', 'cancelled_by', 'cancelled_at',
            'receipt_percentage', 'acceptance_rate', 'rejection_rate', 'delivery_timeliness',
            'can_be_modified', 'can_be_received',
            'notes',
            'created_by', 'created_at', 'updated_by', 'updated_at',
        ]
        read_only_fields = fields

    def get_can_be_modified(self, obj):
        return obj.can_be_modified()

    def get_can_be_received(self, obj):
        return obj.can_be_received()


class PurchaseOrderItemCreateSerializer(serializers.Serializer):
    """
    Serializer for adding a line item to a purchase order.

    Example Request Body:
    {
        "purchase_order_id": 1,
        "product_id": 3,
        "quantity": "10",
        "unit_price": "100.00",
        "discount_type": "percentage",
        "discount": "10",
        "tax_rate": "15"
    }
    """
    purchase_order_id = serializers.IntegerField(min_value=1)
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"))
    unit = serializers.CharField(max_length=50, required=False, default='pcs')
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"))
    description = serializers.CharField(required=False, allow_blank=True, default='')
    specifications = serializers.DictField(required=False, default=dict)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=Decimal('0'))
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0'))
    discount_type = serializers.ChoiceField(
        choices=PurchaseOrderItem.DISCOUNT_TYPE_CHOICES, required=False, default='none'
    )
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not PurchaseOrder.objects.filter(pk=attrs['purchase_order_id']).exists():
            raise serializers.ValidationError({'purchase_order_id': 'Purchase order not found'})
        if not Product.objects.filter(pk=attrs['product_id']).exists():
            raise serializers.ValidationError({'product_id': 'Product not found'})
        if PurchaseOrderItem.objects.filter(
            purchase_order_id=attrs['purchase_order_id'], product_id=attrs['product_id']
        ).exists():
            raise serializers.ValidationError({'product_id': 'This product is already on the purchase order'})
        return attrs

    def create(self, validated_data):
        actor = self.context.get('actor', '')
        return PurchaseOrderItem.objects.create(created_by=actor, updated_by=actor, **validated_data)


class PurchaseOrderItemUpdateSerializer(serializers.Serializer):
    """Editable fields while nothing has been received"""
    version = serializers.IntegerField(required=False, min_value=0)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"), required=False)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"), required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False)
    discount_type = serializers.ChoiceField(choices=PurchaseOrderItem.DISCOUNT_TYPE_CHOICES, required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


# ==================== LINE ITEM ACTION SERIALIZERS ====================

class POItemReceiveSerializer(VersionedActionSerializer):
    """
    Example Request Body:
    {"quantity": "5", "notes": "Pallet 1 of 2", "location": "WH-A", "version": 0}
    """
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    location = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class POItemReturnSerializer(VersionedActionSerializer):
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    reason = serializers.CharField(max_length=500)
    condition = serializers.ChoiceField(choices=PurchaseOrderItem.RETURN_CONDITION_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DefectSerializer(serializers.Serializer):
    type = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    severity = serializers.ChoiceField(choices=DEFECT_SEVERITIES, required=False, default='minor')
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0"), required=False)


class POItemQualityCheckSerializer(VersionedActionSerializer):
    status = serializers.ChoiceField(choices=PurchaseOrderItem.QUALITY_STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)
    defects = DefectSerializer(many=True, required=False, default=list)


class POItemCancelSerializer(VersionedActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)
