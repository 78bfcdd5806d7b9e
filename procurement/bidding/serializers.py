"""
Bidding Serializers - API Layer for bids and bid items

Thin wrappers for validation and conversion:
1. Request validation (shape and types only)
2. Converting JSON to model calls
3. Response formatting

Status rules live in procurement.bidding.status; scoring lives on BidItem.
"""
from decimal import Decimal

from rest_framework import serializers

from procurement.bidding import status as bid_status
from procurement.bidding.models import Bid, BidItem, RFQItem
from procurement.bidding.validators import ATTACHMENT_TYPE_CHOICES, DEVIATION_IMPACT_CHOICES
from procurement.catalog.models import Product
from procurement.requisition.serializers import VersionedActionSerializer


# ==================== BID ====================

class BidSerializer(serializers.ModelSerializer):
    status_display = serializers.SerializerMethodField()
    status_category = serializers.SerializerMethodField()
    next_statuses = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Bid
        fields = [
            'id', 'version', 'bid_number', 'supplier_name', 'rfq_reference',
            'status', 'status_display', 'status_category', 'next_statuses',
            'total_amount', 'submission_deadline', 'status_history', 'item_count',
            'notes',
            'created_by', 'created_at', 'updated_by', 'updated_at',
        ]
        read_only_fields = fields

    def get_status_display(self, obj):
        return bid_status.get_display_name(obj.status)

    def get_status_category(self, obj):
        return bid_status.get_category(obj.status)

    def get_next_statuses(self, obj):
        return obj.get_next_statuses()

    def get_item_count(self, obj):
        return obj.items.count()


class BidCreateSerializer(serializers.Serializer):
    """
    Example Request Body:
    {
        "supplier_name": "Acme Supplies",
        "rfq_reference": "RFQ-2025-001",
        "total_amount": "45000.00",
        "submission_deadline": "2025-06-30T17:00:00Z"
    }
    """
    supplier_name = serializers.CharField(max_length=255)
    rfq_reference = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    total_amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"),
                                            required=False, default=Decimal('0'))
    submission_deadline = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def create(self, validated_data):
        actor = self.context.get('actor', '')
        return Bid.objects.create(created_by=actor, updated_by=actor, **validated_data)


class BidChangeStatusSerializer(VersionedActionSerializer):
    status = serializers.ChoiceField(choices=bid_status.BID_STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)


class NextStatusContextSerializer(serializers.Serializer):
    """Query-string flags for the recommended next status"""
    has_submissions = serializers.BooleanField(required=False, default=False)
    evaluation_complete = serializers.BooleanField(required=False, default=False)
    requires_legal_review = serializers.BooleanField(required=False, default=False)
    legal_approved = serializers.BooleanField(required=False, default=False)
    negotiation_complete = serializers.BooleanField(required=False, default=False)
    clarification_provided = serializers.BooleanField(required=False, default=False)


# ==================== BID ITEM ====================

class BidItemSerializer(serializers.ModelSerializer):
    """Read serializer for bid items, including the derived scores"""

    bid_number = serializers.CharField(source='bid.bid_number', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    price_competitiveness = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    delivery_competitiveness = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    total_value_score = serializers.DecimalField(max_digits=7, decimal_places=2, read_only=True)
    risk_level = serializers.CharField(read_only=True)

    class Meta:
        model = BidItem
        fields = [
            'id', 'version',
            'bid', 'bid_number', 'rfq_item',
            'product', 'product_sku', 'product_name',
            'unit_price', 'quantity', 'total', 'delivery_time',
            'specifications_compliance',
            'technical_compliance', 'quality_compliance', 'documentation_compliance', 'overall_compliance',
            'compliance_notes', 'deviations',
            'is_alternative', 'alternative_offer',
            'warranty', 'after_sales_support', 'spare_parts', 'training',
            'technical_score', 'financial_score', 'delivery_score', 'quality_score', 'compliance_score',
            'overall_score', 'evaluated_by', 'evaluated_at', 'evaluation_notes',
            'price_competitiveness', 'delivery_competitiveness', 'total_value_score', 'risk_level',
            'attachments', 'notes', 'supplier_notes',
            'created_by', 'created_at', 'updated_by', 'updated_at',
        ]
        read_only_fields = fields


class BidItemCreateSerializer(serializers.Serializer):
    """
    Serializer for quoting against an RFQ item.

    Example Request Body:
    {
        "bid_id": 1,
        "rfq_item_id": 4,
        "product_id": 3,
        "unit_price": "950.00",
        "quantity": "10",
        "delivery_time": 14,
        "warranty": {"period": 12, "terms": "Parts and labour"}
    }
    """
    bid_id = serializers.IntegerField(min_value=1)
    rfq_item_id = serializers.IntegerField(min_value=1)
    product_id = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"))
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"))
    delivery_time = serializers.IntegerField(min_value=0)
    specifications_compliance = serializers.ChoiceField(
        choices=BidItem.COMPLIANCE_CHOICES, required=False, default='fully_compliant'
    )
    compliance_notes = serializers.CharField(required=False, allow_blank=True, default='')
    warranty = serializers.DictField(required=False)
    after_sales_support = serializers.DictField(required=False)
    spare_parts = serializers.DictField(required=False)
    training = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    supplier_notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        bid = Bid.objects.filter(pk=attrs['bid_id']).first()
        if bid is None:
            raise serializers.ValidationError({'bid_id': 'Bid not found'})
        if not (bid_status.is_editable(bid.status) or bid_status.can_receive_submissions(bid.status)):
            raise serializers.ValidationError({'bid_id': f"Bid with status '{bid.status}' does not accept items"})
        if not RFQItem.objects.filter(pk=attrs['rfq_item_id']).exists():
            raise serializers.ValidationError({'rfq_item_id': 'RFQ item not found'})
        if not Product.objects.filter(pk=attrs['product_id']).exists():
            raise serializers.ValidationError({'product_id': 'Product not found'})
        if BidItem.objects.filter(bid_id=attrs['bid_id'], rfq_item_id=attrs['rfq_item_id']).exists():
            raise serializers.ValidationError({'rfq_item_id': 'This RFQ item is already quoted on the bid'})
        return attrs

    def create(self, validated_data):
        actor = self.context.get('actor', '')
        item = BidItem(created_by=actor, updated_by=actor)
        for record in ('warranty', 'after_sales_support', 'spare_parts', 'training'):
            if record in validated_data:
                merged = dict(getattr(item, record))
                merged.update(validated_data.pop(record))
                setattr(item, record, merged)
        for field, value in validated_data.items():
            setattr(item, field, value)
        item.save()
        return item


class BidItemUpdateSerializer(serializers.Serializer):
    version = serializers.IntegerField(required=False, min_value=0)
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"), required=False)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal("0.001"), required=False)
    delivery_time = serializers.IntegerField(min_value=0, required=False)
    specifications_compliance = serializers.ChoiceField(choices=BidItem.COMPLIANCE_CHOICES, required=False)
    compliance_notes = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    supplier_notes = serializers.CharField(required=False, allow_blank=True)


# ==================== BID ITEM ACTION SERIALIZERS ====================

class BidItemDeviationSerializer(VersionedActionSerializer):
    aspect = serializers.CharField(max_length=255)
    description = serializers.CharField()
    impact = serializers.ChoiceField(choices=DEVIATION_IMPACT_CHOICES, required=False, default='minor')
    justification = serializers.CharField(required=False, allow_blank=True, default='')
    proposed_solution = serializers.CharField(required=False, allow_blank=True, default='')


class BidItemAlternativeSerializer(VersionedActionSerializer):
    product_id = serializers.IntegerField(min_value=1)
    description = serializers.CharField(max_length=1000)
    brand = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    model = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    specifications = serializers.DictField(required=False, default=dict)
    advantages = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    disadvantages = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
    technical_comparison = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')
    original_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"),
                                              required=False, allow_null=True)
    alternative_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal("0"),
                                                 required=False, allow_null=True)

    def validate_product_id(self, value):
        if not Product.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Product not found')
        return value


class BidItemEvaluationSerializer(VersionedActionSerializer):
    technical_score = serializers.DecimalField(max_digits=5, decimal_places=2,
                                               min_value=Decimal("0"), max_value=Decimal("100"))
    financial_score = serializers.DecimalField(max_digits=5, decimal_places=2,
                                               min_value=Decimal("0"), max_value=Decimal("100"))
    delivery_score = serializers.DecimalField(max_digits=5, decimal_places=2,
                                              min_value=Decimal("0"), max_value=Decimal("100"))
    quality_score = serializers.DecimalField(max_digits=5, decimal_places=2,
                                             min_value=Decimal("0"), max_value=Decimal("100"))
    compliance_score = serializers.DecimalField(max_digits=5, decimal_places=2,
                                                min_value=Decimal("0"), max_value=Decimal("100"))
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BidItemComplianceSerializer(VersionedActionSerializer):
    technical_compliance = serializers.DecimalField(max_digits=5, decimal_places=2,
                                                    min_value=Decimal("0"), max_value=Decimal("100"))
    quality_compliance = serializers.DecimalField(max_digits=5, decimal_places=2,
                                                  min_value=Decimal("0"), max_value=Decimal("100"))
    documentation_compliance = serializers.DecimalField(max_digits=5, decimal_places=2,
                                                        min_value=Decimal("0"), max_value=Decimal("100"))
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class BidItemAttachmentSerializer(VersionedActionSerializer):
    name = serializers.CharField(max_length=255)
    url = serializers.URLField()
    type = serializers.ChoiceField(choices=ATTACHMENT_TYPE_CHOICES)
    description = serializers.CharField(required=False, allow_blank=True, default='')
