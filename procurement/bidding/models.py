import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from core.base import AuditMixin, OptimisticLockMixin
from core.base.managers import BaseQuerySet
from procurement.bidding import status as bid_status
from procurement.bidding.validators import validate_bid, validate_bid_item
from procurement.catalog.models import Product
from procurement.conf import scoring
from procurement.exceptions import InvalidArgument
from procurement.utils import HUNDRED, clamp, coerce_decimal_fields, money, to_decimal
from procurement.validation import raise_for_errors

logger = logging.getLogger(__name__)


def default_warranty():
    return {'period': 0, 'terms': '', 'coverage': [], 'exclusions': [], 'service_response_time': None}


def default_after_sales_support():
    return {'included': False, 'duration': 0, 'response_time': None, 'support_types': [], 'terms': '',
            'additional_cost': '0'}


def default_spare_parts():
    return {'availability': 'readily_available', 'lead_time': None, 'cost_guarantee': None, 'common_parts': []}


def default_training():
    return {'included': False, 'duration': None, 'participants': None, 'location': None,
            'materials_included': False, 'additional_cost': '0', 'description': ''}


# ==================== PARENT MODELS ====================

class Bid(AuditMixin, OptimisticLockMixin, models.Model):
    """
    A supplier's bid against an RFQ.

    Status moves only through change_status(), which applies the transition
    table plus the role and amount rules and appends to status_history.
    """
    bid_number = models.CharField(max_length=50, unique=True, blank=True, db_index=True)
    supplier_name = models.CharField(max_length=255)
    rfq_reference = models.CharField(max_length=50, blank=True, db_index=True, help_text="RFQ number")
    status = models.CharField(max_length=30, choices=bid_status.BID_STATUS_CHOICES, default=bid_status.DRAFT,
                              db_index=True)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    submission_deadline = models.DateTimeField(null=True, blank=True)
    status_history = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'bid'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.bid_number} - {self.supplier_name} ({self.status})"

    def generate_bid_number(self):
        """Generate BID-2025-00001 style numbers in sequence."""
        year = timezone.now().year
        prefix = f"BID-{year}-"
        last = Bid.objects.filter(bid_number__startswith=prefix).order_by('-bid_number').first()

        new_num = 1
        if last:
            try:
                new_num = int(last.bid_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        self.bid_number = f"{prefix}{new_num:05d}"

    # ==================== STATUS FUNCTIONS ====================

    def has_passed_legal_review(self):
        return self.status == bid_status.UNDER_LEGAL_REVIEW or any(
            entry.get('to_status') == bid_status.UNDER_LEGAL_REVIEW for entry in self.status_history or []
        )

    def get_next_statuses(self):
        return bid_status.get_next_statuses(self.status)

    def is_deadline_approaching(self, threshold_hours=24):
        return bid_status.is_deadline_approaching(self.status, self.submission_deadline, threshold_hours)

    def calculate_items_total(self):
        return money(sum((item.total for item in self.items.all()), Decimal('0')))

    def change_status(self, new_status, changed_by, role, reason='', expected_version=None):
        """
        Move the bid to ``new_status``.

        Raises InvalidTransition, InsufficientPermission or ApprovalRequired
        (whichever rule failed first, with every failed rule in the message)
        and StaleRecord on a version conflict. Nothing changes on failure.
        """
        self.check_version(expected_version)
        violations = bid_status.validate_status_change(
            self.status,
            new_status,
            role,
            amount=self.total_amount,
            legal_review_passed=self.has_passed_legal_review(),
        )
        bid_status.raise_for_violations(violations)

        previous_status = self.status
        self.status = new_status
        self.status_history = list(self.status_history or []) + [{
            'from_status': previous_status,
            'to_status': new_status,
            'changed_by': changed_by,
            'role': role,
            'reason': reason or '',
            'changed_at': timezone.now().isoformat(),
        }]
        self.updated_by = changed_by
        self.save_or_restore()
        logger.info("Bid %s: %s -> %s by %s (%s)", self.bid_number, previous_status, new_status, changed_by, role)
        return self

    # ==================== SAVE OVERRIDE ====================

    def save(self, *args, **kwargs):
        coerce_decimal_fields(self)
        raise_for_errors(validate_bid(self))
        if not self.bid_number:
            self.generate_bid_number()
        super().save(*args, **kwargs)


class RFQItem(AuditMixin, models.Model):
    """A requested line on an RFQ; bid items quote against it."""
    rfq_reference = models.CharField(max_length=50, db_index=True, help_text="RFQ number")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='rfq_items')
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    specifications = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    technical_requirements = models.TextField(blank=True)

    class Meta:
        db_table = 'rfq_item'
        ordering = ['rfq_reference', 'id']

    def __str__(self):
        return f"{self.rfq_reference} - {self.product_id} x {self.quantity}"


# ==================== LINE ITEM ====================

class BidItemQuerySet(BaseQuerySet):

    def by_bid(self, bid_id):
        return self.filter(bid_id=bid_id).select_related('product', 'rfq_item').order_by('created_at', 'id')

    def by_rfq_item(self, rfq_item_id):
        """Quotes for one RFQ line, cheapest total first."""
        return self.filter(rfq_item_id=rfq_item_id).select_related('bid', 'product').order_by('total', 'id')

    def non_compliant(self):
        return self.filter(
            specifications_compliance__in=['partially_compliant', 'non_compliant']
        ).select_related('bid', 'product').order_by('-created_at')

    def with_alternatives(self):
        return self.filter(is_alternative=True).select_related('bid', 'product').order_by('-created_at')


class BidItem(AuditMixin, OptimisticLockMixin, models.Model):
    """
    A supplier's quote for one RFQ line: price, delivery, compliance,
    deviations, alternative offer, support terms and evaluation scores.
    """
    COMPLIANCE_CHOICES = [
        ('fully_compliant', 'Fully Compliant'),
        ('partially_compliant', 'Partially Compliant'),
        ('non_compliant', 'Non Compliant'),
        ('alternative_offered', 'Alternative Offered'),
    ]
    RISK_LEVEL_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    bid = models.ForeignKey(Bid, on_delete=models.CASCADE, related_name='items')
    rfq_item = models.ForeignKey(RFQItem, on_delete=models.PROTECT, related_name='bid_items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='bid_items')

    unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    total = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        editable=False,
        help_text="Auto-calculated: unit_price × quantity"
    )
    delivery_time = models.IntegerField(help_text="Delivery time in days")

    # Compliance
    specifications_compliance = models.CharField(max_length=30, choices=COMPLIANCE_CHOICES,
                                                 default='fully_compliant', db_index=True)
    technical_compliance = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('100.00'))
    quality_compliance = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('100.00'))
    documentation_compliance = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('100.00'))
    overall_compliance = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Mean of the three compliance scores when not set explicitly"
    )
    compliance_notes = models.TextField(blank=True)
    deviations = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    # Alternative offer
    is_alternative = models.BooleanField(default=False, db_index=True)
    alternative_offer = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    # Support terms
    warranty = models.JSONField(default=default_warranty, blank=True, encoder=DjangoJSONEncoder)
    after_sales_support = models.JSONField(default=default_after_sales_support, blank=True,
                                           encoder=DjangoJSONEncoder)
    spare_parts = models.JSONField(default=default_spare_parts, blank=True, encoder=DjangoJSONEncoder)
    training = models.JSONField(default=default_training, blank=True, encoder=DjangoJSONEncoder)

    # Evaluation
    technical_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    financial_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    delivery_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    quality_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    compliance_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    overall_score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, db_index=True)
    evaluated_by = models.CharField(max_length=150, blank=True)
    evaluated_at = models.DateTimeField(null=True, blank=True)
    evaluation_notes = models.TextField(blank=True)

    notes = models.TextField(blank=True)
    supplier_notes = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    objects = BidItemQuerySet.as_manager()

    class Meta:
        db_table = 'bid_item'
        ordering = ['bid', 'created_at']
        unique_together = [['bid', 'rfq_item']]
        indexes = [
            models.Index(fields=['bid', 'product']),
            models.Index(fields=['rfq_item', 'specifications_compliance']),
        ]

    def __str__(self):
        return f"Bid {self.bid_id} - RFQ item {self.rfq_item_id}: {self.quantity} @ {self.unit_price}"

    # ==================== CALCULATION FUNCTIONS ====================

    def recalculate(self):
        """Recompute total, overall compliance and the alternative price comparison. Pure, repeatable."""
        self.total = money(self.unit_price * self.quantity)

        if self.overall_compliance is None:
            self.overall_compliance = money(
                (self.technical_compliance + self.quality_compliance + self.documentation_compliance) / 3
            )

        offer = self.alternative_offer
        if self.is_alternative and offer:
            comparison = offer.get('price_comparison') or {}
            original = to_decimal(comparison.get('original_price'), 'original_price')
            alternative = to_decimal(comparison.get('alternative_price'), 'alternative_price')
            if original and alternative:
                difference = alternative - original
                comparison['price_difference'] = str(money(difference))
                comparison['price_difference_percentage'] = str(money(difference / original * HUNDRED))
                offer['price_comparison'] = comparison
        return self

    @property
    def price_competitiveness(self):
        """Lower unit price scores higher, 0-100."""
        if self.unit_price is None or self.unit_price <= 0:
            return Decimal('0.00')
        config = scoring()
        score = HUNDRED - self.unit_price / config['PRICE_REFERENCE'] * config['PRICE_PENALTY']
        return money(clamp(score))

    @property
    def delivery_competitiveness(self):
        """Shorter delivery scores higher, 0-100."""
        if self.delivery_time is None or self.delivery_time <= 0:
            return Decimal('0.00')
        score = HUNDRED - Decimal(self.delivery_time) * scoring()['DELIVERY_PENALTY_PER_DAY']
        return money(clamp(score))

    @property
    def total_value_score(self):
        weights = scoring()['VALUE_WEIGHTS']
        return money(self.price_competitiveness * weights['price']
                     + self.delivery_competitiveness * weights['delivery'])

    @property
    def warranty_period(self):
        return (self.warranty or {}).get('period') or 0

    @property
    def risk_score(self):
        config = scoring()
        points = config['RISK_POINTS']
        score = 0
        if self.specifications_compliance != 'fully_compliant':
            score += points['not_fully_compliant']
        score += len(self.deviations or []) * points['per_deviation']
        if self.delivery_time is not None and self.delivery_time > config['LONG_DELIVERY_DAYS']:
            score += points['long_delivery']
        if self.is_alternative:
            score += points['alternative_offered']
        if Decimal(str(self.warranty_period)) == 0:
            score += points['no_warranty']
        return score

    @property
    def risk_level(self):
        thresholds = scoring()['RISK_THRESHOLDS']
        score = self.risk_score
        if score >= thresholds['high']:
            return 'high'
        if score >= thresholds['medium']:
            return 'medium'
        return 'low'

    def get_item_analysis(self):
        return {
            'compliance_status': self.specifications_compliance,
            'risk_level': self.risk_level,
            'risk_score': self.risk_score,
            'value_score': self.total_value_score,
            'has_deviations': bool(self.deviations),
            'has_alternative': self.is_alternative,
            'has_warranty': Decimal(str(self.warranty_period)) > 0,
            'has_support': bool((self.after_sales_support or {}).get('included')),
            'delivery_competitiveness': self.delivery_competitiveness,
            'price_competitiveness': self.price_competitiveness,
            'evaluation_score': self.overall_score or Decimal('0.00'),
        }

    def is_fully_compliant(self):
        return self.specifications_compliance == 'fully_compliant' and not self.deviations

    def has_competitive_price(self, threshold=80):
        return self.price_competitiveness >= Decimal(str(threshold))

    def has_good_delivery_time(self, threshold=80):
        return self.delivery_competitiveness >= Decimal(str(threshold))

    def can_be_modified(self):
        """Quotes stay editable while the bid is a draft or still taking submissions."""
        return bid_status.is_editable(self.bid.status) or bid_status.can_receive_submissions(self.bid.status)

    # ==================== SCORING FUNCTIONS ====================

    def add_deviation(self, aspect, description, impact='minor', justification='', proposed_solution='',
                      expected_version=None):
        """Record a departure from the requested specs; a fully compliant quote becomes partially compliant."""
        self.check_version(expected_version)
        self.deviations = list(self.deviations or []) + [{
            'aspect': (aspect or '').strip(),
            'description': (description or '').strip(),
            'impact': impact,
            'justification': justification or '',
            'proposed_solution': proposed_solution or '',
        }]
        if self.specifications_compliance == 'fully_compliant':
            self.specifications_compliance = 'partially_compliant'
        self.save_or_restore()
        logger.info("Bid item %s: %s deviation on '%s'", self.pk, impact, aspect)
        return self

    def set_alternative_product(self, product, description, brand, model, specifications, advantages='',
                                disadvantages='', technical_comparison='', original_price=None,
                                alternative_price=None, expected_version=None):
        """Replace the alternative offer block; compliance becomes alternative_offered."""
        self.check_version(expected_version)
        original_price = to_decimal(original_price, 'original_price')
        alternative_price = to_decimal(alternative_price, 'alternative_price')
        self.is_alternative = True
        self.alternative_offer = {
            'product': getattr(product, 'pk', product),
            'description': description or '',
            'brand': brand or '',
            'model': model or '',
            'specifications': specifications or {},
            'advantages': advantages or '',
            'disadvantages': disadvantages or '',
            'technical_comparison': technical_comparison or '',
            'price_comparison': {
                'original_price': None if original_price is None else str(original_price),
                'alternative_price': None if alternative_price is None else str(alternative_price),
                'price_difference': None,
                'price_difference_percentage': None,
            },
        }
        self.specifications_compliance = 'alternative_offered'
        self.save_or_restore()
        logger.info("Bid item %s: alternative product %s offered", self.pk, self.alternative_offer['product'])
        return self

    def set_evaluation_scores(self, scores, evaluated_by, notes='', expected_version=None):
        """
        Store the five evaluation scores and their weighted overall score.

        ``scores`` keys: technical_score, financial_score, delivery_score,
        quality_score, compliance_score. All five are required.
        """
        self.check_version(expected_version)
        weights = scoring()['EVALUATION_WEIGHTS']
        values = {}
        missing = []
        for component in weights:
            field = f"{component}_score"
            value = to_decimal(scores.get(field), field)
            if value is None:
                missing.append(field)
            values[field] = value
        if missing:
            raise InvalidArgument({field: ['This score is required'] for field in missing})

        for field, value in values.items():
            setattr(self, field, value)
        self.overall_score = money(sum(
            (values[f"{component}_score"] * Decimal(str(weight)) for component, weight in weights.items()),
            Decimal('0')
        ))
        self.evaluated_by = evaluated_by
        self.evaluated_at = timezone.now()
        self.evaluation_notes = notes or ''
        self.updated_by = evaluated_by
        self.save_or_restore()
        logger.info("Bid item %s evaluated by %s: overall %s", self.pk, evaluated_by, self.overall_score)
        return self

    def set_compliance_details(self, technical, quality, documentation, notes=None, expected_version=None):
        """Replace the three compliance sub-scores; the overall score is re-derived from them."""
        self.check_version(expected_version)
        self.technical_compliance = to_decimal(technical, 'technical_compliance')
        self.quality_compliance = to_decimal(quality, 'quality_compliance')
        self.documentation_compliance = to_decimal(documentation, 'documentation_compliance')
        self.overall_compliance = None
        if notes is not None:
            self.compliance_notes = notes
        self.save_or_restore()
        return self

    def add_attachment(self, name, url, type, description='', expected_version=None):
        self.check_version(expected_version)
        self.attachments = list(self.attachments or []) + [{
            'name': (name or '').strip(),
            'url': url,
            'type': type,
            'description': description or '',
            'uploaded_at': timezone.now().isoformat(),
        }]
        self.save_or_restore()
        return self

    # ==================== SAVE OVERRIDE ====================

    def _coerce_delivery_time(self):
        if isinstance(self.delivery_time, str):
            try:
                self.delivery_time = self._meta.get_field('delivery_time').to_python(self.delivery_time)
            except ValidationError as e:
                raise InvalidArgument({'delivery_time': e.messages})

    def save(self, *args, **kwargs):
        """Override save to validate and recalculate before the versioned write."""
        coerce_decimal_fields(self)
        self._coerce_delivery_time()
        raise_for_errors(validate_bid_item(self))
        self.recalculate()
        super().save(*args, **kwargs)
