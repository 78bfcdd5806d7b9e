import logging
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from core.base import AuditMixin, OptimisticLockMixin
from core.base.managers import BaseQuerySet
from procurement.catalog.models import Product, STOCK_STATUS_CHOICES, classify_stock
from procurement.exceptions import InvalidArgument, InvalidTransition
from procurement.requisition.validators import validate_requisition_item
from procurement.utils import coerce_decimal_fields, money, percentage, to_decimal
from procurement.validation import raise_for_errors

logger = logging.getLogger(__name__)


SOURCING_METHOD_CHOICES = [
    ('direct_purchase', 'Direct Purchase'),
    ('rfq', 'Request for Quotation'),
    ('tender', 'Tender'),
    ('framework_agreement', 'Framework Agreement'),
    ('spot_purchase', 'Spot Purchase'),
]

OPEN_STATUSES = ['requested', 'approved', 'partially_approved']


# ==================== PARENT MODEL ====================

class Requisition(AuditMixin, models.Model):
    """Requisition header. Line items carry the workflow; the header only groups them."""
    requisition_number = models.CharField(max_length=50, unique=True, blank=True)
    title = models.CharField(max_length=255)
    department = models.CharField(max_length=255)
    requested_by = models.CharField(max_length=150, blank=True)
    required_date = models.DateField(null=True, blank=True, help_text="Date when items are needed")
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'requisition'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.requisition_number} - {self.title}"

    def generate_requisition_number(self):
        """Generate REQ-000001 style numbers in sequence."""
        last = Requisition.objects.filter(
            requisition_number__startswith='REQ-'
        ).order_by('-requisition_number').first()

        new_num = 1
        if last:
            try:
                new_num = int(last.requisition_number.split('-')[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        self.requisition_number = f"REQ-{new_num:06d}"

    def save(self, *args, **kwargs):
        if not self.requisition_number:
            self.generate_requisition_number()
        super().save(*args, **kwargs)

    @property
    def total_estimated_cost(self):
        return sum((item.total_estimated_cost for item in self.items.all()), Decimal('0.00'))


# ==================== LINE ITEM ====================

class RequisitionItemQuerySet(BaseQuerySet):

    def by_requisition(self, requisition_id):
        return self.filter(requisition_id=requisition_id).select_related('product').order_by('created_at', 'id')

    def by_status(self, status):
        return self.filter(status=status).select_related('requisition', 'product').order_by('-created_at')

    def over_budget(self):
        return self.filter(
            is_within_budget=False,
            status__in=OPEN_STATUSES
        ).select_related('requisition', 'product').order_by('-total_estimated_cost')

    def low_stock(self):
        return self.filter(
            stock_status__in=['low', 'out_of_stock'],
            status__in=OPEN_STATUSES
        ).select_related('requisition', 'product').order_by('current_stock')


class RequisitionItem(AuditMixin, OptimisticLockMixin, models.Model):
    """
    A requested product on a requisition.

    Workflow: requested -> approved / partially_approved / rejected.
    rejected, cancelled and converted_to_po are terminal.

    Every save runs, in order: the inventory enrich step (on create or when the
    product changes), field validation, recalculate(), then a versioned write.
    """
    STATUS_CHOICES = [
        ('requested', 'Requested'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('partially_approved', 'Partially Approved'),
        ('on_hold', 'On Hold'),
        ('cancelled', 'Cancelled'),
        ('converted_to_po', 'Converted to PO'),
    ]
    TERMINAL_STATUSES = ['rejected', 'cancelled', 'converted_to_po']

    URGENCY_CHOICES = [
        ('normal', 'Normal'),
        ('urgent', 'Urgent'),
        ('critical', 'Critical'),
    ]

    requisition = models.ForeignKey(
        Requisition,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent requisition"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='requisition_items'
    )

    # Quantity and pricing
    quantity = models.DecimalField(max_digits=15, decimal_places=3, help_text="Requested quantity")
    unit = models.CharField(max_length=50, default='pcs')
    estimated_unit_price = models.DecimalField(max_digits=15, decimal_places=2)
    total_estimated_cost = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        editable=False,
        help_text="Auto-calculated: quantity × estimated_unit_price"
    )
    actual_unit_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    actual_total_cost = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True, editable=False)

    description = models.TextField(blank=True)
    specifications = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    intended_use = models.CharField(max_length=500)
    technical_requirements = models.TextField(blank=True)
    urgency = models.CharField(max_length=20, choices=URGENCY_CHOICES, default='normal')

    # Workflow
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='requested', db_index=True)
    approval_comments = models.TextField(blank=True)
    approved_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    approved_unit_price = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    approved_total_cost = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    approved_by = models.CharField(max_length=150, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    rejected_by = models.CharField(max_length=150, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    # Budget allocation
    budget_code = models.CharField(max_length=50, blank=True, db_index=True)
    budget_amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    budget_available_balance = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    is_within_budget = models.BooleanField(default=True)

    # Inventory snapshot, copied from the product by refresh_inventory_status()
    current_stock = models.DecimalField(max_digits=15, decimal_places=3, null=True, blank=True)
    reorder_level = models.DecimalField(max_digits=15, decimal_places=3, null=True, blank=True)
    stock_status = models.CharField(max_length=20, choices=STOCK_STATUS_CHOICES, default='adequate')

    # Sourcing
    alternative_products = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    sourcing_recommendation = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    notes = models.TextField(blank=True)

    objects = RequisitionItemQuerySet.as_manager()

    class Meta:
        db_table = 'requisition_item'
        ordering = ['requisition', 'created_at']
        unique_together = [['requisition', 'product']]
        indexes = [
            models.Index(fields=['requisition', 'status']),
            models.Index(fields=['product', 'status']),
        ]

    def __str__(self):
        return f"{self.requisition_id} - {self.product_id} x {self.quantity} ({self.status})"

    # ==================== ENRICH ====================

    def refresh_inventory_status(self, product=None):
        """
        Copy the product's stock snapshot and derive stock_status.

        ``product`` may be passed in by callers that already hold it; otherwise
        it is looked up. A missing product leaves the snapshot untouched.
        """
        if product is None and self.product_id is not None:
            product = Product.objects.filter(pk=self.product_id).only(
                'current_stock', 'reorder_level'
            ).first()
        if product is None:
            logger.warning("Requisition item %s: product %s not found, stock snapshot left unset",
                           self.pk, self.product_id)
            return self

        self.current_stock = product.current_stock
        self.reorder_level = product.reorder_level
        self.stock_status = classify_stock(product.current_stock, product.reorder_level)
        return self

    # ==================== CALCULATION FUNCTIONS ====================

    def recalculate(self):
        """Recompute every derived field from the stored inputs. Pure, repeatable."""
        self.total_estimated_cost = money(self.quantity * self.estimated_unit_price)

        if self.approved_quantity and self.approved_unit_price:
            self.approved_total_cost = money(self.approved_quantity * self.approved_unit_price)

        if self.actual_unit_price:
            self.actual_total_cost = money(self.quantity * self.actual_unit_price)

        if self.budget_available_balance is not None:
            self.is_within_budget = self.total_estimated_cost <= self.budget_available_balance
        return self

    @property
    def approval_percentage(self):
        return percentage(self.approved_quantity, self.quantity)

    @property
    def cost_variance(self):
        if not self.actual_total_cost or not self.total_estimated_cost:
            return Decimal('0.00')
        return self.actual_total_cost - self.total_estimated_cost

    @property
    def cost_variance_percentage(self):
        if not self.actual_total_cost or not self.total_estimated_cost:
            return Decimal('0.00')
        return percentage(self.cost_variance, self.total_estimated_cost)

    @property
    def stock_status_description(self):
        current_stock = self.current_stock or 0
        reorder_level = self.reorder_level or 0
        if self.stock_status == 'adequate':
            return f"Adequate stock ({current_stock} available)"
        if self.stock_status == 'low':
            return f"Low stock ({current_stock} available, reorder at {reorder_level})"
        if self.stock_status == 'out_of_stock':
            return "Out of stock"
        if self.stock_status == 'excess':
            return f"Excess stock ({current_stock} available)"
        return "Stock status unknown"

    def get_item_stats(self):
        return {
            'requested_cost': self.total_estimated_cost,
            'approved_cost': self.approved_total_cost or Decimal('0.00'),
            'actual_cost': self.actual_total_cost or Decimal('0.00'),
            'cost_variance': self.cost_variance,
            'cost_variance_percentage': self.cost_variance_percentage,
            'approval_rate': self.approval_percentage,
            'budget_status': 'within_budget' if self.is_within_budget else 'over_budget',
            'stock_status': self.stock_status,
        }

    def can_be_modified(self):
        return self.status == 'requested'

    def is_approved(self):
        return self.status in ('approved', 'partially_approved')

    # ==================== WORKFLOW FUNCTIONS ====================

    def _ensure_not_terminal(self, action):
        if self.status in self.TERMINAL_STATUSES:
            raise InvalidTransition(f"Cannot {action} a requisition item with status '{self.status}'.")

    def _stamp_approval(self, status, approver, quantity, unit_price, comments):
        self.status = status
        self.approved_quantity = quantity
        self.approved_unit_price = unit_price
        self.approved_total_cost = money(quantity * unit_price)
        self.approved_by = approver
        self.approved_at = timezone.now()
        self.approval_comments = comments or ''
        self.updated_by = approver

    def approve(self, approver, quantity=None, unit_price=None, comments='', expected_version=None):
        """
        Approve the item. Defaults to the requested quantity and estimated price.
        An approved quantity above the requested one fails at save time.
        """
        self.check_version(expected_version)
        self._ensure_not_terminal('approve')

        quantity = to_decimal(quantity, 'quantity')
        unit_price = to_decimal(unit_price, 'unit_price')
        self._stamp_approval(
            'approved',
            approver,
            quantity if quantity is not None else self.quantity,
            unit_price if unit_price is not None else self.estimated_unit_price,
            comments,
        )
        self.save_or_restore()
        logger.info("Requisition item %s approved by %s (qty %s)", self.pk, approver, self.approved_quantity)
        return self

    def partially_approve(self, approver, quantity, unit_price=None, comments='', expected_version=None):
        """Approve less than the requested quantity; use approve() for the full quantity."""
        self.check_version(expected_version)
        self._ensure_not_terminal('approve')

        quantity = to_decimal(quantity, 'quantity')
        if quantity is None:
            raise InvalidArgument({'quantity': ['Partial approval quantity is required']})
        if quantity >= self.quantity:
            raise InvalidArgument({'quantity': ['Partial approval quantity must be less than requested quantity']})

        unit_price = to_decimal(unit_price, 'unit_price')
        self._stamp_approval(
            'partially_approved',
            approver,
            quantity,
            unit_price if unit_price is not None else self.estimated_unit_price,
            comments,
        )
        self.save_or_restore()
        logger.info("Requisition item %s partially approved by %s (qty %s of %s)",
                    self.pk, approver, quantity, self.quantity)
        return self

    def reject(self, rejector, reason='', expected_version=None):
        self.check_version(expected_version)
        self._ensure_not_terminal('reject')

        self.status = 'rejected'
        self.rejection_reason = reason or ''
        self.rejected_by = rejector
        self.rejected_at = timezone.now()
        self.updated_by = rejector
        self.save_or_restore()
        logger.info("Requisition item %s rejected by %s", self.pk, rejector)
        return self

    def update_actual_costs(self, actual_unit_price, expected_version=None):
        """Record what was actually paid per unit for the requested quantity."""
        self.check_version(expected_version)
        actual_unit_price = to_decimal(actual_unit_price, 'actual_unit_price')
        if actual_unit_price is None:
            raise InvalidArgument({'actual_unit_price': ['Actual unit price is required']})

        self.actual_unit_price = actual_unit_price
        self.actual_total_cost = money(self.quantity * actual_unit_price)
        self.save_or_restore()
        return self

    def add_alternative_product(self, product, description, specifications, estimated_unit_price,
                                advantages='', disadvantages='', expected_version=None):
        self.check_version(expected_version)
        self.alternative_products = list(self.alternative_products or []) + [{
            'product': getattr(product, 'pk', product),
            'description': description,
            'specifications': specifications or {},
            'estimated_unit_price': str(to_decimal(estimated_unit_price, 'estimated_unit_price')),
            'advantages': advantages,
            'disadvantages': disadvantages,
        }]
        self.save_or_restore()
        return self

    def set_sourcing_recommendation(self, method, reason, recommended_by, expected_version=None):
        self.check_version(expected_version)
        self.sourcing_recommendation = {
            'method': method,
            'reason': reason,
            'recommended_by': recommended_by,
            'recommended_at': timezone.now().isoformat(),
        }
        self.save_or_restore()
        return self

    # ==================== SAVE OVERRIDE ====================

    def save(self, *args, **kwargs):
        """Override save to enrich, validate and recalculate before the versioned write."""
        coerce_decimal_fields(self)
        if self._state.adding or self.has_changed('product_id'):
            self.refresh_inventory_status()

        raise_for_errors(validate_requisition_item(self))
        self.recalculate()
        super().save(*args, **kwargs)
