import logging
from datetime import date
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from core.base import AuditMixin, OptimisticLockMixin
from core.base.managers import BaseQuerySet
from procurement.catalog.models import Product
from procurement.exceptions import (
    ExcessReturn,
    IllegalCancellation,
    InvalidArgument,
    InvalidQuantity,
    InvalidTransition,
    OverReceipt,
)
from procurement.po.validators import validate_purchase_order_item
from procurement.utils import HUNDRED, coerce_decimal_fields, money, percentage, to_decimal
from procurement.validation import raise_for_errors

logger = logging.getLogger(__name__)


"""Purchase Order Header Model."""
class PurchaseOrder(AuditMixin, models.Model):
    po_number = models.CharField(max_length=50, unique=True, blank=True, db_index=True)
    po_date = models.DateField(default=date.today)
    supplier_name = models.CharField(max_length=255, help_text="Vendor/Supplier")
    delivery_date = models.DateField(null=True, blank=True, help_text="Default expected delivery date for the lines")
    description = models.TextField(blank=True)

    class Meta:
        db_table = 'po_header'
        ordering = ['-po_date', '-created_at']

    def __str__(self):
        return f"{self.po_number} - {self.supplier_name}"

    # ==================== CALCULATION FUNCTIONS ====================

    def calculate_totals(self):
        """Sum subtotal, tax and net amount over the active line items."""
        line_items = self.items.exclude(line_item_status='cancelled')
        subtotal = sum((item.quantity * item.unit_price for item in line_items), Decimal('0'))
        tax_amount = sum((item.tax_amount for item in line_items), Decimal('0'))
        total_amount = sum((item.net_amount for item in line_items), Decimal('0'))
        return {
            'subtotal': money(subtotal),
            'tax_amount': money(tax_amount),
            'total_amount': money(total_amount),
        }

    # ==================== RECEIVING/STATUS FUNCTIONS ====================

    def is_fully_received(self):
        """Check if all active line items are fully received."""
        line_items = self.items.filter(line_item_status='active')
        if not line_items.exists():
            return False
        return all(item.remaining_quantity == 0 for item in line_items)

    def get_receiving_summary(self):
        """Get summary of received vs ordered quantities."""
        line_items = self.items.filter(line_item_status='active')
        total_ordered = sum((item.quantity for item in line_items), Decimal('0'))
        total_received = sum((item.received_quantity for item in line_items), Decimal('0'))

        return {
            'total_ordered': total_ordered,
            'total_received': total_received,
            'total_pending': total_ordered - total_received,
            'receiving_percentage': percentage(total_received, total_ordered),
        }

    # ==================== SAVE OVERRIDE ====================

    def save(self, *args, **kwargs):
        """Override save to generate the PO number."""
        if not self.po_number:
            last_po = PurchaseOrder.objects.order_by('-id').first()
            next_number = 1 if not last_po else last_po.id + 1
            self.po_number = f"PO-{self.po_date.year}-{next_number:05d}"
        super().save(*args, **kwargs)


class PurchaseOrderItemQuerySet(BaseQuerySet):

    def by_purchase_order(self, purchase_order_id):
        return self.filter(purchase_order_id=purchase_order_id).select_related('product').order_by('created_at', 'id')

    def by_product(self, product_id, start_date=None, end_date=None, status=None):
        queryset = self.filter(product_id=product_id).created_between(start_date, end_date)
        if status:
            queryset = queryset.filter(delivery_status=status)
        return queryset.select_related('purchase_order', 'product').order_by('-created_at')

    def pending_receipts(self):
        return self.filter(
            delivery_status__in=['pending', 'partially_received'],
            line_item_status='active'
        ).select_related('purchase_order', 'product').order_by('expected_delivery_date')

    def quality_issues(self):
        return self.filter(
            quality_status__in=['failed', 'partial'],
            line_item_status='active'
        ).select_related('purchase_order', 'product').order_by('-updated_at')


"""PO Line Item - ordered product with receiving, returns and quality tracking."""
class PurchaseOrderItem(AuditMixin, OptimisticLockMixin, models.Model):
    DISCOUNT_TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
        ('none', 'None'),
    ]
    DELIVERY_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partially_received', 'Partially Received'),
        ('fully_received', 'Fully Received'),
        ('over_received', 'Over Received'),
        ('cancelled', 'Cancelled'),
    ]
    QUALITY_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('passed', 'Passed'),
        ('failed', 'Failed'),
        ('partial', 'Partial'),
    ]
    LINE_ITEM_STATUS_CHOICES = [
        ('active', 'Active'),
        ('cancelled', 'Cancelled'),
        ('closed', 'Closed'),
    ]
    RETURN_CONDITION_CHOICES = [
        ('damaged', 'Damaged'),
        ('defective', 'Defective'),
        ('wrong_item', 'Wrong Item'),
        ('excess', 'Excess'),
        ('other', 'Other'),
    ]

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent PO Header"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='purchase_order_items'
    )

    # Quantity and Pricing
    quantity = models.DecimalField(max_digits=15, decimal_places=3, help_text="Ordered quantity")
    unit = models.CharField(max_length=50, default='pcs')
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, help_text="Price per unit")
    description = models.TextField(blank=True)
    specifications = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'), help_text="Percent")
    tax_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'), editable=False)
    discount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Percent when discount_type is 'percentage', amount when 'fixed'"
    )
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default='none')
    discount_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'), editable=False)
    net_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        editable=False,
        help_text="Auto-calculated: subtotal - discount + tax"
    )
    total = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=Decimal('0.00'),
        editable=False,
        help_text="Same as net_amount"
    )

    # Receiving tracking
    received_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    rejected_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    accepted_quantity = models.DecimalField(
        max_digits=15,
        decimal_places=3,
        default=Decimal('0.000'),
        editable=False,
        help_text="Auto-calculated: received - rejected"
    )
    delivery_status = models.CharField(max_length=20, choices=DELIVERY_STATUS_CHOICES, default='pending',
                                       db_index=True)
    expected_delivery_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    received_by = models.CharField(max_length=150, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)

    # Quality
    quality_status = models.CharField(max_length=20, choices=QUALITY_STATUS_CHOICES, default='pending',
                                      db_index=True)
    quality_check = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)

    # Append-only histories
    inventory_updates = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    return_history = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    # Line status
    line_item_status = models.CharField(max_length=20, choices=LINE_ITEM_STATUS_CHOICES, default='active')
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=150, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)

    objects = PurchaseOrderItemQuerySet.as_manager()

    class Meta:
        db_table = 'po_line_item'
        ordering = ['purchase_order', 'created_at']
        unique_together = [['purchase_order', 'product']]
        indexes = [
            models.Index(fields=['purchase_order', 'delivery_status']),
            models.Index(fields=['product', 'delivery_status']),
            models.Index(fields=['expected_delivery_date']),
        ]

    def __str__(self):
        return f"PO {self.purchase_order_id} - {self.product_id}: {self.quantity} @ {self.unit_price}"

    # ==================== ENRICH ====================

    def apply_purchase_order_defaults(self, purchase_order=None):
        """
        Back-fill expected_delivery_date from the parent PO when unset.
        A missing parent, or a parent without a delivery date, leaves it unset.
        """
        if self.expected_delivery_date:
            return self
        if purchase_order is None and self.purchase_order_id is not None:
            purchase_order = PurchaseOrder.objects.filter(pk=self.purchase_order_id).only('delivery_date').first()
        if purchase_order is None:
            logger.warning("PO item %s: purchase order %s not found, expected delivery date left unset",
                           self.pk, self.purchase_order_id)
            return self
        if purchase_order.delivery_date:
            self.expected_delivery_date = purchase_order.delivery_date
        return self

    # ==================== CALCULATION FUNCTIONS ====================

    def _amounts(self):
        subtotal = self.quantity * self.unit_price
        if self.discount_type == 'percentage':
            discount_amount = money(subtotal * self.discount / HUNDRED)
        elif self.discount_type == 'fixed':
            discount_amount = money(self.discount)
        else:
            discount_amount = Decimal('0.00')
        amount_after_discount = money(subtotal) - discount_amount
        tax_amount = money(amount_after_discount * self.tax_rate / HUNDRED)
        return {
            'subtotal': money(subtotal),
            'discount_amount': discount_amount,
            'amount_after_discount': amount_after_discount,
            'tax_amount': tax_amount,
            'net_amount': amount_after_discount + tax_amount,
        }

    def recalculate(self):
        """Recompute financials, accepted quantity and delivery status. Pure, repeatable."""
        amounts = self._amounts()
        self.discount_amount = amounts['discount_amount']
        self.tax_amount = amounts['tax_amount']
        self.net_amount = amounts['net_amount']
        self.total = self.net_amount

        self.accepted_quantity = self.received_quantity - self.rejected_quantity

        if self.line_item_status == 'cancelled':
            self.delivery_status = 'cancelled'
        elif self.received_quantity > self.quantity:
            self.delivery_status = 'over_received'
        elif self.received_quantity == self.quantity:
            self.delivery_status = 'fully_received'
        elif self.received_quantity > 0:
            self.delivery_status = 'partially_received'
        else:
            self.delivery_status = 'pending'
        return self

    @property
    def value_breakdown(self):
        return self._amounts()

    @property
    def remaining_quantity(self):
        return max(Decimal('0'), self.quantity - self.received_quantity)

    @property
    def receipt_percentage(self):
        return percentage(self.received_quantity, self.quantity)

    @property
    def acceptance_rate(self):
        return percentage(self.accepted_quantity, self.received_quantity)

    @property
    def rejection_rate(self):
        return percentage(self.rejected_quantity, self.received_quantity)

    @property
    def delivery_timeliness(self):
        """early / on_time / slightly_late / very_late by days past the expected date."""
        if not self.actual_delivery_date or not self.expected_delivery_date:
            return 'unknown'
        days_late = (self.actual_delivery_date - self.expected_delivery_date).days
        if days_late <= 0:
            return 'early'
        if days_late <= 2:
            return 'on_time'
        if days_late <= 7:
            return 'slightly_late'
        return 'very_late'

    def get_item_stats(self):
        total_inventory_updates = Decimal('0')
        for update in self.inventory_updates or []:
            if update['update_type'] == 'receipt':
                total_inventory_updates += Decimal(update['quantity'])
            elif update['update_type'] == 'return':
                total_inventory_updates -= Decimal(update['quantity'])
        total_returns = sum((Decimal(entry['quantity']) for entry in self.return_history or []), Decimal('0'))

        return {
            'ordered_quantity': self.quantity,
            'received_quantity': self.received_quantity,
            'accepted_quantity': self.accepted_quantity,
            'rejected_quantity': self.rejected_quantity,
            'remaining_quantity': self.remaining_quantity,
            'receipt_percentage': self.receipt_percentage,
            'acceptance_rate': self.acceptance_rate,
            'rejection_rate': self.rejection_rate,
            'total_inventory_updates': total_inventory_updates,
            'total_returns': total_returns,
            'net_received': self.received_quantity - total_returns,
        }

    def can_be_modified(self):
        return self.received_quantity == 0 and self.line_item_status == 'active'

    def can_be_received(self):
        return self.line_item_status == 'active' and self.remaining_quantity > 0

    # ==================== RECEIVING FUNCTIONS ====================

    def _ledger_entry(self, quantity, update_type, notes, updated_by, location=None):
        return {
            'quantity': str(quantity),
            'update_type': update_type,
            'notes': notes or '',
            'updated_by': updated_by,
            'updated_at': timezone.now().isoformat(),
            'inventory_location': location,
        }

    def receive_items(self, quantity, received_by, notes='', location=None, expected_version=None):
        """Record a goods receipt. Nothing changes when the receipt is refused."""
        self.check_version(expected_version)
        quantity = to_decimal(quantity, 'quantity')
        if quantity is None or quantity <= 0:
            raise InvalidQuantity('Receipt quantity must be greater than 0')
        if self.line_item_status != 'active':
            raise InvalidTransition(f"Cannot receive items on a {self.line_item_status} line item")
        if self.received_quantity + quantity > self.quantity:
            raise OverReceipt(
                f"Cannot receive more than ordered quantity "
                f"(ordered {self.quantity}, received {self.received_quantity}, attempted {quantity})"
            )

        self.received_quantity += quantity
        self.received_by = received_by
        self.received_at = timezone.now()
        if self.actual_delivery_date is None:
            self.actual_delivery_date = timezone.localdate()
        self.inventory_updates = list(self.inventory_updates or []) + [
            self._ledger_entry(quantity, 'receipt', notes, received_by, location)
        ]
        self.updated_by = received_by
        self.save_or_restore()
        logger.info("PO item %s: received %s by %s (total %s of %s)",
                    self.pk, quantity, received_by, self.received_quantity, self.quantity)
        return self

    def return_items(self, quantity, reason, condition, processed_by, notes='', expected_version=None):
        """Send received goods back; they move from received to rejected."""
        self.check_version(expected_version)
        quantity = to_decimal(quantity, 'quantity')
        if quantity is None or quantity <= 0:
            raise InvalidQuantity('Return quantity must be greater than 0')
        if quantity > self.received_quantity:
            raise ExcessReturn(
                f"Cannot return more than received quantity (received {self.received_quantity}, attempted {quantity})"
            )
        if not (reason or '').strip():
            raise InvalidArgument({'reason': ['Return reason is required']})
        if condition not in dict(self.RETURN_CONDITION_CHOICES):
            raise InvalidArgument({'condition': [f"'{condition}' is not a valid return condition"]})

        self.received_quantity -= quantity
        self.rejected_quantity += quantity
        self.return_history = list(self.return_history or []) + [{
            'quantity': str(quantity),
            'reason': reason,
            'condition': condition,
            'processed_by': processed_by,
            'notes': notes or '',
            'return_date': timezone.now().isoformat(),
        }]
        self.inventory_updates = list(self.inventory_updates or []) + [
            self._ledger_entry(quantity, 'return', f"Return: {reason}", processed_by)
        ]
        self.updated_by = processed_by
        self.save_or_restore()
        logger.info("PO item %s: returned %s (%s) by %s", self.pk, quantity, condition, processed_by)
        return self

    def perform_quality_check(self, performed_by, status, notes='', defects=None, expected_version=None):
        """Overwrite the quality status and the quality-check block, whatever they were."""
        self.check_version(expected_version)
        if status not in dict(self.QUALITY_STATUS_CHOICES):
            raise InvalidArgument({'status': [f"'{status}' is not a valid quality status"]})
        self.quality_status = status
        self.quality_check = {
            'performed_by': performed_by,
            'performed_at': timezone.now().isoformat(),
            'notes': notes or '',
            'defects': list(defects or []),
        }
        self.updated_by = performed_by
        self.save_or_restore()
        logger.info("PO item %s: quality check %s by %s", self.pk, status, performed_by)
        return self

    def cancel_line_item(self, cancelled_by, reason='', expected_version=None):
        self.check_version(expected_version)
        if self.received_quantity > 0:
            raise IllegalCancellation(
                f"Cannot cancel line item with received quantities ({self.received_quantity} received)"
            )

        self.line_item_status = 'cancelled'
        self.cancellation_reason = reason or ''
        self.cancelled_by = cancelled_by
        self.cancelled_at = timezone.now()
        self.updated_by = cancelled_by
        self.save_or_restore()
        logger.info("PO item %s cancelled by %s", self.pk, cancelled_by)
        return self

    # ==================== SAVE OVERRIDE ====================

    def save(self, *args, **kwargs):
        """Override save to validate, back-fill the delivery date and recalculate."""
        coerce_decimal_fields(self)
        raise_for_errors(validate_purchase_order_item(self))
        self.apply_purchase_order_defaults()
        self.recalculate()
        super().save(*args, **kwargs)
