from decimal import Decimal

from django.db import models

from procurement.validation import FieldError, check_min, check_required, raise_for_errors


STOCK_STATUS_CHOICES = [
    ('adequate', 'Adequate'),
    ('low', 'Low'),
    ('out_of_stock', 'Out of Stock'),
    ('excess', 'Excess'),
]


def classify_stock(current_stock, reorder_level):
    """
    Stock status from a stock level and its reorder point.

    out_of_stock at zero, low at or below the reorder level, excess above
    twice the reorder level, adequate otherwise.
    """
    current_stock = Decimal(str(current_stock or 0))
    reorder_level = Decimal(str(reorder_level or 0))
    if current_stock == 0:
        return 'out_of_stock'
    if current_stock <= reorder_level:
        return 'low'
    if current_stock > reorder_level * 2:
        return 'excess'
    return 'adequate'


class Product(models.Model):
    """
    Product master data referenced by requisition, PO and bid lines.
    Only the stock snapshot (current_stock, reorder_level) is read by the line items.
    """
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=50, unique=True, help_text="Stock keeping unit code")
    description = models.TextField(blank=True)
    unit = models.CharField(max_length=50, default='pcs', help_text="Unit of measure (e.g., pcs, kg, box)")

    current_stock = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    reorder_level = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'catalog_product'
        ordering = ['name']
        verbose_name = 'Product'
        verbose_name_plural = 'Products'

    def __str__(self):
        return f"{self.sku} - {self.name}"

    def save(self, *args, **kwargs):
        """Override save to normalise the SKU and validate stock levels"""
        self.sku = (self.sku or '').strip().upper()
        errors = []
        check_required(errors, 'name', self.name, 'Product name')
        check_required(errors, 'sku', self.sku, 'SKU')
        check_min(errors, 'current_stock', self.current_stock, 0, 'Current stock cannot be negative')
        check_min(errors, 'reorder_level', self.reorder_level, 0, 'Reorder level cannot be negative')
        raise_for_errors(errors)
        super().save(*args, **kwargs)

    @property
    def stock_status(self):
        return classify_stock(self.current_stock, self.reorder_level)

    @classmethod
    def get_by_sku(cls, sku):
        """Get a product by its SKU"""
        try:
            return cls.objects.get(sku=sku.strip().upper())
        except cls.DoesNotExist:
            return None

    @classmethod
    def search_by_name(cls, search_term):
        """Search products by name (case-insensitive)"""
        return cls.objects.filter(name__icontains=search_term)
