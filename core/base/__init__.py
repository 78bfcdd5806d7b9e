"""
Core Base Module

Provides shared base classes and utilities for the procurement modules.

**Architecture:**
Each feature is a separate mixin that can be composed together.

Exports:
    Individual Feature Mixins:
        - AuditMixin: Adds created_at, updated_at, created_by, updated_by
        - OptimisticLockMixin: Adds version + conditional (versioned) saves

    Managers & QuerySets:
        - BaseQuerySet: Base queryset with filter_by_query_params / created_between

    Exceptions:
        - StaleRecord: Raised when a versioned save loses a race

Usage Examples:

    from core.base import AuditMixin, OptimisticLockMixin
    from core.base.managers import BaseQuerySet

    class RequisitionItem(AuditMixin, OptimisticLockMixin, models.Model):
        quantity = models.DecimalField(max_digits=15, decimal_places=3)
        objects = BaseQuerySet.as_manager()
"""

from core.base.exceptions import StaleRecord

from core.base.models import (
    AuditMixin,
    OptimisticLockMixin,
)

from core.base.managers import (
    BaseQuerySet,
)

__all__ = [
    # Individual Feature Mixins
    'AuditMixin',
    'OptimisticLockMixin',

    # Managers & QuerySets
    'BaseQuerySet',

    # Exceptions
    'StaleRecord',
]
