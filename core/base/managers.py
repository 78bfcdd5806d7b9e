"""
Core Base Managers Module

Provides the shared queryset used by the procurement line-item models.

Exports:
    QuerySets:
        - BaseQuerySet: filter_by_query_params, created_between

Usage:
    from core.base.managers import BaseQuerySet

    class PurchaseOrderItemQuerySet(BaseQuerySet):
        def pending_receipts(self):
            ...

    class PurchaseOrderItem(models.Model):
        objects = PurchaseOrderItemQuerySet.as_manager()
"""

from django.db import models


class BaseQuerySet(models.QuerySet):
    """
    Base QuerySet with common filtering methods.

    Methods:
        - filter_by_query_params: Exact-match filters driven by request parameters
        - created_between: Records created inside an optional date range
    """

    def filter_by_query_params(self, query_params, allowed):
        """
        Apply exact-match filters for the parameters a view allows.

        Args:
            query_params: QueryDict or dict from the request
            allowed: dict of query parameter name -> ORM lookup,
                e.g. {'purchase_order': 'purchase_order_id', 'status': 'delivery_status'}

        Returns:
            Filtered QuerySet. Missing or empty parameters are ignored.
        """
        queryset = self
        for param, lookup in allowed.items():
            value = query_params.get(param)
            if value not in (None, ''):
                queryset = queryset.filter(**{lookup: value})
        return queryset

    def created_between(self, start_date=None, end_date=None):
        """
        Return records created inside the range; either bound may be omitted.

        Args:
            start_date: inclusive lower bound (date or datetime)
            end_date: inclusive upper bound (date or datetime)
        """
        queryset = self
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)
        return queryset
