"""
Purchase Order Item Views - API Endpoints for PO line items

These views follow the requisition pattern - thin wrappers that handle:
1. HTTP request/response
2. Authentication
3. Pagination
4. Format conversion

Business logic is in PurchaseOrderItem. OverReceipt, ExcessReturn,
IllegalCancellation and StaleRecord propagate to the project exception handler.
"""
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404

from procure_project.response_formatter import success_response, error_response
from procure_project.pagination import auto_paginate
from procurement.permissions import get_actor

from procurement.po.models import PurchaseOrderItem
from procurement.po.serializers import (
    PurchaseOrderItemSerializer,
    PurchaseOrderItemCreateSerializer,
    PurchaseOrderItemUpdateSerializer,
    POItemReceiveSerializer,
    POItemReturnSerializer,
    POItemQualityCheckSerializer,
    POItemCancelSerializer,
)

logger = logging.getLogger(__name__)


def _invalid(serializer):
    return error_response(
        message="Invalid data provided",
        data=serializer.errors,
        status_code=status.HTTP_400_BAD_REQUEST
    )


def _item_with_stats(item):
    data = PurchaseOrderItemSerializer(item).data
    data['stats'] = item.get_item_stats()
    return data


# ============================================================================
# PO LINE ITEM CRUD
# ============================================================================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@auto_paginate
def po_item_list(request):
    """
    GET: List PO line items with optional filtering
    POST: Add a line item to a purchase order

    Query Parameters for GET:
    - purchase_order: Filter by purchase order ID
    - product: Filter by product ID
    - delivery_status: pending, partially_received, fully_received, over_received, cancelled
    - quality_status: pending, passed, failed, partial
    - line_item_status: active, cancelled, closed
    - pending_receipts: true -> active items still waiting for goods
    - quality_issues: true -> active items with failed / partial quality checks
    - date_from / date_to: creation date range
    """
    if request.method == 'GET':
        queryset = PurchaseOrderItem.objects.select_related('purchase_order', 'product')

        if request.query_params.get('pending_receipts', '').lower() == 'true':
            queryset = queryset.pending_receipts()
        if request.query_params.get('quality_issues', '').lower() == 'true':
            queryset = queryset.quality_issues()

        queryset = queryset.filter_by_query_params(request.query_params, {
            'purchase_order': 'purchase_order_id',
            'product': 'product_id',
            'delivery_status': 'delivery_status',
            'quality_status': 'quality_status',
            'line_item_status': 'line_item_status',
        }).created_between(
            request.query_params.get('date_from'),
            request.query_params.get('date_to')
        )

        serializer = PurchaseOrderItemSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = PurchaseOrderItemCreateSerializer(data=request.data, context={'actor': get_actor(request)})
    if not serializer.is_valid():
        return _invalid(serializer)

    item = serializer.save()
    logger.info("PO item %s created by %s", item.pk, get_actor(request))
    return success_response(
        data=PurchaseOrderItemSerializer(item).data,
        message="PO line item created successfully",
        status_code=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def po_item_detail(request, pk):
    """
    GET: Retrieve a PO line item with its receiving stats
    PATCH: Edit a line item (only while active and nothing received)
    DELETE: Delete a line item (same condition)
    """
    item = get_object_or_404(PurchaseOrderItem.objects.select_related('purchase_order', 'product'), pk=pk)

    if request.method == 'GET':
        return success_response(data=_item_with_stats(item), message="PO line item retrieved successfully")

    if not item.can_be_modified():
        return error_response(
            message="Cannot modify a PO line item that has receipts or is no longer active",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if request.method == 'DELETE':
        item.delete()
        return success_response(
            message="PO line item deleted successfully",
            status_code=status.HTTP_204_NO_CONTENT
        )

    serializer = PurchaseOrderItemUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    changes = dict(serializer.validated_data)
    item.check_version(changes.pop('version', None))
    for field, value in changes.items():
        setattr(item, field, value)
    item.updated_by = get_actor(request)
    item.save()

    return success_response(
        data=PurchaseOrderItemSerializer(item).data,
        message="PO line item updated successfully"
    )


# ============================================================================
# RECEIVING / RETURNS / QUALITY / CANCELLATION
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def po_item_receive(request, pk):
    """
    POST: Record a goods receipt against the line item
    Expected data: {'quantity': required, 'notes': '', 'location': optional, 'version': optional}
    """
    item = get_object_or_404(PurchaseOrderItem, pk=pk)
    serializer = POItemReceiveSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.receive_items(
        data['quantity'],
        get_actor(request),
        notes=data.get('notes', ''),
        location=data.get('location'),
        expected_version=data.get('version'),
    )
    return success_response(data=_item_with_stats(item), message="Items received successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def po_item_return(request, pk):
    """
    POST: Return received goods to the supplier
    Expected data: {'quantity': required, 'reason': required, 'condition': required, 'notes': '',
                    'version': optional}
    """
    item = get_object_or_404(PurchaseOrderItem, pk=pk)
    serializer = POItemReturnSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.return_items(
        data['quantity'],
        data['reason'],
        data['condition'],
        get_actor(request),
        notes=data.get('notes', ''),
        expected_version=data.get('version'),
    )
    return success_response(data=_item_with_stats(item), message="Items returned successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def po_item_quality_check(request, pk):
    """
    POST: Record the outcome of a quality inspection
    Expected data: {'status': required, 'notes': '', 'defects': [...], 'version': optional}
    """
    item = get_object_or_404(PurchaseOrderItem, pk=pk)
    serializer = POItemQualityCheckSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.perform_quality_check(
        get_actor(request),
        data['status'],
        notes=data.get('notes', ''),
        defects=[dict(defect) for defect in data.get('defects', [])],
        expected_version=data.get('version'),
    )
    return success_response(
        data=PurchaseOrderItemSerializer(item).data,
        message="Quality check recorded successfully"
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def po_item_cancel(request, pk):
    """
    POST: Cancel a line item that has no receipts
    Expected data: {'reason': '', 'version': optional}
    """
    item = get_object_or_404(PurchaseOrderItem, pk=pk)
    serializer = POItemCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    item.cancel_line_item(
        get_actor(request),
        reason=serializer.validated_data.get('reason', ''),
        expected_version=serializer.validated_data.get('version'),
    )
    return success_response(
        data=PurchaseOrderItemSerializer(item).data,
        message="PO line item cancelled successfully"
    )
