"""
Requisition Item Views - API Endpoints for requisition line items

Thin wrappers that handle:
1. HTTP request/response
2. Authentication
3. Pagination
4. Format conversion

Business logic is in RequisitionItem. Domain failures (InvalidArgument,
StaleRecord, ...) propagate to the project exception handler, which renders
them as 400 / 409 envelopes.
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

from procurement.requisition.models import RequisitionItem
from procurement.requisition.serializers import (
    RequisitionItemSerializer,
    RequisitionItemCreateSerializer,
    RequisitionItemUpdateSerializer,
    RequisitionApproveSerializer,
    RequisitionPartialApproveSerializer,
    RequisitionRejectSerializer,
    RequisitionActualCostsSerializer,
)

logger = logging.getLogger(__name__)


def _invalid(serializer):
    return error_response(
        message="Invalid data provided",
        data=serializer.errors,
        status_code=status.HTTP_400_BAD_REQUEST
    )


# ============================================================================
# REQUISITION ITEM CRUD
# ============================================================================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@auto_paginate
def requisition_item_list(request):
    """
    GET: List requisition items with optional filtering
    POST: Create a requisition item

    Query Parameters for GET:
    - requisition: Filter by requisition ID
    - product: Filter by product ID
    - status: requested, approved, rejected, partially_approved, ...
    - urgency: normal, urgent, critical
    - over_budget: true -> open items whose estimate exceeds the available balance
    - low_stock: true -> open items whose product stock is low or out
    """
    if request.method == 'GET':
        queryset = RequisitionItem.objects.select_related('requisition', 'product')

        if request.query_params.get('over_budget', '').lower() == 'true':
            queryset = queryset.over_budget()
        if request.query_params.get('low_stock', '').lower() == 'true':
            queryset = queryset.low_stock()

        queryset = queryset.filter_by_query_params(request.query_params, {
            'requisition': 'requisition_id',
            'product': 'product_id',
            'status': 'status',
            'urgency': 'urgency',
        })

        serializer = RequisitionItemSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = RequisitionItemCreateSerializer(data=request.data, context={'actor': get_actor(request)})
    if not serializer.is_valid():
        return _invalid(serializer)

    item = serializer.save()
    logger.info("Requisition item %s created by %s", item.pk, get_actor(request))
    return success_response(
        data=RequisitionItemSerializer(item).data,
        message="Requisition item created successfully",
        status_code=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def requisition_item_detail(request, pk):
    """
    GET: Retrieve a requisition item with its stats
    PATCH: Edit a requisition item (only while 'requested')
    DELETE: Delete a requisition item (only while 'requested')
    """
    item = get_object_or_404(RequisitionItem.objects.select_related('requisition', 'product'), pk=pk)

    if request.method == 'GET':
        data = RequisitionItemSerializer(item).data
        data['stats'] = item.get_item_stats()
        return success_response(data=data, message="Requisition item retrieved successfully")

    if not item.can_be_modified():
        return error_response(
            message=f"Cannot modify a requisition item with status '{item.status}'",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if request.method == 'DELETE':
        item.delete()
        return success_response(
            message="Requisition item deleted successfully",
            status_code=status.HTTP_204_NO_CONTENT
        )

    serializer = RequisitionItemUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    changes = dict(serializer.validated_data)
    item.check_version(changes.pop('version', None))
    for field, value in changes.items():
        setattr(item, field, value)
    item.updated_by = get_actor(request)
    item.save()

    return success_response(
        data=RequisitionItemSerializer(item).data,
        message="Requisition item updated successfully"
    )


# ============================================================================
# REQUISITION ITEM WORKFLOW ACTIONS
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def requisition_item_approve(request, pk):
    """
    POST: Approve a requisition item
    Expected data: {'quantity': optional, 'unit_price': optional, 'comments': '', 'version': optional}
    """
    item = get_object_or_404(RequisitionItem, pk=pk)
    serializer = RequisitionApproveSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.approve(
        get_actor(request),
        quantity=data.get('quantity'),
        unit_price=data.get('unit_price'),
        comments=data.get('comments', ''),
        expected_version=data.get('version'),
    )
    return success_response(
        data=RequisitionItemSerializer(item).data,
        message="Requisition item approved successfully"
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def requisition_item_partially_approve(request, pk):
    """
    POST: Approve part of the requested quantity
    Expected data: {'quantity': required, 'unit_price': optional, 'comments': '', 'version': optional}
    """
    item = get_object_or_404(RequisitionItem, pk=pk)
    serializer = RequisitionPartialApproveSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.partially_approve(
        get_actor(request),
        data['quantity'],
        unit_price=data.get('unit_price'),
        comments=data.get('comments', ''),
        expected_version=data.get('version'),
    )
    return success_response(
        data=RequisitionItemSerializer(item).data,
        message="Requisition item partially approved successfully"
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def requisition_item_reject(request, pk):
    """
    POST: Reject a requisition item
    Expected data: {'reason': '', 'version': optional}
    """
    item = get_object_or_404(RequisitionItem, pk=pk)
    serializer = RequisitionRejectSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    item.reject(
        get_actor(request),
        reason=serializer.validated_data.get('reason', ''),
        expected_version=serializer.validated_data.get('version'),
    )
    return success_response(
        data=RequisitionItemSerializer(item).data,
        message="Requisition item rejected successfully"
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def requisition_item_actual_costs(request, pk):
    """
    POST: Record the actual purchase cost
    Expected data: {'actual_unit_price': required, 'version': optional}
    """
    item = get_object_or_404(RequisitionItem, pk=pk)
    serializer = RequisitionActualCostsSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.updated_by = get_actor(request)
    item.update_actual_costs(
        data['actual_unit_price'],
        expected_version=data.get('version'),
    )
    data = RequisitionItemSerializer(item).data
    data['stats'] = item.get_item_stats()
    return success_response(data=data, message="Actual costs recorded successfully")
