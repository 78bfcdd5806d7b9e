"""
Bidding Views - API Endpoints for bids and bid items

Thin wrappers that handle:
1. HTTP request/response
2. Authentication and role lookup
3. Pagination
4. Format conversion

Status rules are in procurement.bidding.status, scoring in BidItem.
InvalidTransition (400), InsufficientPermission / ApprovalRequired (403) and
StaleRecord (409) propagate to the project exception handler.
"""
import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404

from procure_project.response_formatter import success_response, error_response
from procure_project.pagination import auto_paginate
from procurement.permissions import get_actor, get_user_role

from procurement.bidding import status as bid_status
from procurement.bidding.models import Bid, BidItem
from procurement.bidding.serializers import (
    BidSerializer,
    BidCreateSerializer,
    BidChangeStatusSerializer,
    NextStatusContextSerializer,
    BidItemSerializer,
    BidItemCreateSerializer,
    BidItemUpdateSerializer,
    BidItemDeviationSerializer,
    BidItemAlternativeSerializer,
    BidItemEvaluationSerializer,
    BidItemComplianceSerializer,
    BidItemAttachmentSerializer,
)

logger = logging.getLogger(__name__)


def _invalid(serializer):
    return error_response(
        message="Invalid data provided",
        data=serializer.errors,
        status_code=status.HTTP_400_BAD_REQUEST
    )


def _item_with_analysis(item):
    data = BidItemSerializer(item).data
    data['analysis'] = item.get_item_analysis()
    return data


# ============================================================================
# BID VIEWS
# ============================================================================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@auto_paginate
def bid_list(request):
    """
    GET: List bids
    POST: Create a draft bid

    Query Parameters for GET:
    - status: Filter by status
    - rfq_reference: Filter by RFQ number
    - attention: true -> bids in a status that needs someone to act
    """
    if request.method == 'GET':
        queryset = Bid.objects.all()
        if request.query_params.get('attention', '').lower() == 'true':
            queryset = queryset.filter(status__in=bid_status.get_attention_required_statuses())
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        rfq_reference = request.query_params.get('rfq_reference')
        if rfq_reference:
            queryset = queryset.filter(rfq_reference=rfq_reference)

        serializer = BidSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = BidCreateSerializer(data=request.data, context={'actor': get_actor(request)})
    if not serializer.is_valid():
        return _invalid(serializer)

    bid = serializer.save()
    logger.info("Bid %s created by %s", bid.bid_number, get_actor(request))
    return success_response(
        data=BidSerializer(bid).data,
        message="Bid created successfully",
        status_code=status.HTTP_201_CREATED
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bid_detail(request, pk):
    """GET: Bid with its items and the deadline flag"""
    bid = get_object_or_404(Bid, pk=pk)
    data = BidSerializer(bid).data
    data['items'] = BidItemSerializer(BidItem.objects.by_bid(bid.id), many=True).data
    data['items_total'] = bid.calculate_items_total()
    data['deadline_approaching'] = bid.is_deadline_approaching()
    return success_response(data=data, message="Bid retrieved successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_change_status(request, pk):
    """
    POST: Move the bid to a new status
    Expected data: {'status': required, 'reason': '', 'version': optional}

    The caller's role comes from their auth groups (manager, director, vp, admin).
    """
    bid = get_object_or_404(Bid, pk=pk)
    serializer = BidChangeStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    bid.change_status(
        data['status'],
        get_actor(request),
        get_user_role(request.user),
        reason=data.get('reason', ''),
        expected_version=data.get('version'),
    )
    return success_response(
        data=BidSerializer(bid).data,
        message=f"Bid status changed to {bid_status.get_display_name(bid.status)}"
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bid_next_status(request, pk):
    """
    GET: Legal next statuses and the recommended one

    Query Parameters:
    - has_submissions, evaluation_complete, requires_legal_review,
      legal_approved, negotiation_complete, clarification_provided (true/false)
    """
    bid = get_object_or_404(Bid, pk=pk)
    serializer = NextStatusContextSerializer(data=request.query_params)
    if not serializer.is_valid():
        return _invalid(serializer)

    role = get_user_role(request.user)
    next_statuses = []
    for next_status in bid.get_next_statuses():
        violations = bid_status.validate_status_change(
            bid.status, next_status, role,
            amount=bid.total_amount,
            legal_review_passed=bid.has_passed_legal_review(),
        )
        next_statuses.append({
            'status': next_status,
            'display': bid_status.get_display_name(next_status),
            'description': bid_status.get_description(next_status),
            'requires_approval': bid_status.requires_approval(bid.status, next_status),
            'allowed': not violations,
            'blocked_by': [violation.message for violation in violations],
        })

    return success_response(data={
        'current_status': bid.status,
        'recommended': bid_status.get_recommended_next_status(bid.status, serializer.validated_data),
        'next_statuses': next_statuses,
    })


# ============================================================================
# BID ITEM CRUD
# ============================================================================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@auto_paginate
def bid_item_list(request):
    """
    GET: List bid items
    POST: Quote an RFQ item on a bid

    Query Parameters for GET:
    - bid: Filter by bid ID
    - rfq_item: Quotes for one RFQ item, cheapest first
    - specifications_compliance: Filter by compliance status
    - non_compliant: true -> partially / non compliant quotes
    - alternatives: true -> quotes offering an alternative product
    """
    if request.method == 'GET':
        rfq_item = request.query_params.get('rfq_item')
        if rfq_item:
            queryset = BidItem.objects.by_rfq_item(rfq_item)
        else:
            queryset = BidItem.objects.select_related('bid', 'product')

        if request.query_params.get('non_compliant', '').lower() == 'true':
            queryset = queryset.non_compliant()
        if request.query_params.get('alternatives', '').lower() == 'true':
            queryset = queryset.with_alternatives()

        queryset = queryset.filter_by_query_params(request.query_params, {
            'bid': 'bid_id',
            'product': 'product_id',
            'specifications_compliance': 'specifications_compliance',
        })

        serializer = BidItemSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = BidItemCreateSerializer(data=request.data, context={'actor': get_actor(request)})
    if not serializer.is_valid():
        return _invalid(serializer)

    item = serializer.save()
    logger.info("Bid item %s created by %s", item.pk, get_actor(request))
    return success_response(
        data=BidItemSerializer(item).data,
        message="Bid item created successfully",
        status_code=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def bid_item_detail(request, pk):
    """
    GET: Bid item with its analysis (value score, risk, compliance)
    PATCH: Edit a quote while the bid is a draft or open
    DELETE: Withdraw a quote (same condition)
    """
    item = get_object_or_404(BidItem.objects.select_related('bid', 'product'), pk=pk)

    if request.method == 'GET':
        return success_response(data=_item_with_analysis(item), message="Bid item retrieved successfully")

    if not item.can_be_modified():
        return error_response(
            message=f"Cannot modify items on a bid with status '{item.bid.status}'",
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if request.method == 'DELETE':
        item.delete()
        return success_response(
            message="Bid item deleted successfully",
            status_code=status.HTTP_204_NO_CONTENT
        )

    serializer = BidItemUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    changes = dict(serializer.validated_data)
    item.check_version(changes.pop('version', None))
    for field, value in changes.items():
        setattr(item, field, value)
    item.updated_by = get_actor(request)
    item.save()

    return success_response(data=BidItemSerializer(item).data, message="Bid item updated successfully")


# ============================================================================
# BID ITEM SCORING ACTIONS
# ============================================================================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_item_deviations(request, pk):
    """
    POST: Record a deviation from the requested specifications
    Expected data: {'aspect', 'description', 'impact': 'minor', 'justification', 'proposed_solution',
                    'version': optional}
    """
    item = get_object_or_404(BidItem, pk=pk)
    serializer = BidItemDeviationSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.updated_by = get_actor(request)
    item.add_deviation(
        data['aspect'],
        data['description'],
        impact=data.get('impact', 'minor'),
        justification=data.get('justification', ''),
        proposed_solution=data.get('proposed_solution', ''),
        expected_version=data.get('version'),
    )
    return success_response(data=_item_with_analysis(item), message="Deviation added successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_item_alternative(request, pk):
    """
    POST: Offer an alternative product for this quote
    Expected data: {'product_id', 'description', 'brand', 'model', 'specifications', 'advantages',
                    'disadvantages', 'technical_comparison', 'original_price', 'alternative_price',
                    'version': optional}
    """
    item = get_object_or_404(BidItem, pk=pk)
    serializer = BidItemAlternativeSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.updated_by = get_actor(request)
    item.set_alternative_product(
        data['product_id'],
        data['description'],
        data.get('brand', ''),
        data.get('model', ''),
        data.get('specifications', {}),
        advantages=data.get('advantages', ''),
        disadvantages=data.get('disadvantages', ''),
        technical_comparison=data.get('technical_comparison', ''),
        original_price=data.get('original_price'),
        alternative_price=data.get('alternative_price'),
        expected_version=data.get('version'),
    )
    return success_response(data=_item_with_analysis(item), message="Alternative product recorded successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_item_evaluate(request, pk):
    """
    POST: Score the quote
    Expected data: {'technical_score', 'financial_score', 'delivery_score', 'quality_score',
                    'compliance_score', 'notes': '', 'version': optional}
    """
    item = get_object_or_404(BidItem, pk=pk)
    serializer = BidItemEvaluationSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = dict(serializer.validated_data)
    version = data.pop('version', None)
    notes = data.pop('notes', '')
    item.set_evaluation_scores(data, get_actor(request), notes=notes, expected_version=version)
    return success_response(data=_item_with_analysis(item), message="Bid item evaluated successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_item_compliance(request, pk):
    """
    POST: Replace the compliance sub-scores
    Expected data: {'technical_compliance', 'quality_compliance', 'documentation_compliance',
                    'notes': optional, 'version': optional}
    """
    item = get_object_or_404(BidItem, pk=pk)
    serializer = BidItemComplianceSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.updated_by = get_actor(request)
    item.set_compliance_details(
        data['technical_compliance'],
        data['quality_compliance'],
        data['documentation_compliance'],
        notes=data.get('notes'),
        expected_version=data.get('version'),
    )
    return success_response(data=BidItemSerializer(item).data, message="Compliance details updated successfully")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def bid_item_attachments(request, pk):
    """
    POST: Attach a document to the quote
    Expected data: {'name', 'url', 'type', 'description': '', 'version': optional}
    """
    item = get_object_or_404(BidItem, pk=pk)
    serializer = BidItemAttachmentSerializer(data=request.data)
    if not serializer.is_valid():
        return _invalid(serializer)

    data = serializer.validated_data
    item.updated_by = get_actor(request)
    item.add_attachment(
        data['name'],
        data['url'],
        data['type'],
        description=data.get('description', ''),
        expected_version=data.get('version'),
    )
    return success_response(
        data=BidItemSerializer(item).data,
        message="Attachment added successfully",
        status_code=status.HTTP_201_CREATED
    )
