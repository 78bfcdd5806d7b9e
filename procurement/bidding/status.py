"""
Bid status state machine.

Statuses, the directed transition table, role and amount gating for status
changes, and the small lookups the bid screens need (display names,
categories, next statuses, recommended next step).

    from procurement.bidding import status as bid_status

    bid_status.is_valid_transition('awarded', 'completed')      # True
    violations = bid_status.validate_status_change('under_evaluation', 'awarded', 'manager', amount=75000)
"""
from collections import namedtuple
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from procurement.conf import approval_limits
from procurement.exceptions import ApprovalRequired, InsufficientPermission, InvalidTransition


DRAFT = 'draft'
PUBLISHED = 'published'
OPEN = 'open'
UNDER_EVALUATION = 'under_evaluation'
AWARDED = 'awarded'
REJECTED = 'rejected'
CANCELLED = 'cancelled'
COMPLETED = 'completed'
EXTENDED = 'extended'
AWAITING_CLARIFICATION = 'awaiting_clarification'
UNDER_LEGAL_REVIEW = 'under_legal_review'
NEGOTIATION = 'negotiation'
ON_HOLD = 'on_hold'

BID_STATUS_CHOICES = [
    (DRAFT, 'Draft'),
    (PUBLISHED, 'Published'),
    (OPEN, 'Open for Bids'),
    (UNDER_EVALUATION, 'Under Evaluation'),
    (AWARDED, 'Awarded'),
    (REJECTED, 'Rejected'),
    (CANCELLED, 'Cancelled'),
    (COMPLETED, 'Completed'),
    (EXTENDED, 'Extended'),
    (AWAITING_CLARIFICATION, 'Awaiting Clarification'),
    (UNDER_LEGAL_REVIEW, 'Under Legal Review'),
    (NEGOTIATION, 'Negotiation'),
    (ON_HOLD, 'On Hold'),
]

STATUS_DISPLAY = dict(BID_STATUS_CHOICES)

STATUS_CATEGORY = {
    DRAFT: 'draft',
    PUBLISHED: 'preparation',
    OPEN: 'active',
    UNDER_EVALUATION: 'evaluation',
    AWARDED: 'awarded',
    REJECTED: 'rejected',
    CANCELLED: 'cancelled',
    COMPLETED: 'completed',
    EXTENDED: 'active',
    AWAITING_CLARIFICATION: 'pending',
    UNDER_LEGAL_REVIEW: 'review',
    NEGOTIATION: 'active',
    ON_HOLD: 'pending',
}

STATUS_DESCRIPTIONS = {
    DRAFT: 'Bid is in draft mode and not yet published',
    PUBLISHED: 'Bid has been published and is visible to suppliers',
    OPEN: 'Bid is open for submissions from suppliers',
    UNDER_EVALUATION: 'Bid submissions are being evaluated',
    AWARDED: 'Bid has been awarded to a winning supplier',
    REJECTED: 'Bid has been rejected or no winner selected',
    CANCELLED: 'Bid has been cancelled before completion',
    COMPLETED: 'Bid process has been completed successfully',
    EXTENDED: 'Bid submission deadline has been extended',
    AWAITING_CLARIFICATION: 'Awaiting clarification from suppliers',
    UNDER_LEGAL_REVIEW: 'Bid is under legal department review',
    NEGOTIATION: 'In negotiation phase with potential suppliers',
    ON_HOLD: 'Bid process is temporarily on hold',
}

TRANSITIONS = {
    DRAFT: [PUBLISHED, CANCELLED],
    PUBLISHED: [OPEN, CANCELLED, ON_HOLD],
    OPEN: [UNDER_EVALUATION, EXTENDED, CANCELLED, ON_HOLD, AWAITING_CLARIFICATION],
    UNDER_EVALUATION: [AWARDED, REJECTED, NEGOTIATION, UNDER_LEGAL_REVIEW, AWAITING_CLARIFICATION, ON_HOLD],
    AWARDED: [COMPLETED, UNDER_LEGAL_REVIEW, NEGOTIATION, ON_HOLD],
    REJECTED: [CANCELLED],
    CANCELLED: [],
    COMPLETED: [],
    EXTENDED: [OPEN, UNDER_EVALUATION, CANCELLED],
    AWAITING_CLARIFICATION: [OPEN, UNDER_EVALUATION, CANCELLED],
    UNDER_LEGAL_REVIEW: [AWARDED, REJECTED, NEGOTIATION, ON_HOLD],
    NEGOTIATION: [AWARDED, REJECTED, UNDER_LEGAL_REVIEW, ON_HOLD],
    ON_HOLD: [OPEN, UNDER_EVALUATION, CANCELLED],
}

TERMINAL_STATUSES = [CANCELLED, COMPLETED]

# transitions that need sign-off before they are carried out
APPROVAL_TRANSITIONS = {
    DRAFT: [PUBLISHED],
    PUBLISHED: [OPEN],
    UNDER_EVALUATION: [AWARDED],
    UNDER_LEGAL_REVIEW: [AWARDED],
}

AWARD_ROLES = ['manager', 'director', 'admin']
CANCEL_ROLES = ['manager', 'director', 'admin']
DIRECTOR_ROLES = ['director', 'admin']
VP_ROLES = ['vp', 'admin']

EVALUATION_CRITERIA_WEIGHTS = {
    'price': Decimal('0.3'),
    'quality': Decimal('0.25'),
    'delivery_time': Decimal('0.15'),
    'technical_specs': Decimal('0.1'),
    'past_performance': Decimal('0.1'),
    'financial_stability': Decimal('0.05'),
    'environmental_compliance': Decimal('0.025'),
    'social_responsibility': Decimal('0.025'),
    'innovation': Decimal('0.025'),
    'support_services': Decimal('0.025'),
}


StatusViolation = namedtuple('StatusViolation', ['error_class', 'message'])


# ==================== LOOKUPS ====================

def get_display_name(status):
    return STATUS_DISPLAY.get(status, 'Unknown Status')


def get_category(status):
    return STATUS_CATEGORY.get(status, 'unknown')


def get_description(status):
    return STATUS_DESCRIPTIONS.get(status, 'No description available')


def is_valid_transition(from_status, to_status):
    return to_status in TRANSITIONS.get(from_status, [])


def get_next_statuses(status):
    return list(TRANSITIONS.get(status, []))


def is_active(status):
    """Open for submissions."""
    return status in (OPEN, EXTENDED)


def is_under_evaluation(status):
    return status in (UNDER_EVALUATION, UNDER_LEGAL_REVIEW, NEGOTIATION, AWAITING_CLARIFICATION)


def is_completed(status):
    return status in (AWARDED, REJECTED, COMPLETED, CANCELLED)


def is_editable(status):
    return status == DRAFT


def can_receive_submissions(status):
    return status in (OPEN, EXTENDED)


def requires_approval(status, next_status):
    return next_status in APPROVAL_TRANSITIONS.get(status, [])


def get_attention_required_statuses():
    return [UNDER_EVALUATION, AWAITING_CLARIFICATION, UNDER_LEGAL_REVIEW, NEGOTIATION, ON_HOLD]


def is_deadline_approaching(status, deadline, threshold_hours=24, now=None):
    """True when an active bid's deadline is in the future but within threshold_hours."""
    if not is_active(status) or deadline is None:
        return False
    now = now or timezone.now()
    remaining = deadline - now
    return timedelta(0) < remaining <= timedelta(hours=threshold_hours)


# ==================== SCORING ====================

def get_evaluation_weight(criteria, weights=None):
    weights = weights or EVALUATION_CRITERIA_WEIGHTS
    return Decimal(str(weights.get(criteria, 0)))


def calculate_evaluation_score(scores, weights=None):
    """
    Weighted mean over the criteria present in ``scores``.

    Criteria missing from ``scores`` drop out of both the numerator and the
    weight total, so a partial evaluation is still on the 0-100 scale.
    """
    weights = weights or EVALUATION_CRITERIA_WEIGHTS
    total_score = Decimal('0')
    total_weight = Decimal('0')
    for criteria, weight in weights.items():
        if scores.get(criteria) is None:
            continue
        weight = Decimal(str(weight))
        total_score += Decimal(str(scores[criteria])) * weight
        total_weight += weight
    if total_weight <= 0:
        return Decimal('0')
    return total_score / total_weight


# ==================== STATUS CHANGES ====================

def validate_status_change(current_status, new_status, role, amount=0, legal_review_passed=False):
    """
    Return the list of StatusViolation that block moving a bid from
    ``current_status`` to ``new_status``. An empty list means the change is allowed.

    ``legal_review_passed`` is True when the bid has been through
    under_legal_review at some point; the current status counts too.
    """
    limits = approval_limits()
    amount = Decimal(str(amount or 0))
    violations = []

    if not is_valid_transition(current_status, new_status):
        violations.append(StatusViolation(
            InvalidTransition,
            f"Invalid status transition from {current_status} to {new_status}"
        ))

    if new_status == AWARDED and role not in AWARD_ROLES:
        violations.append(StatusViolation(InsufficientPermission, 'Insufficient permissions to award bids'))

    if new_status == CANCELLED and role not in CANCEL_ROLES:
        violations.append(StatusViolation(InsufficientPermission, 'Insufficient permissions to cancel bids'))

    if new_status == AWARDED:
        if amount > limits['DIRECTOR'] and role not in DIRECTOR_ROLES:
            violations.append(StatusViolation(ApprovalRequired, 'Bid amount exceeds approval limit for your role'))

        if amount > limits['VP'] and role not in VP_ROLES:
            violations.append(StatusViolation(ApprovalRequired, 'Bid amount requires VP approval'))

        passed_legal = legal_review_passed or current_status == UNDER_LEGAL_REVIEW
        if amount > limits['LEGAL_REVIEW'] and not passed_legal:
            violations.append(StatusViolation(ApprovalRequired, 'High-value bids require legal department review'))

    return violations


def raise_for_violations(violations):
    """Raise the first violation's error type carrying every violation message."""
    if violations:
        raise violations[0].error_class([violation.message for violation in violations])


def get_recommended_next_status(current_status, context=None):
    """
    Suggest the next status from workflow flags. Pure: it only reads ``context``.

    Context flags: has_submissions, evaluation_complete, requires_legal_review,
    legal_approved, negotiation_complete, clarification_provided.
    """
    context = context or {}

    if current_status == DRAFT:
        return PUBLISHED
    if current_status == PUBLISHED:
        return OPEN
    if current_status == OPEN:
        return UNDER_EVALUATION if context.get('has_submissions') else current_status
    if current_status == UNDER_EVALUATION:
        if context.get('evaluation_complete'):
            return UNDER_LEGAL_REVIEW if context.get('requires_legal_review') else AWARDED
        return current_status
    if current_status == UNDER_LEGAL_REVIEW:
        return AWARDED if context.get('legal_approved') else current_status
    if current_status == NEGOTIATION:
        return AWARDED if context.get('negotiation_complete') else current_status
    if current_status == AWAITING_CLARIFICATION:
        return UNDER_EVALUATION if context.get('clarification_provided') else current_status
    if current_status == AWARDED:
        return COMPLETED
    return current_status
