"""
Scoring constants and approval limits.

Defaults below can be overridden per deployment through the Django settings
``PROCUREMENT_SCORING`` and ``PROCUREMENT_APPROVAL_LIMITS``; only the keys
given there replace the defaults (nested dicts are merged one level deep).

    PROCUREMENT_SCORING = {'PRICE_REFERENCE': 5000}
"""
from decimal import Decimal

from django.conf import settings


DEFAULT_SCORING = {
    # price competitiveness = 100 - unit_price / PRICE_REFERENCE * PRICE_PENALTY
    'PRICE_REFERENCE': Decimal('1000'),
    'PRICE_PENALTY': Decimal('10'),
    # delivery competitiveness = 100 - delivery_time * DELIVERY_PENALTY_PER_DAY
    'DELIVERY_PENALTY_PER_DAY': Decimal('2'),
    'VALUE_WEIGHTS': {
        'price': Decimal('0.6'),
        'delivery': Decimal('0.4'),
    },
    'EVALUATION_WEIGHTS': {
        'technical': Decimal('0.25'),
        'financial': Decimal('0.35'),
        'delivery': Decimal('0.20'),
        'quality': Decimal('0.15'),
        'compliance': Decimal('0.05'),
    },
    'LONG_DELIVERY_DAYS': 30,
    'RISK_POINTS': {
        'not_fully_compliant': 30,
        'per_deviation': 10,
        'long_delivery': 20,
        'alternative_offered': 25,
        'no_warranty': 15,
    },
    'RISK_THRESHOLDS': {
        'high': 60,
        'medium': 30,
    },
}

DEFAULT_APPROVAL_LIMITS = {
    # awarding above this needs director or admin
    'DIRECTOR': Decimal('50000'),
    # awarding above this must pass through legal review first
    'LEGAL_REVIEW': Decimal('100000'),
    # awarding above this needs vp or admin
    'VP': Decimal('200000'),
}


def _merge(defaults, overrides):
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def scoring():
    """Scoring constants with deployment overrides applied."""
    return _merge(DEFAULT_SCORING, getattr(settings, 'PROCUREMENT_SCORING', None))


def approval_limits():
    """Award approval thresholds with deployment overrides applied."""
    limits = _merge(DEFAULT_APPROVAL_LIMITS, getattr(settings, 'PROCUREMENT_APPROVAL_LIMITS', None))
    return {key: Decimal(str(value)) for key, value in limits.items()}
