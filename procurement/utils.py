"""Decimal helpers shared by the line-item calculations."""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from procurement.exceptions import InvalidArgument


CENT = Decimal('0.01')
MILLI = Decimal('0.001')
ZERO = Decimal('0')
HUNDRED = Decimal('100')


def to_decimal(value, field='value'):
    """Coerce ints, floats, strings and Decimals; None stays None. NaN and infinities are refused."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidArgument({field: [f"'{value}' is not a valid number"]})
    if not result.is_finite():
        raise InvalidArgument({field: [f"'{value}' is not a valid number"]})
    return result


def money(value):
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def qty(value):
    return Decimal(value).quantize(MILLI, rounding=ROUND_HALF_UP)


def percentage(part, whole):
    """part / whole * 100 rounded to 0.01; 0 when whole is missing or zero."""
    if not whole or part is None:
        return Decimal('0.00')
    return money(Decimal(part) / Decimal(whole) * HUNDRED)


def clamp(value, lower=ZERO, upper=HUNDRED):
    return max(lower, min(upper, value))


def coerce_decimal_fields(instance):
    """
    Run every DecimalField value through the field's own to_python, so
    ints, floats and strings assigned in code behave like Decimals.
    """
    from django.core.exceptions import ValidationError
    from django.db import models

    for field in instance._meta.concrete_fields:
        if not isinstance(field, models.DecimalField):
            continue
        value = getattr(instance, field.attname)
        if value is None:
            continue
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise InvalidArgument({field.name: [f"'{value}' is not a valid number"]})
            continue
        try:
            setattr(instance, field.attname, field.to_python(value))
        except ValidationError as e:
            raise InvalidArgument({field.name: e.messages})
