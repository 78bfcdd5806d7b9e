"""
Field validation helpers shared by the line-item validators.

Each ``validate_*`` function in the sub-apps returns a list of FieldError;
``raise_for_errors`` turns a non-empty list into InvalidArgument carrying a
field -> messages mapping. Nothing here touches the database.
"""
from collections import namedtuple
from decimal import Decimal

from procurement.exceptions import InvalidArgument


FieldError = namedtuple('FieldError', ['field', 'message'])


def check_required(errors, field, value, label=None):
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(FieldError(field, f"{label or field} is required"))
        return False
    return True


def check_min(errors, field, value, minimum, message):
    if value is not None and Decimal(str(value)) < Decimal(str(minimum)):
        errors.append(FieldError(field, message))


def check_max(errors, field, value, maximum, message):
    if value is not None and Decimal(str(value)) > Decimal(str(maximum)):
        errors.append(FieldError(field, message))


def check_range(errors, field, value, minimum=0, maximum=100, label=None):
    """0-100 style scores."""
    if value is None:
        return
    if not (Decimal(str(minimum)) <= Decimal(str(value)) <= Decimal(str(maximum))):
        errors.append(FieldError(field, f"{label or field} must be between {minimum} and {maximum}"))


def check_choice(errors, field, value, choices, allow_empty=False):
    valid = [choice[0] if isinstance(choice, (list, tuple)) else choice for choice in choices]
    if allow_empty and value in (None, ''):
        return
    if value not in valid:
        errors.append(FieldError(field, f"'{value}' is not a valid choice for {field}"))


def check_max_length(errors, field, value, max_length, label=None):
    if value and len(value) > max_length:
        errors.append(FieldError(field, f"{label or field} cannot be more than {max_length} characters"))


def errors_to_dict(errors):
    grouped = {}
    for error in errors:
        grouped.setdefault(error.field, []).append(error.message)
    return grouped


def raise_for_errors(errors):
    """Raise InvalidArgument with every collected field error, or do nothing."""
    if errors:
        raise InvalidArgument(errors_to_dict(errors))
