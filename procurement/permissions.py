"""
Role resolution for the bid approval rules.

Roles are Django auth groups named after the approval roles. A user in several
groups gets the most senior one; superusers are always ``admin``.
"""

ROLE_PRECEDENCE = ['admin', 'vp', 'director', 'manager']
DEFAULT_ROLE = 'user'


def get_user_role(user):
    """Return the approval role of a Django user."""
    if user is None or not user.is_authenticated:
        return DEFAULT_ROLE
    if user.is_superuser:
        return 'admin'
    groups = set(user.groups.values_list('name', flat=True))
    for role in ROLE_PRECEDENCE:
        if role in groups:
            return role
    return DEFAULT_ROLE


def get_actor(request):
    """Identifier stamped into approved_by / received_by style fields."""
    return request.user.get_username()
