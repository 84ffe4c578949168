"""
Access rules shared by the API apps.

Operators are Django staff users; everybody else is a customer.
"""
from rest_framework import permissions


def is_operator(user) -> bool:
    return bool(user and user.is_authenticated and user.is_staff)


class IsOperator(permissions.BasePermission):
    """Allow only staff users (shop admins and super admins)."""
    message = 'Operator access required.'

    def has_permission(self, request, view):
        return is_operator(request.user)


class IsOperatorOrReadOnly(permissions.BasePermission):
    """Authenticated users may read; only operators may write."""

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_operator(request.user)
