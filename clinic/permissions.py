"""
Permission classes for role based access control.

The classes here are thin DRF adapters around :func:`clinic.policy.evaluate`
so that whole views can be gated declaratively while inline checks in
views and services go through :func:`clinic.policy.enforce`.
"""
from rest_framework.permissions import BasePermission

from .policy import SessionContext, evaluate


def allows(action: str) -> type[BasePermission]:
    """Build a permission class gating a whole view on a policy action."""

    class PolicyPermission(BasePermission):
        message = 'permission denied'

        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            decision = evaluate(SessionContext.from_request(request).role, action)
            if not decision:
                self.message = decision.reason
            return decision.allowed

    PolicyPermission.__name__ = f'Allows_{action}'
    return PolicyPermission
