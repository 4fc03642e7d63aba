"""
Role based access policy.

Every permission decision in the app goes through :func:`evaluate`, a pure
function of ``(role, action)``.  Flows receive the caller as an explicit
:class:`SessionContext` instead of reading ``request.user`` themselves, so
the same decision is made whether a check happens in a view, a service or
a test.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rest_framework.exceptions import PermissionDenied

ROLE_ADMIN = 'admin'
ROLE_STAFF = 'staff'
ROLE_USER = 'user'
ROLE_ANONYMOUS = 'anonymous'

ELEVATED_ROLE = ROLE_ADMIN

VIEW_RECORDS = 'view_records'
MANAGE_RECORDS = 'manage_records'
MANAGE_DOCTORS = 'manage_doctors'
MANAGE_STAFF = 'manage_staff'
MANAGE_LAB_TESTS = 'manage_lab_tests'
UPLOAD_LAB_REPORT = 'upload_lab_report'
VIEW_REVENUE = 'view_revenue'

# action -> roles allowed to perform it
RULES: dict[str, frozenset[str]] = {
    VIEW_RECORDS: frozenset({ROLE_ADMIN, ROLE_STAFF, ROLE_USER}),
    MANAGE_RECORDS: frozenset({ROLE_ADMIN, ROLE_STAFF, ROLE_USER}),
    MANAGE_DOCTORS: frozenset({ROLE_ADMIN}),
    MANAGE_STAFF: frozenset({ROLE_ADMIN}),
    MANAGE_LAB_TESTS: frozenset({ROLE_ADMIN, ROLE_STAFF}),
    UPLOAD_LAB_REPORT: frozenset({ROLE_ADMIN, ROLE_STAFF}),
    VIEW_REVENUE: frozenset({ELEVATED_ROLE}),
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ''

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class SessionContext:
    """The current principal and its role, threaded into every flow."""
    principal_id: Optional[int]
    role: str

    @property
    def is_elevated(self) -> bool:
        return self.role == ELEVATED_ROLE

    @classmethod
    def anonymous(cls) -> 'SessionContext':
        return cls(principal_id=None, role=ROLE_ANONYMOUS)

    @classmethod
    def from_request(cls, request) -> 'SessionContext':
        user = getattr(request, 'user', None)
        if not (user and getattr(user, 'is_authenticated', False)):
            return cls.anonymous()
        return cls(principal_id=user.id, role=getattr(user, 'role', None) or ROLE_USER)


def evaluate(role: Optional[str], action: str) -> Decision:
    """Decide whether ``role`` may perform ``action``."""
    if not role or role == ROLE_ANONYMOUS:
        return Decision(False, 'authentication required')
    allowed_roles = RULES.get(action)
    if allowed_roles is None:
        return Decision(False, f'unknown action: {action}')
    if role not in allowed_roles:
        return Decision(False, f'role {role!r} may not {action.replace("_", " ")}')
    return Decision(True)


def enforce(ctx: SessionContext, action: str) -> None:
    """Raise ``PermissionDenied`` with the policy reason when denied."""
    decision = evaluate(ctx.role, action)
    if not decision:
        raise PermissionDenied(decision.reason)

