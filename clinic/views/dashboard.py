"""
Dashboard endpoint.

Returns the counts, activity feed and upcoming appointments shown on the
first screen after login.  Revenue is only present for roles allowed to
view it; others get ``revenueLocked: true`` and no revenue query is run.
"""
from __future__ import annotations

from asgiref.sync import async_to_sync
from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import allows
from ..policy import VIEW_RECORDS, SessionContext
from ..services.dashboard import OrmDashboardSource, summarize_dashboard


@api_view(['GET'])
@permission_classes([IsAuthenticated, allows(VIEW_RECORDS)])
def dashboard(request):
    ctx = SessionContext.from_request(request)
    summary = async_to_sync(summarize_dashboard)(
        ctx, OrmDashboardSource(), timezone.localdate(), window=settings.DASHBOARD_WINDOW,
    )
    return Response(summary.as_dict())
