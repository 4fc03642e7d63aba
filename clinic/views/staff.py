"""
Reception staff management; writes are limited to the elevated role.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import StaffMember
from ..policy import MANAGE_STAFF, VIEW_RECORDS, SessionContext, enforce
from ..serializers.fields import ListQuerySerializer, paginate
from ..serializers.staff import StaffMemberSerializer
from ..services.audit import log_action


def _serialize(m: StaffMember) -> dict:
    return {
        'id': str(m.id),
        'name': m.name,
        'email': m.email,
        'mobile': m.mobile,
        'shift': m.shift,
        'joiningDate': m.joining_date.isoformat() if m.joining_date else None,
        'address': m.address,
        'emergencyContact': m.emergency_contact,
        'createdAt': m.created_at.isoformat() if m.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def staff_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = StaffMember.objects.all()
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(mobile__icontains=q) | Q(email__icontains=q))
        qs = paginate(qs.order_by('-created_at'), params.validated_data)
        return Response([_serialize(m) for m in qs])

    enforce(ctx, MANAGE_STAFF)
    s = StaffMemberSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    member = StaffMember.objects.create(**s.validated_data)
    log_action(user=request.user, action='staff_create', object_type='staff', object_id=member.id)
    return Response(_serialize(member), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def staff_detail(request, pk):
    ctx = SessionContext.from_request(request)
    member = get_object_or_404(StaffMember, pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(member))
    enforce(ctx, MANAGE_STAFF)
    if request.method == 'PUT':
        s = StaffMemberSerializer(member, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(member, field, value)
        member.save()
        log_action(user=request.user, action='staff_update', object_type='staff', object_id=member.id)
        return Response(_serialize(member))
    member_id = member.id
    member.delete()
    log_action(user=request.user, action='staff_delete', object_type='staff', object_id=member_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
