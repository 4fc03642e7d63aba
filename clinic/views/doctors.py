"""
Doctor directory.

Any authenticated user can browse doctors; adding, editing and removing
them requires the ``manage_doctors`` action.  A doctor still referenced by
appointments, prescriptions or lab orders cannot be deleted.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Doctor
from ..policy import MANAGE_DOCTORS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.fields import ListQuerySerializer, paginate
from ..serializers.staff import DoctorSerializer
from ..services.audit import log_action


def _serialize(d: Doctor) -> dict:
    return {
        'id': str(d.id),
        'name': d.name,
        'email': d.email,
        'mobile': d.mobile,
        'specialization': d.specialization,
        'qualification': d.qualification,
        'experience': d.experience,
        'consultationFee': float(d.consultation_fee) if d.consultation_fee is not None else None,
        'bio': d.bio,
        'availableDays': d.available_days,
        'createdAt': d.created_at.isoformat() if d.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def doctors_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = Doctor.objects.all()
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(specialization__icontains=q))
        qs = paginate(qs.order_by('name'), params.validated_data)
        return Response([_serialize(d) for d in qs])

    enforce(ctx, MANAGE_DOCTORS)
    s = DoctorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = Doctor.objects.create(**s.validated_data)
    log_action(user=request.user, action='doctor_create', object_type='doctor', object_id=doctor.id)
    return Response(_serialize(doctor), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def doctor_detail(request, pk):
    ctx = SessionContext.from_request(request)
    doctor = get_object_or_404(Doctor, pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(doctor))
    enforce(ctx, MANAGE_DOCTORS)
    if request.method == 'PUT':
        s = DoctorSerializer(doctor, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(doctor, field, value)
        doctor.save()
        log_action(user=request.user, action='doctor_update', object_type='doctor', object_id=doctor.id)
        return Response(_serialize(doctor))
    doctor_id = doctor.id
    doctor.delete()
    log_action(user=request.user, action='doctor_delete', object_type='doctor', object_id=doctor_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
