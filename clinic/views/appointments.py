from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.appointment import AppointmentQuerySerializer, AppointmentSerializer
from ..services.audit import log_action


def _serialize(a: Appointment) -> dict:
    return {
        'id': str(a.id),
        'patientId': str(a.patient_id),
        'patientName': a.patient.name,
        'doctorId': str(a.doctor_id),
        'doctorName': a.doctor.name,
        'doctorSpecialization': a.doctor.specialization,
        'appointmentDate': a.appointment_date.isoformat(),
        'appointmentTime': a.appointment_time.strftime('%H:%M'),
        'type': a.type,
        'status': a.status,
        'notes': a.notes,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = AppointmentQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        vd = params.validated_data
        qs = Appointment.objects.select_related('patient', 'doctor')
        if vd.get('q'):
            qs = qs.filter(Q(patient__name__icontains=vd['q']) | Q(doctor__name__icontains=vd['q']))
        if vd.get('date'):
            qs = qs.filter(appointment_date=vd['date'])
        if vd.get('status'):
            qs = qs.filter(status=vd['status'])
        if vd.get('patientId'):
            qs = qs.filter(patient_id=vd['patientId'])
        if vd.get('doctorId'):
            qs = qs.filter(doctor_id=vd['doctorId'])
        qs = qs.order_by('-appointment_date', '-appointment_time')
        return Response([_serialize(a) for a in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = AppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = Appointment.objects.create(**s.validated_data)
    log_action(user=request.user, action='appointment_create', object_type='appointment', object_id=appt.id)
    return Response(_serialize(appt), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk):
    ctx = SessionContext.from_request(request)
    appt = get_object_or_404(Appointment.objects.select_related('patient', 'doctor'), pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(appt))
    enforce(ctx, MANAGE_RECORDS)
    if request.method == 'PUT':
        s = AppointmentSerializer(appt, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(appt, field, value)
        appt.save()
        log_action(user=request.user, action='appointment_update', object_type='appointment', object_id=appt.id,
                   detail={'status': appt.status})
        return Response(_serialize(appt))
    appt_id = appt.id
    appt.delete()
    log_action(user=request.user, action='appointment_delete', object_type='appointment', object_id=appt_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
