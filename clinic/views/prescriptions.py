"""
Prescriptions and their printable PDF.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.text import slugify
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Prescription
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.clinical import PrescriptionSerializer
from ..serializers.fields import ListQuerySerializer, paginate
from ..services.audit import log_action
from ..services.records import serialize_prescription, serialize_profile
from ..services.reports import build_pdf, hospital_letterhead, prescription_sections
from .patients import pdf_response


def _serialize(rx: Prescription) -> dict:
    data = serialize_prescription(rx)
    data['patientName'] = rx.patient.name
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def prescriptions_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = Prescription.objects.select_related('patient', 'doctor')
        patient_id = params.validated_data.get('patientId')
        if patient_id:
            qs = qs.filter(patient_id=patient_id)
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(patient__name__icontains=q) | Q(doctor__name__icontains=q) | Q(diagnosis__icontains=q))
        qs = paginate(qs.order_by('-prescription_date', '-created_at'), params.validated_data)
        return Response([_serialize(rx) for rx in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rx = Prescription.objects.create(**s.validated_data)
    log_action(user=request.user, action='prescription_create', object_type='prescription', object_id=rx.id)
    return Response(_serialize(rx), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk):
    ctx = SessionContext.from_request(request)
    rx = get_object_or_404(Prescription.objects.select_related('patient', 'doctor'), pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(rx))
    enforce(ctx, MANAGE_RECORDS)
    if request.method == 'PUT':
        s = PrescriptionSerializer(rx, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(rx, field, value)
        rx.save()
        log_action(user=request.user, action='prescription_update', object_type='prescription', object_id=rx.id)
        return Response(_serialize(rx))
    rx_id = rx.id
    rx.delete()
    log_action(user=request.user, action='prescription_delete', object_type='prescription', object_id=rx_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def prescription_pdf(request, pk):
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    rx = get_object_or_404(Prescription.objects.select_related('patient', 'doctor'), pk=pk)
    title, subtitles = hospital_letterhead()
    pdf = build_pdf(
        prescription_sections(serialize_prescription(rx), serialize_profile(rx.patient)),
        title=title, subtitles=subtitles,
    )
    filename = f"prescription_{slugify(rx.patient.name) or 'patient'}_{rx.prescription_date:%Y%m%d}.pdf"
    return pdf_response(pdf, filename)
