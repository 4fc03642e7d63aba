"""
Patient views.

CRUD over patients plus the composite record endpoints: the JSON record
snapshot and the PDF medical and vitals reports built from it.  Every
handler passes an explicit session context to the policy instead of
looking at ``request.user.role`` itself.
"""
from __future__ import annotations

from asgiref.sync import async_to_sync
from django.db import transaction
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.text import slugify
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Patient, VitalsRecord
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.fields import ListQuerySerializer, paginate
from ..serializers.patient import PatientSerializer
from ..services.audit import log_action
from ..services.records import (
    OrmRecordSource,
    aggregate_patient_record,
    serialize_profile,
    serialize_vitals,
)
from ..services.reports import build_pdf, patient_report_sections, vitals_report_sections


def pdf_response(pdf: bytes, filename: str) -> HttpResponse:
    resp = HttpResponse(pdf, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    return resp


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patients_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = Patient.objects.all()
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(mobile__icontains=q) | Q(email__icontains=q))
        qs = paginate(qs.order_by('-created_at'), params.validated_data)
        return Response([serialize_profile(p) for p in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = Patient.objects.create(**s.validated_data)
    log_action(user=request.user, action='patient_create', object_type='patient', object_id=patient.id)
    return Response(serialize_profile(patient), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def patient_detail(request, pk):
    ctx = SessionContext.from_request(request)
    patient = get_object_or_404(Patient, pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(serialize_profile(patient))

    enforce(ctx, MANAGE_RECORDS)
    if request.method == 'PUT':
        s = PatientSerializer(patient, data=request.data)
        s.is_valid(raise_exception=True)
        with transaction.atomic():
            for field, value in s.validated_data.items():
                setattr(patient, field, value)
            patient.save()
        log_action(user=request.user, action='patient_update', object_type='patient', object_id=patient.id)
        return Response(serialize_profile(patient))

    # DELETE: clinical history, appointments and payments go with the patient
    patient_id = patient.id
    patient.delete()
    log_action(user=request.user, action='patient_delete', object_type='patient', object_id=patient_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_record(request, pk):
    """Composite snapshot of one patient.

    ``seq`` is echoed back untouched; clients number their requests and
    drop any response whose ``seq`` is older than the last one they sent.
    """
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    snapshot = async_to_sync(aggregate_patient_record)(OrmRecordSource(), pk)
    payload = snapshot.as_dict()
    payload['seq'] = request.query_params.get('seq')
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_report(request, pk):
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    snapshot = async_to_sync(aggregate_patient_record)(OrmRecordSource(), pk)
    pdf = build_pdf(patient_report_sections(snapshot), title='Patient Medical Report')
    name = slugify(snapshot.profile['name']) or 'patient'
    log_action(user=request.user, action='report_export', object_type='patient', object_id=pk,
               detail={'report': 'medical'})
    return pdf_response(pdf, f"patient_report_{name}_{timezone.localdate():%Y%m%d}.pdf")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_vitals_report(request, pk):
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    patient = get_object_or_404(Patient, pk=pk)
    records = VitalsRecord.objects.filter(patient=patient).order_by('-recorded_at', '-created_at')
    pdf = build_pdf(
        vitals_report_sections(serialize_profile(patient), [serialize_vitals(v) for v in records]),
        title='Patient Health Record',
    )
    log_action(user=request.user, action='report_export', object_type='patient', object_id=patient.id,
               detail={'report': 'vitals'})
    return pdf_response(pdf, f"health_records_{slugify(patient.name) or 'patient'}.pdf")
