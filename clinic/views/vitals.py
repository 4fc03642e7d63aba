"""
Vital signs history.

Records are insert-only: there is no update endpoint, so the BMI derived
when a record is created always matches its weight and height.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import VitalsRecord
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.clinical import VitalsSerializer
from ..serializers.fields import ListQuerySerializer, paginate
from ..services.audit import log_action
from ..services.records import serialize_vitals
from ..services.vitals import record_vitals


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vitals_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = VitalsRecord.objects.all()
        if params.validated_data.get('patientId'):
            qs = qs.filter(patient_id=params.validated_data['patientId'])
        qs = paginate(qs.order_by('-recorded_at', '-created_at'), params.validated_data)
        return Response([serialize_vitals(v) for v in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = VitalsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    patient = data.pop('patient')
    record = record_vitals(patient, **data)
    log_action(user=request.user, action='vitals_create', object_type='vitals', object_id=record.id,
               detail={'patientId': str(patient.id)})
    return Response(serialize_vitals(record), status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def vitals_detail(request, pk):
    ctx = SessionContext.from_request(request)
    record = get_object_or_404(VitalsRecord, pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(serialize_vitals(record))
    enforce(ctx, MANAGE_RECORDS)
    record_id = record.id
    record.delete()
    log_action(user=request.user, action='vitals_delete', object_type='vitals', object_id=record_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
