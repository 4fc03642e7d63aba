from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Invoice
from ..policy import VIEW_RECORDS, SessionContext, enforce
from ..serializers.fields import ListQuerySerializer, paginate


def _serialize(inv: Invoice) -> dict:
    p = inv.payment
    return {
        'id': str(inv.id),
        'invoiceNumber': inv.invoice_number,
        'url': inv.document.url if inv.document else None,
        'createdAt': inv.created_at.isoformat() if inv.created_at else None,
        'paymentId': str(p.id),
        'amount': float(p.amount),
        'paymentMethod': p.payment_method,
        'paymentStatus': p.status,
        'paymentDate': p.payment_date.isoformat() if p.payment_date else None,
        'patientId': str(p.patient_id),
        'patientName': p.patient.name,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoices_list(request):
    """Invoice history, newest first, searchable by number or patient name."""
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    params = ListQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    qs = Invoice.objects.select_related('payment', 'payment__patient')
    if params.validated_data.get('patientId'):
        qs = qs.filter(payment__patient_id=params.validated_data['patientId'])
    q = (params.validated_data.get('q') or '').strip()
    if q:
        qs = qs.filter(Q(invoice_number__icontains=q) | Q(payment__patient__name__icontains=q))
    qs = paginate(qs.order_by('-created_at'), params.validated_data)
    return Response([_serialize(inv) for inv in qs])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def invoice_detail(request, pk):
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    inv = get_object_or_404(Invoice.objects.select_related('payment', 'payment__patient'), pk=pk)
    return Response(_serialize(inv))
