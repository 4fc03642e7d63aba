"""
Payments, their quick status toggle, summary stats and invoice generation.
"""
from __future__ import annotations

from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Payment
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.billing import PaymentSerializer, PaymentStatusSerializer
from ..serializers.fields import ListQuerySerializer, paginate
from ..services.audit import log_action
from ..services.invoices import generate_invoice
from ..services.records import serialize_billing


def _serialize(p: Payment) -> dict:
    data = serialize_billing(p)
    data['patientName'] = p.patient.name
    return data


def _payment_or_404(pk) -> Payment:
    return get_object_or_404(Payment.objects.select_related('patient').prefetch_related('invoices'), pk=pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def payments_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = Payment.objects.select_related('patient').prefetch_related('invoices')
        if params.validated_data.get('patientId'):
            qs = qs.filter(patient_id=params.validated_data['patientId'])
        status_val = request.query_params.get('status')
        if status_val:
            qs = qs.filter(status=status_val)
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(patient__name__icontains=q) | Q(payment_reference__icontains=q))
        qs = paginate(qs.order_by('-created_at'), params.validated_data)
        return Response([_serialize(p) for p in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = Payment.objects.create(**s.validated_data)
    log_action(user=request.user, action='payment_create', object_type='payment', object_id=payment.id,
               detail={'amount': str(payment.amount), 'status': payment.status})
    return Response(_serialize(payment), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def payment_detail(request, pk):
    ctx = SessionContext.from_request(request)
    payment = _payment_or_404(pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(payment))
    enforce(ctx, MANAGE_RECORDS)
    if request.method == 'PUT':
        s = PaymentSerializer(payment, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(payment, field, value)
        payment.save()
        log_action(user=request.user, action='payment_update', object_type='payment', object_id=payment.id)
        return Response(_serialize(payment))
    payment_id = payment.id
    payment.delete()
    log_action(user=request.user, action='payment_delete', object_type='payment', object_id=payment_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_status(request, pk):
    enforce(SessionContext.from_request(request), MANAGE_RECORDS)
    payment = _payment_or_404(pk)
    s = PaymentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    previous = payment.status
    payment.status = s.validated_data['status']
    payment.save(update_fields=['status'])
    log_action(user=request.user, action='payment_status', object_type='payment', object_id=payment.id,
               detail={'from': previous, 'to': payment.status})
    return Response(_serialize(payment))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_stats(request):
    """Totals and counts of completed and pending payments."""
    enforce(SessionContext.from_request(request), VIEW_RECORDS)
    agg = Payment.objects.aggregate(
        completed_total=Sum('amount', filter=Q(status='completed')),
        completed_count=Count('id', filter=Q(status='completed')),
        pending_total=Sum('amount', filter=Q(status='pending')),
        pending_count=Count('id', filter=Q(status='pending')),
    )
    return Response({
        'totalRevenue': float(agg['completed_total'] or Decimal('0')),
        'completedPayments': agg['completed_count'],
        'pendingAmount': float(agg['pending_total'] or Decimal('0')),
        'pendingPayments': agg['pending_count'],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def payment_invoice(request, pk):
    enforce(SessionContext.from_request(request), MANAGE_RECORDS)
    payment = _payment_or_404(pk)
    invoice = generate_invoice(payment, user=request.user)
    return Response({
        'ok': True,
        'id': str(invoice.id),
        'invoiceNumber': invoice.invoice_number,
        'url': invoice.document.url,
        'paymentId': str(payment.id),
    }, status=status.HTTP_201_CREATED)
