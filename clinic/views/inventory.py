"""
Medicine inventory.

``isLowStock`` is derived on every read from the item's stock and reorder
level; it is never stored.
"""
from __future__ import annotations

from django.db.models import F, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import InventoryItem
from ..policy import MANAGE_RECORDS, VIEW_RECORDS, SessionContext, enforce
from ..serializers.fields import ListQuerySerializer, paginate
from ..serializers.inventory import InventoryItemSerializer
from ..services.audit import log_action


def _serialize(item: InventoryItem) -> dict:
    return {
        'id': str(item.id),
        'name': item.name,
        'manufacturer': item.manufacturer,
        'stockQuantity': item.stock_quantity,
        'unit': item.unit,
        'batchNumber': item.batch_number,
        'expiryDate': item.expiry_date.isoformat() if item.expiry_date else None,
        'reorderLevel': item.reorder_level,
        'unitPrice': float(item.unit_price) if item.unit_price is not None else None,
        'isLowStock': item.is_low_stock,
        'createdAt': item.created_at.isoformat() if item.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inventory_list(request):
    ctx = SessionContext.from_request(request)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        params = ListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        qs = InventoryItem.objects.all()
        q = (params.validated_data.get('q') or '').strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(manufacturer__icontains=q) | Q(batch_number__icontains=q))
        if request.query_params.get('lowStock') in ('1', 'true'):
            qs = qs.filter(stock_quantity__lte=F('reorder_level'))
        qs = paginate(qs.order_by('name'), params.validated_data)
        return Response([_serialize(i) for i in qs])

    enforce(ctx, MANAGE_RECORDS)
    s = InventoryItemSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = InventoryItem.objects.create(**s.validated_data)
    log_action(user=request.user, action='inventory_create', object_type='inventory', object_id=item.id)
    return Response(_serialize(item), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def inventory_detail(request, pk):
    ctx = SessionContext.from_request(request)
    item = get_object_or_404(InventoryItem, pk=pk)
    if request.method == 'GET':
        enforce(ctx, VIEW_RECORDS)
        return Response(_serialize(item))
    enforce(ctx, MANAGE_RECORDS)
    if request.method == 'PUT':
        s = InventoryItemSerializer(item, data=request.data)
        s.is_valid(raise_exception=True)
        for field, value in s.validated_data.items():
            setattr(item, field, value)
        item.save()
        log_action(user=request.user, action='inventory_update', object_type='inventory', object_id=item.id,
                   detail={'stockQuantity': item.stock_quantity})
        return Response(_serialize(item))
    item_id = item.id
    item.delete()
    log_action(user=request.user, action='inventory_delete', object_type='inventory', object_id=item_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
