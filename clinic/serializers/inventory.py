from rest_framework import serializers

from .fields import CleanText, optional_text


class InventoryItemSerializer(serializers.Serializer):
    name = CleanText(max_length=255)
    manufacturer = optional_text(max_length=255)
    stockQuantity = serializers.IntegerField(source='stock_quantity', min_value=0, default=0)
    unit = optional_text(max_length=50)
    batchNumber = optional_text(source='batch_number', max_length=100)
    expiryDate = serializers.DateField(source='expiry_date', required=False, allow_null=True, default=None)
    reorderLevel = serializers.IntegerField(source='reorder_level', min_value=0, default=10)
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=10, decimal_places=2, min_value=0,
                                         required=False, allow_null=True, default=None)
