from rest_framework import serializers

from clinic.models import Patient, Payment

from .fields import optional_text


class PaymentSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    paymentMethod = serializers.ChoiceField(source='payment_method',
                                            choices=[c for c, _ in Payment.METHOD_CHOICES], default='cash')
    status = serializers.ChoiceField(choices=[c for c, _ in Payment.STATUS_CHOICES], default='pending')
    paymentReference = optional_text(source='payment_reference', max_length=255)
    paymentNotes = optional_text(source='payment_notes')
    paymentDate = serializers.DateField(source='payment_date', required=False)


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Payment.STATUS_CHOICES])
