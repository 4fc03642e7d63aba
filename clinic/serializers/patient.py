from rest_framework import serializers

from clinic.models import Patient

from .fields import CleanText, optional_text


class PatientSerializer(serializers.Serializer):
    """Editable patient fields; a PUT overwrites every one of them."""
    name = CleanText(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    mobile = optional_text(max_length=20)
    gender = optional_text(max_length=20)
    birthDate = serializers.DateField(source='birth_date', required=False, allow_null=True, default=None)
    bloodGroup = optional_text(source='blood_group', max_length=5)
    address = optional_text()
    emergencyContact = optional_text(source='emergency_contact', max_length=255)
    medicalHistory = optional_text(source='medical_history')

    def validate_name(self, v):
        if len(v) < 2:
            raise serializers.ValidationError('name must be at least 2 characters')
        return v

    def validate_mobile(self, v):
        if not v:
            return v
        qs = Patient.objects.filter(mobile=v)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('a patient with this mobile number already exists')
        return v
