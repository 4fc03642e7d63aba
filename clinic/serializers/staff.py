from rest_framework import serializers

from clinic.models import StaffMember

from .fields import CleanText, optional_text


class DoctorSerializer(serializers.Serializer):
    name = CleanText(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    mobile = optional_text(max_length=20)
    specialization = optional_text(max_length=255)
    qualification = optional_text(max_length=255)
    experience = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2,
                                               min_value=0, required=False, allow_null=True, default=None)
    bio = optional_text()
    availableDays = optional_text(source='available_days', max_length=255)


class StaffMemberSerializer(serializers.Serializer):
    name = CleanText(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    mobile = optional_text(max_length=20)
    shift = serializers.ChoiceField(choices=[c for c, _ in StaffMember.SHIFT_CHOICES], default='morning')
    joiningDate = serializers.DateField(source='joining_date', required=False)
    address = optional_text()
    emergencyContact = optional_text(source='emergency_contact', max_length=255)
