from rest_framework import serializers

from clinic.models import Appointment, Doctor, Patient

from .fields import optional_text


class AppointmentSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Doctor.objects.all())
    appointmentDate = serializers.DateField(source='appointment_date')
    appointmentTime = serializers.TimeField(source='appointment_time')
    type = serializers.ChoiceField(choices=[c for c, _ in Appointment.TYPE_CHOICES], default='consultation')
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], default='scheduled')
    notes = optional_text()


class AppointmentQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=100)
    date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
    patientId = serializers.UUIDField(required=False)
    doctorId = serializers.UUIDField(required=False)
