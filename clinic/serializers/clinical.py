from decimal import Decimal

from rest_framework import serializers

from clinic.models import Doctor, LabTest, Patient, PatientLabTest

from .fields import CleanText, optional_text


class MedicineSerializer(serializers.Serializer):
    """One prescribed medicine; only presence of the keys is checked."""
    name = CleanText(max_length=255)
    dosage = CleanText(allow_blank=True, max_length=255)
    frequency = CleanText(allow_blank=True, max_length=255)
    duration = CleanText(allow_blank=True, max_length=255)
    instructions = CleanText(allow_blank=True)


class PrescriptionSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Doctor.objects.all())
    prescriptionDate = serializers.DateField(source='prescription_date', required=False)
    diagnosis = optional_text()
    symptoms = optional_text()
    medicines = serializers.ListField(child=MedicineSerializer(), default=list)
    notes = optional_text()
    followUpDate = serializers.DateField(source='follow_up_date', required=False, allow_null=True, default=None)

    def validate_medicines(self, v):
        return [dict(m) for m in v]


class LabTestSerializer(serializers.Serializer):
    name = CleanText(max_length=255)
    description = optional_text()


class LabOrderSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    doctorId = serializers.PrimaryKeyRelatedField(source='doctor', queryset=Doctor.objects.all(),
                                                  required=False, allow_null=True, default=None)
    labTestId = serializers.PrimaryKeyRelatedField(source='lab_test', queryset=LabTest.objects.all())
    testDate = serializers.DateField(source='test_date', required=False, allow_null=True, default=None)
    status = serializers.ChoiceField(choices=[c for c, _ in PatientLabTest.STATUS_CHOICES], default='pending')
    notes = optional_text()


class LabOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in PatientLabTest.STATUS_CHOICES])


class VitalsSerializer(serializers.Serializer):
    patientId = serializers.PrimaryKeyRelatedField(source='patient', queryset=Patient.objects.all())
    recordedAt = serializers.DateTimeField(source='recorded_at', required=False)
    heartRate = serializers.IntegerField(source='heart_rate', required=False, allow_null=True, min_value=0, max_value=400)
    bloodPressureSystolic = serializers.IntegerField(source='blood_pressure_systolic', required=False,
                                                     allow_null=True, min_value=0, max_value=400)
    bloodPressureDiastolic = serializers.IntegerField(source='blood_pressure_diastolic', required=False,
                                                      allow_null=True, min_value=0, max_value=400)
    # bounds keep the derived bmi within its column (500 kg at 30 cm is 5555.56)
    weight = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=Decimal('0.5'), max_value=500,
                                      required=False, allow_null=True, help_text="kg")
    height = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=30, max_value=300,
                                      required=False, allow_null=True, help_text="cm")
    temperature = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    oxygenSaturation = serializers.IntegerField(source='oxygen_saturation', required=False, allow_null=True,
                                                min_value=0, max_value=100)
    notes = optional_text()
