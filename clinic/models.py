"""
Database models for the hospital administration backend.

These models capture the records the administrative screens work with:
patients and their clinical history (vitals, prescriptions, lab tests),
the people who treat them (doctors, reception staff), scheduling,
billing (payments and the invoices generated from them) and the
medicine inventory.  Field names mirror the JSON keys the front-end
already uses so that serialization stays a thin layer.
"""
from __future__ import annotations

import datetime
import os
import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Custom user model carrying the role used by the policy layer.

    ``admin`` is the elevated role; ``staff`` and ``user`` are limited
    roles with progressively fewer management actions.
    """
    ROLE_ADMIN = 'admin'
    ROLE_STAFF = 'staff'
    ROLE_USER = 'user'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_STAFF, 'Staff'),
        (ROLE_USER, 'User'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_USER)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """Root entity referenced by most other records."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    # Uniqueness among patients is checked on write, blanks are allowed
    mobile = models.CharField(max_length=20, blank=True, db_index=True)
    gender = models.CharField(max_length=20, blank=True)
    birth_date = models.DateField(null=True, blank=True)
    blood_group = models.CharField(max_length=5, blank=True)
    address = models.TextField(blank=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    medical_history = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Doctor(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    mobile = models.CharField(max_length=20, blank=True)
    specialization = models.CharField(max_length=255, blank=True)
    qualification = models.CharField(max_length=255, blank=True)
    experience = models.PositiveIntegerField(null=True, blank=True, help_text="Years of practice")
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    bio = models.TextField(blank=True)
    available_days = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Dr. {self.name}"


class StaffMember(models.Model):
    """Reception staff member."""
    SHIFT_CHOICES = [
        ('morning', 'Morning'),
        ('afternoon', 'Afternoon'),
        ('night', 'Night'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    mobile = models.CharField(max_length=20, blank=True)
    shift = models.CharField(max_length=10, choices=SHIFT_CHOICES, default='morning')
    joining_date = models.DateField(default=datetime.date.today)
    address = models.TextField(blank=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.shift})"


class Appointment(models.Model):
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow_up', 'Follow Up'),
        ('emergency', 'Emergency'),
    ]
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No Show'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='appointments')
    appointment_date = models.DateField(db_index=True)
    appointment_time = models.TimeField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='consultation')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['appointment_date', 'appointment_time'], name='appt_date_time_idx'),
            models.Index(fields=['created_at'], name='appt_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.patient_id} with {self.doctor_id} on {self.appointment_date:%F}"


class Prescription(models.Model):
    """A prescription with an ordered list of medicines.

    ``medicines`` holds dicts with ``name``, ``dosage``, ``frequency``,
    ``duration`` and ``instructions``; only presence of the keys is checked.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='prescriptions')
    prescription_date = models.DateField(default=datetime.date.today)
    diagnosis = models.TextField(blank=True)
    symptoms = models.TextField(blank=True)
    medicines = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    follow_up_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Rx {self.patient_id} {self.prescription_date:%F}"


class LabTest(models.Model):
    """Catalogue entry for a kind of lab test (e.g. CBC, lipid panel)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


def _lab_report_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    return f"lab-reports/{instance.id}_{uuid.uuid4().hex[:8]}{ext}"


class PatientLabTest(models.Model):
    """A lab test ordered for a patient.

    Status transitions are unconstrained: any permitted actor may set any
    value.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='lab_tests')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.PROTECT, related_name='lab_tests')
    lab_test = models.ForeignKey(LabTest, on_delete=models.PROTECT, related_name='orders')
    test_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    notes = models.TextField(blank=True)
    report = models.FileField(upload_to=_lab_report_upload, max_length=512, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.lab_test_id} for {self.patient_id} ({self.status})"


class VitalsRecord(models.Model):
    """A set of vital signs taken at one point in time.

    ``bmi`` is derived once at insert time and never recomputed.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='vitals')
    recorded_at = models.DateTimeField(default=timezone.now)
    heart_rate = models.PositiveIntegerField(null=True, blank=True)
    blood_pressure_systolic = models.PositiveIntegerField(null=True, blank=True)
    blood_pressure_diastolic = models.PositiveIntegerField(null=True, blank=True)
    weight = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True, help_text="kg")
    height = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True, help_text="cm")
    temperature = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text="°C")
    oxygen_saturation = models.PositiveIntegerField(null=True, blank=True)
    bmi = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'recorded_at'], name='vitals_patient_recorded_idx')]

    def __str__(self) -> str:
        return f"Vitals {self.patient_id} @ {self.recorded_at:%F %T}"


class Payment(models.Model):
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('online', 'Online'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=10, choices=METHOD_CHOICES, default='cash')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending', db_index=True)
    payment_reference = models.CharField(max_length=255, blank=True)
    payment_notes = models.TextField(blank=True)
    payment_date = models.DateField(default=datetime.date.today, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['created_at'], name='payment_created_idx')]

    def __str__(self) -> str:
        return f"{self.amount} from {self.patient_id} ({self.status})"


def _invoice_upload(instance, filename: str) -> str:
    return f"invoices/{filename}"


class Invoice(models.Model):
    """Document generated from a Payment; never authoritative on its own."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='invoices')
    invoice_number = models.CharField(max_length=32, db_index=True)
    document = models.FileField(upload_to=_invoice_upload, max_length=512, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.invoice_number


class InventoryItem(models.Model):
    """A medicine stocked by the hospital pharmacy."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    manufacturer = models.CharField(max_length=255, blank=True)
    stock_quantity = models.IntegerField(default=0)
    unit = models.CharField(max_length=50, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    reorder_level = models.IntegerField(default=10)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_low_stock(self) -> bool:
        # inclusive boundary: at the reorder level already counts as low
        return self.stock_quantity <= self.reorder_level

    def __str__(self) -> str:
        return f"{self.name} ({self.stock_quantity} {self.unit})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
