"""
Django admin registrations for the clinic models.

Lets superusers inspect and correct records through ``/admin/`` during
development and support work.
"""

from django.contrib import admin

from .models import (
    User,
    Patient,
    Doctor,
    StaffMember,
    Appointment,
    Prescription,
    LabTest,
    PatientLabTest,
    VitalsRecord,
    Payment,
    Invoice,
    InventoryItem,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'email', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('name', 'mobile', 'gender', 'blood_group', 'created_at')
    search_fields = ('name', 'mobile', 'email')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('name', 'specialization', 'mobile', 'consultation_fee')
    search_fields = ('name', 'specialization')


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ('name', 'shift', 'mobile', 'joining_date')
    list_filter = ('shift',)
    search_fields = ('name', 'mobile', 'email')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('patient', 'doctor', 'appointment_date', 'appointment_time', 'type', 'status')
    list_filter = ('status', 'type', 'appointment_date')
    search_fields = ('patient__name', 'doctor__name')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('patient', 'doctor', 'prescription_date', 'follow_up_date')
    search_fields = ('patient__name', 'doctor__name', 'diagnosis')


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'created_at')
    search_fields = ('name',)


@admin.register(PatientLabTest)
class PatientLabTestAdmin(admin.ModelAdmin):
    list_display = ('patient', 'lab_test', 'doctor', 'test_date', 'status')
    list_filter = ('status',)
    search_fields = ('patient__name', 'lab_test__name')


@admin.register(VitalsRecord)
class VitalsRecordAdmin(admin.ModelAdmin):
    list_display = ('patient', 'recorded_at', 'heart_rate', 'bmi')
    search_fields = ('patient__name',)
    readonly_fields = ('bmi',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('patient', 'amount', 'payment_method', 'status', 'payment_date')
    list_filter = ('status', 'payment_method')
    search_fields = ('patient__name', 'payment_reference')


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'payment', 'created_at')
    search_fields = ('invoice_number', 'payment__patient__name')


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'manufacturer', 'stock_quantity', 'reorder_level', 'expiry_date')
    search_fields = ('name', 'manufacturer', 'batch_number')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__username')
