"""
URL mappings for the clinic API.

Paths carry no trailing slash (``APPEND_SLASH`` is off).  Every route is
named so tests and clients can ``reverse()`` it.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, me_view
from .views import (
    appointments,
    dashboard,
    doctors,
    health,
    inventory,
    invoices,
    lab_tests,
    patients,
    payments,
    prescriptions,
    profile,
    staff,
    vitals,
)

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # auth
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/profile', profile.profile_view, name='profile_view'),
    path('api/auth/password', profile.password_change_view, name='password_change_view'),

    path('api/dashboard', dashboard.dashboard, name='dashboard'),

    # patients and composite records
    path('api/patients', patients.patients_list, name='patients_list'),
    path('api/patients/<uuid:pk>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<uuid:pk>/record', patients.patient_record, name='patient_record'),
    path('api/patients/<uuid:pk>/report', patients.patient_report, name='patient_report'),
    path('api/patients/<uuid:pk>/vitals/report', patients.patient_vitals_report, name='patient_vitals_report'),

    path('api/doctors', doctors.doctors_list, name='doctors_list'),
    path('api/doctors/<uuid:pk>', doctors.doctor_detail, name='doctor_detail'),
    path('api/staff', staff.staff_list, name='staff_list'),
    path('api/staff/<uuid:pk>', staff.staff_detail, name='staff_detail'),

    path('api/appointments', appointments.appointments_list, name='appointments_list'),
    path('api/appointments/<uuid:pk>', appointments.appointment_detail, name='appointment_detail'),

    path('api/prescriptions', prescriptions.prescriptions_list, name='prescriptions_list'),
    path('api/prescriptions/<uuid:pk>', prescriptions.prescription_detail, name='prescription_detail'),
    path('api/prescriptions/<uuid:pk>/pdf', prescriptions.prescription_pdf, name='prescription_pdf'),

    # lab tests
    path('api/lab-tests', lab_tests.lab_tests_list, name='lab_tests_list'),
    path('api/lab-tests/<uuid:pk>', lab_tests.lab_test_detail, name='lab_test_detail'),
    path('api/lab-tests/orders', lab_tests.lab_orders_list, name='lab_orders_list'),
    path('api/lab-tests/orders/<uuid:pk>', lab_tests.lab_order_detail, name='lab_order_detail'),
    path('api/lab-tests/orders/<uuid:pk>/status', lab_tests.lab_order_status, name='lab_order_status'),
    path('api/lab-tests/orders/<uuid:pk>/report', lab_tests.lab_order_report, name='lab_order_report'),

    path('api/vitals', vitals.vitals_list, name='vitals_list'),
    path('api/vitals/<uuid:pk>', vitals.vitals_detail, name='vitals_detail'),

    # billing
    path('api/payments', payments.payments_list, name='payments_list'),
    path('api/payments/stats', payments.payment_stats, name='payment_stats'),
    path('api/payments/<uuid:pk>', payments.payment_detail, name='payment_detail'),
    path('api/payments/<uuid:pk>/status', payments.payment_status, name='payment_status'),
    path('api/payments/<uuid:pk>/invoice', payments.payment_invoice, name='payment_invoice'),
    path('api/invoices', invoices.invoices_list, name='invoices_list'),
    path('api/invoices/<uuid:pk>', invoices.invoice_detail, name='invoice_detail'),

    path('api/inventory', inventory.inventory_list, name='inventory_list'),
    path('api/inventory/<uuid:pk>', inventory.inventory_detail, name='inventory_detail'),
]
