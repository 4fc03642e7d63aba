"""
Integration tests for the clinic API.

These exercise the endpoints end to end through Django REST framework's
APIClient: CRUD and search, the composite record and report endpoints,
role gating, uploads, invoice generation and the normalised error body.

To run the tests:

```
pytest -q clinic/tests
```
"""
from datetime import date, timedelta, time
from decimal import Decimal

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import (
    Appointment, AuditEvent, Doctor, InventoryItem, Invoice, LabTest, Patient, PatientLabTest,
    Payment, User, VitalsRecord,
)


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin_user = User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')
        self.staff_user = User.objects.create_user(username='staff1', password='P@ssw0rd1', role='staff')
        self.plain_user = User.objects.create_user(username='user1', password='P@ssw0rd1', role='user')
        self.doctor = Doctor.objects.create(name='Asha Menon', specialization='Cardiology')
        self.patient = Patient.objects.create(name='Anil Kumar', mobile='9000000001', gender='male')

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    # ------------------------------------------------------------------
    # patients
    # ------------------------------------------------------------------
    def test_create_and_search_patients(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('patients_list'), {'name': 'Sunita Sharma', 'mobile': '9000000002',
                                                      'bloodGroup': 'B+'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['bloodGroup'], 'B+')
        self.assertTrue(AuditEvent.objects.filter(action='patient_create', object_id=resp.data['id']).exists())

        resp = client.get(reverse('patients_list'), {'q': 'sunita'})
        self.assertEqual([p['name'] for p in resp.data], ['Sunita Sharma'])

    def test_patient_name_markup_is_stripped(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('patients_list'), {'name': '<b>Rohan</b> Gupta'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['name'], 'Rohan Gupta')

    def test_duplicate_mobile_is_a_validation_error(self):
        client = self.authenticate(self.staff_user)
        resp = client.post(reverse('patients_list'), {'name': 'Someone Else', 'mobile': '9000000001'},
                           format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['ok'], False)
        self.assertEqual(resp.data['error']['code'], 'validation_error')
        self.assertIn('mobile', resp.data['error']['message'])

    def test_update_overwrites_editable_fields_and_keeps_own_mobile(self):
        self.patient.address = 'Old Road'
        self.patient.save()
        client = self.authenticate(self.staff_user)
        resp = client.put(reverse('patient_detail', args=[self.patient.id]),
                          {'name': 'Anil Kumar', 'mobile': '9000000001', 'gender': 'male'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.address, '')

    def test_delete_patient_cascades_to_history(self):
        VitalsRecord.objects.create(patient=self.patient, heart_rate=70)
        Payment.objects.create(patient=self.patient, amount=Decimal('10'))
        client = self.authenticate(self.plain_user)
        resp = client.delete(reverse('patient_detail', args=[self.patient.id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(VitalsRecord.objects.exists())
        self.assertFalse(Payment.objects.exists())

    def test_unknown_patient_is_not_found(self):
        client = self.authenticate(self.plain_user)
        resp = client.get('/api/patients/00000000-0000-0000-0000-000000000000')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['error']['code'], 'not_found')

    # ------------------------------------------------------------------
    # composite record and reports
    # ------------------------------------------------------------------
    def test_record_snapshot_echoes_sequence(self):
        VitalsRecord.objects.create(patient=self.patient, heart_rate=70)
        VitalsRecord.objects.create(patient=self.patient, heart_rate=80,
                                    recorded_at=timezone.now() - timedelta(days=1))
        client = self.authenticate(self.plain_user)
        resp = client.get(reverse('patient_record', args=[self.patient.id]), {'seq': '7'})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['seq'], '7')
        self.assertEqual(resp.data['profile']['name'], 'Anil Kumar')
        self.assertEqual([v['heartRate'] for v in resp.data['vitals']], [70, 80])
        self.assertEqual(resp.data['labTests'], [])
        self.assertEqual(resp.data['billing'], [])

    def test_record_for_missing_patient(self):
        client = self.authenticate(self.plain_user)
        resp = client.get('/api/patients/00000000-0000-0000-0000-000000000000/record')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['error']['code'], 'not_found')

    def test_patient_report_is_a_pdf_download(self):
        VitalsRecord.objects.create(patient=self.patient, heart_rate=70, weight=Decimal('70'),
                                    height=Decimal('175'), bmi=Decimal('22.86'))
        client = self.authenticate(self.plain_user)
        resp = client.get(reverse('patient_report', args=[self.patient.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp['Content-Type'], 'application/pdf')
        self.assertIn('attachment;', resp['Content-Disposition'])
        self.assertTrue(resp.content.startswith(b'%PDF'))

    def test_vitals_report_is_a_pdf(self):
        client = self.authenticate(self.plain_user)
        resp = client.get(reverse('patient_vitals_report', args=[self.patient.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.content.startswith(b'%PDF'))

    def test_prescription_pdf(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('prescriptions_list'), {
            'patientId': str(self.patient.id),
            'doctorId': str(self.doctor.id),
            'diagnosis': 'Viral fever',
            'medicines': [{'name': 'Paracetamol', 'dosage': '500mg', 'frequency': 'Twice daily',
                           'duration': '5 days', 'instructions': 'After food'}],
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['medicines'][0]['name'], 'Paracetamol')
        pdf = client.get(reverse('prescription_pdf', args=[resp.data['id']]))
        self.assertEqual(pdf.status_code, status.HTTP_200_OK)
        self.assertTrue(pdf.content.startswith(b'%PDF'))

    def test_prescription_medicine_needs_every_key(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('prescriptions_list'), {
            'patientId': str(self.patient.id),
            'doctorId': str(self.doctor.id),
            'medicines': [{'name': 'Paracetamol'}],
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    # ------------------------------------------------------------------
    # vitals and inventory
    # ------------------------------------------------------------------
    def test_vitals_bmi_is_derived_on_insert(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('vitals_list'), {'patientId': str(self.patient.id), 'weight': '70',
                                                    'height': '175', 'bmi': '10'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['bmi'], 22.86)

    def test_vitals_with_implausible_height_are_rejected(self):
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('vitals_list'), {'patientId': str(self.patient.id), 'weight': '70',
                                                    'height': '1'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error']['code'], 'validation_error')
        self.assertIn('height', resp.data['error']['message'])
        self.assertFalse(VitalsRecord.objects.exists())

    def test_vitals_cannot_be_updated(self):
        rec = VitalsRecord.objects.create(patient=self.patient, heart_rate=70)
        client = self.authenticate(self.admin_user)
        resp = client.put(reverse('vitals_detail', args=[rec.id]), {'heartRate': 90}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_low_stock_filter_and_flag(self):
        InventoryItem.objects.create(name='Paracetamol', stock_quantity=10, reorder_level=10)
        InventoryItem.objects.create(name='Amoxicillin', stock_quantity=11, reorder_level=10)
        client = self.authenticate(self.plain_user)
        resp = client.get(reverse('inventory_list'))
        flags = {i['name']: i['isLowStock'] for i in resp.data}
        self.assertEqual(flags, {'Paracetamol': True, 'Amoxicillin': False})
        resp = client.get(reverse('inventory_list'), {'lowStock': '1'})
        self.assertEqual([i['name'] for i in resp.data], ['Paracetamol'])

    # ------------------------------------------------------------------
    # role gated management
    # ------------------------------------------------------------------
    def test_only_admin_manages_doctors(self):
        payload = {'name': 'Rahul Verma', 'specialization': 'Orthopedics'}
        resp = self.authenticate(self.staff_user).post(reverse('doctors_list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data['error']['code'], 'permission_denied')
        self.assertEqual(resp.data['error']['message'], "role 'staff' may not manage doctors")

        resp = self.authenticate(self.admin_user).post(reverse('doctors_list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

        # reads stay open to every authenticated role
        resp = self.authenticate(self.plain_user).get(reverse('doctors_list'))
        self.assertEqual(len(resp.data), 2)

    def test_only_admin_manages_staff(self):
        payload = {'name': 'Meena Das', 'shift': 'night'}
        resp = self.authenticate(self.staff_user).post(reverse('staff_list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.authenticate(self.admin_user).post(reverse('staff_list'), payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['shift'], 'night')

    def test_lab_tests_need_staff_or_admin(self):
        resp = self.authenticate(self.plain_user).post(reverse('lab_tests_list'), {'name': 'CBC'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.authenticate(self.staff_user).post(reverse('lab_tests_list'), {'name': 'CBC'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

    def test_referenced_doctor_cannot_be_deleted(self):
        Appointment.objects.create(patient=self.patient, doctor=self.doctor, appointment_date=date.today(),
                                   appointment_time=time(10, 0))
        resp = self.authenticate(self.admin_user).delete(reverse('doctor_detail', args=[self.doctor.id]))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data['error']['code'], 'conflict')
        self.assertTrue(Doctor.objects.filter(id=self.doctor.id).exists())

    # ------------------------------------------------------------------
    # lab order status and report upload
    # ------------------------------------------------------------------
    def _order(self) -> PatientLabTest:
        test = LabTest.objects.create(name='CBC')
        return PatientLabTest.objects.create(patient=self.patient, doctor=self.doctor, lab_test=test)

    def test_lab_status_can_be_set_to_any_value(self):
        order = self._order()
        client = self.authenticate(self.staff_user)
        for value in ('completed', 'pending', 'cancelled', 'in_progress'):
            resp = client.post(reverse('lab_order_status', args=[order.id]), {'status': value}, format='json')
            self.assertEqual(resp.status_code, status.HTTP_200_OK)
            self.assertEqual(resp.data['status'], value)

    def test_report_upload_replaces_file_and_completes_order(self):
        order = self._order()
        client = self.authenticate(self.staff_user)
        url = reverse('lab_order_report', args=[order.id])
        first = SimpleUploadedFile('cbc.pdf', b'%PDF-1.4 first', content_type='application/pdf')
        resp = client.post(url, {'file': first}, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, 'completed')
        old_name = order.report.name
        self.assertTrue(old_name.startswith('lab-reports/'))

        second = SimpleUploadedFile('cbc.png', b'\x89PNG\r\n', content_type='image/png')
        resp = client.post(url, {'file': second}, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertNotEqual(order.report.name, old_name)
        self.assertFalse(default_storage.exists(old_name))
        self.assertTrue(default_storage.exists(order.report.name))

    def test_report_upload_rejects_wrong_type_and_size(self):
        order = self._order()
        client = self.authenticate(self.staff_user)
        url = reverse('lab_order_report', args=[order.id])
        text = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        resp = client.post(url, {'file': text}, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        with self.settings(UPLOAD_MAX_MB=0):
            pdf = SimpleUploadedFile('cbc.pdf', b'%PDF-1.4', content_type='application/pdf')
            resp = client.post(url, {'file': pdf}, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')
        self.assertFalse(order.report)

    def test_plain_user_cannot_upload_reports(self):
        order = self._order()
        pdf = SimpleUploadedFile('cbc.pdf', b'%PDF-1.4', content_type='application/pdf')
        resp = self.authenticate(self.plain_user).post(reverse('lab_order_report', args=[order.id]),
                                                       {'file': pdf}, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    # ------------------------------------------------------------------
    # payments and invoices
    # ------------------------------------------------------------------
    def test_invoice_generation_for_completed_payment(self):
        payment = Payment.objects.create(patient=self.patient, amount=Decimal('1500.00'), status='completed')
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('payment_invoice', args=[payment.id]))
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['invoiceNumber'], f"INV-{str(payment.id)[:8]}")
        invoice = Invoice.objects.get(id=resp.data['id'])
        self.assertTrue(invoice.document.name.startswith('invoices/'))
        with invoice.document.open('rb') as fh:
            self.assertTrue(fh.read().startswith(b'%PDF'))

        resp = client.get(reverse('invoices_list'), {'q': 'anil'})
        self.assertEqual([i['invoiceNumber'] for i in resp.data], [invoice.invoice_number])

    def test_invoice_requires_completed_payment(self):
        payment = Payment.objects.create(patient=self.patient, amount=Decimal('10.00'), status='pending')
        resp = self.authenticate(self.plain_user).post(reverse('payment_invoice', args=[payment.id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Invoice.objects.exists())

    def test_payment_status_and_stats(self):
        payment = Payment.objects.create(patient=self.patient, amount=Decimal('100.00'))
        Payment.objects.create(patient=self.patient, amount=Decimal('50.00'), status='completed')
        client = self.authenticate(self.plain_user)
        resp = client.post(reverse('payment_status', args=[payment.id]), {'status': 'completed'}, format='json')
        self.assertEqual(resp.data['status'], 'completed')
        stats = client.get(reverse('payment_stats')).data
        self.assertEqual(stats['totalRevenue'], 150.0)
        self.assertEqual(stats['completedPayments'], 2)
        self.assertEqual(stats['pendingPayments'], 0)

    # ------------------------------------------------------------------
    # dashboard
    # ------------------------------------------------------------------
    def test_dashboard_revenue_only_for_admin(self):
        today = timezone.localdate()
        Payment.objects.create(patient=self.patient, amount=Decimal('200.00'), status='completed',
                               payment_date=today)
        Appointment.objects.create(patient=self.patient, doctor=self.doctor, appointment_date=today,
                                   appointment_time=time(9, 30))

        admin = self.authenticate(self.admin_user).get(reverse('dashboard')).data
        self.assertEqual(admin['monthlyRevenue'], 200.0)
        self.assertFalse(admin['revenueLocked'])
        self.assertEqual(admin['totalPatients'], 1)
        self.assertEqual(admin['todayAppointments'], 1)
        self.assertEqual(len(admin['upcomingAppointments']), 1)
        self.assertEqual({f['type'] for f in admin['recentActivity']}, {'appointment', 'payment'})

        staff = self.authenticate(self.staff_user).get(reverse('dashboard')).data
        self.assertIsNone(staff['monthlyRevenue'])
        self.assertTrue(staff['revenueLocked'])

    def test_anonymous_requests_are_rejected(self):
        resp = APIClient().get(reverse('patients_list'))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data['error']['code'], 'not_authenticated')
