"""
Management command to populate the database with sample data.
"""
import random
from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic.models import (
    Appointment, Doctor, InventoryItem, LabTest, Patient, PatientLabTest,
    Payment, Prescription, StaffMember, User,
)
from clinic.services.vitals import record_vitals


class Command(BaseCommand):
    help = 'Populate database with sample data'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=None, help='random seed for repeatable data')

    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(options['seed'])
        self.stdout.write('Creating sample data...')

        self.create_users()
        doctors = self.create_doctors()
        self.create_staff()
        patients = self.create_patients()
        self.create_appointments(patients, doctors)
        self.create_prescriptions(patients, doctors)
        self.create_vitals(patients)
        tests = self.create_lab_tests()
        self.create_lab_orders(patients, doctors, tests)
        self.create_payments(patients)
        self.create_inventory()

        self.stdout.write(self.style.SUCCESS('Sample data created.'))

    def create_users(self):
        for username, role in [('admin1', 'admin'), ('staff1', 'staff'), ('user1', 'user')]:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={
                    'email': f'{username}@hospital.local',
                    'password': make_password('123456'),
                    'role': role,
                    'first_name': username.capitalize(),
                },
            )
            self.stdout.write(f'User: {user.username} ({user.role})')

    def create_doctors(self):
        data = [
            ('Asha Menon', 'Cardiology', 'MD, DM Cardiology', 12, '800.00'),
            ('Rahul Verma', 'Orthopedics', 'MS Ortho', 8, '600.00'),
            ('Priya Nair', 'Pediatrics', 'MD Pediatrics', 10, '500.00'),
            ('Vikram Rao', 'General Medicine', 'MBBS, MD', 15, '400.00'),
        ]
        doctors = []
        for name, spec, qual, years, fee in data:
            doctor, _ = Doctor.objects.get_or_create(
                name=name,
                defaults={
                    'specialization': spec,
                    'qualification': qual,
                    'experience': years,
                    'consultation_fee': Decimal(fee),
                    'available_days': 'Mon,Tue,Wed,Thu,Fri',
                    'email': f"{name.split()[0].lower()}@hospital.local",
                },
            )
            doctors.append(doctor)
            self.stdout.write(f'Doctor: {doctor.name}')
        return doctors

    def create_staff(self):
        for name, shift in [('Meena Das', 'morning'), ('Arjun Pillai', 'afternoon'), ('Kavya Iyer', 'night')]:
            StaffMember.objects.get_or_create(
                name=name,
                defaults={'shift': shift, 'mobile': f'98{random.randint(10000000, 99999999)}'},
            )
            self.stdout.write(f'Staff: {name} ({shift})')

    def create_patients(self):
        names = ['Anil Kumar', 'Sunita Sharma', 'Rohan Gupta', 'Fatima Sheikh', 'Joseph Mathew', 'Lakshmi Reddy']
        blood_groups = ['A+', 'B+', 'O+', 'AB+', 'O-']
        patients = []
        for i, name in enumerate(names):
            patient, _ = Patient.objects.get_or_create(
                name=name,
                defaults={
                    'gender': 'male' if i % 2 == 0 else 'female',
                    'mobile': f'90000000{i:02d}',
                    'blood_group': random.choice(blood_groups),
                    'birth_date': timezone.localdate() - timedelta(days=365 * random.randint(20, 75)),
                    'address': f'{10 + i} Lake Road',
                    'medical_history': random.choice(['', 'Hypertension', 'Type 2 diabetes', 'Asthma']),
                },
            )
            patients.append(patient)
            self.stdout.write(f'Patient: {patient.name}')
        return patients

    def create_appointments(self, patients, doctors):
        today = timezone.localdate()
        for patient in patients:
            for offset in (-7, 0, random.randint(1, 14)):
                Appointment.objects.get_or_create(
                    patient=patient,
                    appointment_date=today + timedelta(days=offset),
                    defaults={
                        'doctor': random.choice(doctors),
                        'appointment_time': time(hour=random.randint(9, 16), minute=random.choice([0, 30])),
                        'type': random.choice(['consultation', 'follow_up']),
                        'status': 'completed' if offset < 0 else 'scheduled',
                    },
                )

    def create_prescriptions(self, patients, doctors):
        for patient in patients[:4]:
            if patient.prescriptions.exists():
                continue
            Prescription.objects.create(
                patient=patient,
                doctor=random.choice(doctors),
                diagnosis=random.choice(['Viral fever', 'Seasonal allergy', 'Back pain']),
                symptoms='Reported during consultation',
                medicines=[
                    {'name': 'Paracetamol', 'dosage': '500mg', 'frequency': 'Twice daily',
                     'duration': '5 days', 'instructions': 'After food'},
                ],
                follow_up_date=timezone.localdate() + timedelta(days=7),
            )

    def create_vitals(self, patients):
        for patient in patients:
            if patient.vitals.exists():
                continue
            for days_ago in (30, 7, 1):
                record_vitals(
                    patient,
                    recorded_at=timezone.now() - timedelta(days=days_ago),
                    heart_rate=random.randint(60, 95),
                    blood_pressure_systolic=random.randint(110, 140),
                    blood_pressure_diastolic=random.randint(70, 90),
                    weight=Decimal(random.randint(50, 95)),
                    height=Decimal(random.randint(150, 185)),
                    temperature=Decimal('36.8'),
                    oxygen_saturation=random.randint(95, 100),
                )

    def create_lab_tests(self):
        tests = []
        for name, desc in [('Complete Blood Count', 'CBC panel'), ('Lipid Profile', 'Cholesterol panel'),
                           ('HbA1c', 'Glycated haemoglobin')]:
            test, _ = LabTest.objects.get_or_create(name=name, defaults={'description': desc})
            tests.append(test)
        return tests

    def create_lab_orders(self, patients, doctors, tests):
        for patient in patients:
            if patient.lab_tests.exists():
                continue
            PatientLabTest.objects.create(
                patient=patient,
                doctor=random.choice(doctors),
                lab_test=random.choice(tests),
                test_date=timezone.localdate() - timedelta(days=random.randint(0, 10)),
                status=random.choice(['pending', 'in_progress', 'completed']),
            )

    def create_payments(self, patients):
        for patient in patients:
            if patient.payments.exists():
                continue
            for days_ago in (20, 2):
                Payment.objects.create(
                    patient=patient,
                    amount=Decimal(random.choice([400, 600, 800, 1500])),
                    payment_method=random.choice(['cash', 'card', 'online']),
                    status=random.choice(['completed', 'completed', 'pending']),
                    payment_date=timezone.localdate() - timedelta(days=days_ago),
                )

    def create_inventory(self):
        items = [
            ('Paracetamol 500mg', 'Cipla', 500, 'tablets', 100),
            ('Amoxicillin 250mg', 'Sun Pharma', 40, 'capsules', 50),
            ('Cough Syrup', 'Dabur', 20, 'bottles', 20),
            ('Insulin Glargine', 'Biocon', 15, 'vials', 10),
        ]
        for name, maker, qty, unit, reorder in items:
            InventoryItem.objects.get_or_create(
                name=name,
                defaults={
                    'manufacturer': maker,
                    'stock_quantity': qty,
                    'unit': unit,
                    'reorder_level': reorder,
                    'batch_number': f'B{random.randint(1000, 9999)}',
                    'expiry_date': timezone.localdate() + timedelta(days=365),
                    'unit_price': Decimal('2.50'),
                },
            )
