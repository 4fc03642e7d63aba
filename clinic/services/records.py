"""
Patient record aggregation.

Builds a composite snapshot of one patient's profile, clinical history and
billing history.  The sub-fetches are issued together and awaited until
every one of them has settled; the result is all-or-nothing, so a single
failing fetch fails the whole aggregation and no partial snapshot is ever
returned.

The fetches go through a *record source* so the join logic does not depend
on the ORM.  :class:`OrmRecordSource` is the production implementation.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from asgiref.sync import sync_to_async
from django.db.models import F
from rest_framework.exceptions import NotFound

from clinic.exceptions import BackendUnavailable
from clinic.models import Patient, PatientLabTest, Payment, Prescription, VitalsRecord

logger = logging.getLogger(__name__)


class PatientNotFound(NotFound):
    """The requested patient does not exist."""

    def __init__(self, patient_id):
        super().__init__(f'patient {patient_id} not found')
        self.patient_id = patient_id


class AggregationFailed(BackendUnavailable):
    """At least one sub-fetch failed; ``errors`` holds every failure."""

    def __init__(self, patient_id, errors: list[BaseException]):
        super().__init__(f'failed to load records for patient {patient_id}')
        self.patient_id = patient_id
        self.errors = errors


class RecordSource(Protocol):
    async def fetch_profile(self, patient_id) -> dict[str, Any]: ...
    async def fetch_vitals(self, patient_id) -> list[dict[str, Any]]: ...
    async def fetch_lab_tests(self, patient_id) -> list[dict[str, Any]]: ...
    async def fetch_billing(self, patient_id) -> list[dict[str, Any]]: ...
    async def fetch_prescriptions(self, patient_id) -> list[dict[str, Any]]: ...


@dataclass
class PatientSnapshot:
    profile: dict[str, Any]
    vitals: list[dict[str, Any]] = field(default_factory=list)
    lab_tests: list[dict[str, Any]] = field(default_factory=list)
    billing: list[dict[str, Any]] = field(default_factory=list)
    prescriptions: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            'profile': self.profile,
            'vitals': self.vitals,
            'labTests': self.lab_tests,
            'billing': self.billing,
            'prescriptions': self.prescriptions,
        }


async def aggregate_patient_record(source: RecordSource, patient_id) -> PatientSnapshot:
    """Fetch and join every record collection of one patient."""
    results = await asyncio.gather(
        source.fetch_profile(patient_id),
        source.fetch_vitals(patient_id),
        source.fetch_lab_tests(patient_id),
        source.fetch_billing(patient_id),
        source.fetch_prescriptions(patient_id),
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        if any(isinstance(e, PatientNotFound) for e in errors):
            raise PatientNotFound(patient_id)
        logger.warning("record aggregation for %s failed: %s", patient_id, errors)
        raise AggregationFailed(patient_id, errors) from errors[0]
    profile, vitals, lab_tests, billing, prescriptions = results
    return PatientSnapshot(
        profile=profile,
        vitals=list(vitals),
        lab_tests=list(lab_tests),
        billing=list(billing),
        prescriptions=list(prescriptions),
    )


# ---------------------------------------------------------------------------
# ORM-backed source
# ---------------------------------------------------------------------------

def _iso(value):
    return value.isoformat() if value is not None else None


def _num(value):
    return float(value) if value is not None else None


def serialize_profile(p: Patient) -> dict[str, Any]:
    return {
        'id': str(p.id),
        'name': p.name,
        'email': p.email,
        'mobile': p.mobile,
        'gender': p.gender,
        'birthDate': _iso(p.birth_date),
        'bloodGroup': p.blood_group,
        'address': p.address,
        'emergencyContact': p.emergency_contact,
        'medicalHistory': p.medical_history,
        'createdAt': _iso(p.created_at),
    }


def serialize_vitals(v: VitalsRecord) -> dict[str, Any]:
    return {
        'id': str(v.id),
        'patientId': str(v.patient_id),
        'recordedAt': _iso(v.recorded_at),
        'heartRate': v.heart_rate,
        'bloodPressureSystolic': v.blood_pressure_systolic,
        'bloodPressureDiastolic': v.blood_pressure_diastolic,
        'weight': _num(v.weight),
        'height': _num(v.height),
        'temperature': _num(v.temperature),
        'oxygenSaturation': v.oxygen_saturation,
        'bmi': _num(v.bmi),
        'notes': v.notes,
    }


def serialize_lab_order(t: PatientLabTest) -> dict[str, Any]:
    return {
        'id': str(t.id),
        'patientId': str(t.patient_id),
        'labTestId': str(t.lab_test_id),
        'testName': t.lab_test.name if t.lab_test_id else None,
        'testDescription': t.lab_test.description if t.lab_test_id else None,
        'doctorId': str(t.doctor_id) if t.doctor_id else None,
        'doctorName': t.doctor.name if t.doctor_id else None,
        'testDate': _iso(t.test_date),
        'status': t.status,
        'notes': t.notes,
        'reportUrl': t.report.url if t.report else None,
        'createdAt': _iso(t.created_at),
    }


def serialize_billing(p: Payment) -> dict[str, Any]:
    return {
        'id': str(p.id),
        'patientId': str(p.patient_id),
        'amount': _num(p.amount),
        'paymentMethod': p.payment_method,
        'status': p.status,
        'paymentReference': p.payment_reference,
        'paymentNotes': p.payment_notes,
        'paymentDate': _iso(p.payment_date),
        'createdAt': _iso(p.created_at),
        'invoices': [
            {
                'id': str(inv.id),
                'invoiceNumber': inv.invoice_number,
                'url': inv.document.url if inv.document else None,
                'createdAt': _iso(inv.created_at),
            }
            for inv in p.invoices.all()
        ],
    }


def serialize_prescription(rx: Prescription) -> dict[str, Any]:
    return {
        'id': str(rx.id),
        'patientId': str(rx.patient_id),
        'doctorId': str(rx.doctor_id),
        'doctorName': rx.doctor.name,
        'doctorSpecialization': rx.doctor.specialization,
        'prescriptionDate': _iso(rx.prescription_date),
        'diagnosis': rx.diagnosis,
        'symptoms': rx.symptoms,
        'medicines': list(rx.medicines or []),
        'notes': rx.notes,
        'followUpDate': _iso(rx.follow_up_date),
    }


class OrmRecordSource:
    """Record source reading straight from the Django ORM."""

    @staticmethod
    def _profile(patient_id):
        p = Patient.objects.filter(id=patient_id).first()
        if p is None:
            raise PatientNotFound(patient_id)
        return serialize_profile(p)

    @staticmethod
    def _vitals(patient_id):
        qs = VitalsRecord.objects.filter(patient_id=patient_id).order_by('-recorded_at', '-created_at')
        return [serialize_vitals(v) for v in qs]

    @staticmethod
    def _lab_tests(patient_id):
        qs = (PatientLabTest.objects.filter(patient_id=patient_id)
              .select_related('lab_test', 'doctor')
              .order_by(F('test_date').desc(nulls_last=True), '-created_at'))
        return [serialize_lab_order(t) for t in qs]

    @staticmethod
    def _billing(patient_id):
        qs = (Payment.objects.filter(patient_id=patient_id)
              .prefetch_related('invoices')
              .order_by('-payment_date', '-created_at'))
        return [serialize_billing(p) for p in qs]

    @staticmethod
    def _prescriptions(patient_id):
        qs = (Prescription.objects.filter(patient_id=patient_id)
              .select_related('doctor')
              .order_by('-prescription_date', '-created_at'))
        return [serialize_prescription(rx) for rx in qs]

    async def fetch_profile(self, patient_id):
        return await sync_to_async(self._profile)(patient_id)

    async def fetch_vitals(self, patient_id):
        return await sync_to_async(self._vitals)(patient_id)

    async def fetch_lab_tests(self, patient_id):
        return await sync_to_async(self._lab_tests)(patient_id)

    async def fetch_billing(self, patient_id):
        return await sync_to_async(self._billing)(patient_id)

    async def fetch_prescriptions(self, patient_id):
        return await sync_to_async(self._prescriptions)(patient_id)
