import asyncio
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync
from django.utils import timezone

from clinic.models import Invoice, LabTest, PatientLabTest, Payment, Prescription, VitalsRecord
from clinic.services.records import (
    AggregationFailed,
    OrmRecordSource,
    PatientNotFound,
    aggregate_patient_record,
)


class FakeSource:
    def __init__(self, fail=(), missing=False):
        self.fail = set(fail)
        self.missing = missing
        self.calls = []

    async def _rows(self, name, rows):
        self.calls.append(name)
        await asyncio.sleep(0)
        if name in self.fail:
            raise ConnectionError(f'{name} unavailable')
        return rows

    async def fetch_profile(self, pid):
        self.calls.append('profile')
        if self.missing:
            raise PatientNotFound(pid)
        return {'id': pid, 'name': 'Anil'}

    async def fetch_vitals(self, pid):
        return await self._rows('vitals', [{'id': 1}, {'id': 2}])

    async def fetch_lab_tests(self, pid):
        return await self._rows('lab_tests', [{'id': 3}])

    async def fetch_billing(self, pid):
        return await self._rows('billing', [])

    async def fetch_prescriptions(self, pid):
        return await self._rows('prescriptions', [{'id': 4}])


def test_snapshot_joins_every_collection():
    snap = asyncio.run(aggregate_patient_record(FakeSource(), 'p1'))
    assert snap.profile['name'] == 'Anil'
    assert [len(snap.vitals), len(snap.lab_tests), len(snap.billing), len(snap.prescriptions)] == [2, 1, 0, 1]


@pytest.mark.parametrize('failing', ['vitals', 'lab_tests', 'billing', 'prescriptions'])
def test_any_failed_fetch_fails_whole_aggregation(failing):
    src = FakeSource(fail=[failing])
    with pytest.raises(AggregationFailed) as exc:
        asyncio.run(aggregate_patient_record(src, 'p1'))
    assert len(exc.value.errors) == 1
    # every fetch was still awaited before failing
    assert sorted(src.calls) == sorted(['profile', 'vitals', 'lab_tests', 'billing', 'prescriptions'])


def test_multiple_failures_raise_one_error():
    with pytest.raises(AggregationFailed) as exc:
        asyncio.run(aggregate_patient_record(FakeSource(fail=['vitals', 'billing']), 'p1'))
    assert len(exc.value.errors) == 2


def test_missing_patient_is_not_found_even_if_other_fetches_fail():
    with pytest.raises(PatientNotFound):
        asyncio.run(aggregate_patient_record(FakeSource(fail=['vitals'], missing=True), 'nope'))


@pytest.mark.django_db
def test_orm_source_counts_and_newest_first_order(patient, doctor):
    now = timezone.now()
    for days in (5, 1, 3):
        VitalsRecord.objects.create(patient=patient, recorded_at=now - timedelta(days=days), heart_rate=70)
    cbc = LabTest.objects.create(name='CBC')
    for days in (10, 2):
        PatientLabTest.objects.create(patient=patient, doctor=doctor, lab_test=cbc,
                                      test_date=date.today() - timedelta(days=days))
    PatientLabTest.objects.create(patient=patient, lab_test=cbc)
    payments = [
        Payment.objects.create(patient=patient, amount=Decimal('100'), payment_date=date.today() - timedelta(days=d))
        for d in (4, 0, 8, 2)
    ]
    Invoice.objects.create(payment=payments[1], invoice_number='INV-test')
    Prescription.objects.create(patient=patient, doctor=doctor, diagnosis='Flu')

    snap = async_to_sync(aggregate_patient_record)(OrmRecordSource(), patient.id)

    assert len(snap.vitals) == 3
    assert len(snap.lab_tests) == 3
    assert len(snap.billing) == 4
    assert len(snap.prescriptions) == 1

    recorded = [v['recordedAt'] for v in snap.vitals]
    assert recorded == sorted(recorded, reverse=True)
    dated = [t['testDate'] for t in snap.lab_tests if t['testDate']]
    assert dated == sorted(dated, reverse=True)
    assert snap.lab_tests[-1]['testDate'] is None
    assert snap.lab_tests[0]['testName'] == 'CBC'
    assert snap.lab_tests[0]['doctorName'] == 'Asha Menon'
    paid = [p['paymentDate'] for p in snap.billing]
    assert paid == sorted(paid, reverse=True)
    assert snap.billing[0]['invoices'][0]['invoiceNumber'] == 'INV-test'
    assert snap.prescriptions[0]['doctorName'] == 'Asha Menon'


@pytest.mark.django_db
def test_orm_source_unknown_patient():
    with pytest.raises(PatientNotFound):
        async_to_sync(aggregate_patient_record)(OrmRecordSource(), uuid.uuid4())
