import asyncio
from datetime import date
from decimal import Decimal

import pytest

from clinic.policy import SessionContext
from clinic.services.dashboard import DashboardUnavailable, merge_activity, summarize_dashboard


def test_merge_orders_by_date_descending():
    appointments = [{'id': 'a1', 'appointmentDate': '2024-01-03'}, {'id': 'a2', 'appointmentDate': '2024-01-01'}]
    payments = [{'id': 'p1', 'paymentDate': '2024-01-02'}, {'id': 'p2', 'paymentDate': '2024-01-04'}]
    feed = merge_activity(appointments, payments, limit=5)
    assert [(f['type'], f['date']) for f in feed] == [
        ('payment', '2024-01-04'),
        ('appointment', '2024-01-03'),
        ('payment', '2024-01-02'),
        ('appointment', '2024-01-01'),
    ]


def test_merge_truncates_to_window():
    appointments = [{'appointmentDate': f'2024-01-{d:02d}'} for d in range(1, 6)]
    payments = [{'paymentDate': f'2024-02-{d:02d}'} for d in range(1, 6)]
    feed = merge_activity(appointments, payments, limit=5)
    assert len(feed) == 5
    assert all(f['type'] == 'payment' for f in feed)


def test_merge_keeps_appointments_first_on_equal_dates():
    feed = merge_activity([{'appointmentDate': '2024-01-01'}], [{'paymentDate': '2024-01-01'}])
    assert [f['type'] for f in feed] == ['appointment', 'payment']


class CountingSource:
    def __init__(self, fail=None):
        self.revenue_calls = 0
        self.fail = fail

    async def _value(self, name, value):
        if name == self.fail:
            raise ConnectionError(name)
        return value

    async def count_patients(self):
        return await self._value('patients', 12)

    async def count_doctors(self):
        return await self._value('doctors', 4)

    async def count_appointments_on(self, day):
        return await self._value('today', 3)

    async def completed_revenue_since(self, day):
        self.revenue_calls += 1
        assert day == date(2024, 3, 1)
        return Decimal('1500.50')

    async def recent_appointments(self, limit):
        return await self._value('appointments', [{'appointmentDate': '2024-03-10'}])

    async def recent_payments(self, limit):
        return await self._value('payments', [{'paymentDate': '2024-03-11'}])

    async def upcoming_appointments(self, from_day, limit):
        return await self._value('upcoming', [{'appointmentDate': '2024-03-16'}])


TODAY = date(2024, 3, 15)


def test_elevated_role_gets_revenue():
    src = CountingSource()
    summary = asyncio.run(summarize_dashboard(SessionContext(1, 'admin'), src, TODAY))
    assert src.revenue_calls == 1
    assert summary.monthly_revenue == Decimal('1500.50')
    assert summary.revenue_locked is False
    assert summary.total_patients == 12
    assert summary.today_appointments == 3
    assert [f['type'] for f in summary.recent_activity] == ['payment', 'appointment']


@pytest.mark.parametrize('role', ['staff', 'user'])
def test_revenue_is_never_requested_for_limited_roles(role):
    src = CountingSource()
    summary = asyncio.run(summarize_dashboard(SessionContext(2, role), src, TODAY))
    assert src.revenue_calls == 0
    assert summary.monthly_revenue is None
    assert summary.revenue_locked is True
    assert summary.as_dict()['monthlyRevenue'] is None


def test_any_failed_fetch_fails_summary():
    with pytest.raises(DashboardUnavailable):
        asyncio.run(summarize_dashboard(SessionContext(1, 'admin'), CountingSource(fail='upcoming'), TODAY))
