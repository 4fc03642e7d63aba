"""
Dashboard summary.

Counts, the recent activity feed and upcoming appointments are fetched
together through a dashboard source.  The monthly revenue figure is only
requested when the policy lets the caller view revenue; for everyone else
the query is never issued and the figure is reported as locked.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Protocol, Sequence

from asgiref.sync import sync_to_async
from django.db.models import Sum

from clinic.exceptions import BackendUnavailable
from clinic.models import Appointment, Doctor, Patient, Payment
from clinic.policy import VIEW_REVENUE, SessionContext, evaluate

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 5


class DashboardUnavailable(BackendUnavailable):
    default_detail = 'failed to load dashboard'


class DashboardSource(Protocol):
    async def count_patients(self) -> int: ...
    async def count_doctors(self) -> int: ...
    async def count_appointments_on(self, day: date) -> int: ...
    async def completed_revenue_since(self, day: date) -> Decimal: ...
    async def recent_appointments(self, limit: int) -> list[dict[str, Any]]: ...
    async def recent_payments(self, limit: int) -> list[dict[str, Any]]: ...
    async def upcoming_appointments(self, from_day: date, limit: int) -> list[dict[str, Any]]: ...


@dataclass
class DashboardSummary:
    total_patients: int
    total_doctors: int
    today_appointments: int
    monthly_revenue: Optional[Decimal]
    revenue_locked: bool
    recent_activity: list[dict[str, Any]] = field(default_factory=list)
    upcoming_appointments: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            'totalPatients': self.total_patients,
            'totalDoctors': self.total_doctors,
            'todayAppointments': self.today_appointments,
            'monthlyRevenue': float(self.monthly_revenue) if self.monthly_revenue is not None else None,
            'revenueLocked': self.revenue_locked,
            'recentActivity': self.recent_activity,
            'upcomingAppointments': self.upcoming_appointments,
        }


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return date.min


def merge_activity(appointments: Sequence[dict], payments: Sequence[dict],
                   limit: int = DEFAULT_WINDOW) -> list[dict[str, Any]]:
    """Merge recent appointments and payments into one feed, newest first.

    Rows are tagged with ``type`` and ``date``.  The sort is stable over
    appointments followed by payments, so equal dates keep that order.
    """
    feed = [
        {'type': 'appointment', 'date': a.get('appointmentDate'), 'data': a}
        for a in appointments
    ] + [
        {'type': 'payment', 'date': p.get('paymentDate'), 'data': p}
        for p in payments
    ]
    feed = sorted(feed, key=lambda item: _as_date(item['date']), reverse=True)
    return feed[:limit]


async def summarize_dashboard(ctx: SessionContext, source: DashboardSource, today: date,
                              window: int = DEFAULT_WINDOW) -> DashboardSummary:
    show_revenue = bool(evaluate(ctx.role, VIEW_REVENUE))
    fetches = [
        source.count_patients(),
        source.count_doctors(),
        source.count_appointments_on(today),
        source.recent_appointments(window),
        source.recent_payments(window),
        source.upcoming_appointments(today, window),
    ]
    if show_revenue:
        fetches.append(source.completed_revenue_since(today.replace(day=1)))

    results = await asyncio.gather(*fetches, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        logger.warning("dashboard summary failed: %s", errors)
        raise DashboardUnavailable() from errors[0]

    patients, doctors, todays, recent_appts, recent_pays, upcoming = results[:6]
    revenue = results[6] if show_revenue else None
    return DashboardSummary(
        total_patients=patients,
        total_doctors=doctors,
        today_appointments=todays,
        monthly_revenue=Decimal(revenue or 0) if show_revenue else None,
        revenue_locked=not show_revenue,
        recent_activity=merge_activity(recent_appts, recent_pays, window),
        upcoming_appointments=list(upcoming),
    )


def _appointment_row(a: Appointment) -> dict[str, Any]:
    return {
        'id': str(a.id),
        'appointmentDate': a.appointment_date.isoformat(),
        'appointmentTime': a.appointment_time.strftime('%H:%M'),
        'type': a.type,
        'status': a.status,
        'patientName': a.patient.name,
        'doctorName': a.doctor.name,
    }


def _payment_row(p: Payment) -> dict[str, Any]:
    return {
        'id': str(p.id),
        'amount': float(p.amount),
        'paymentDate': p.payment_date.isoformat(),
        'status': p.status,
        'patientName': p.patient.name,
    }


class OrmDashboardSource:

    async def count_patients(self):
        return await sync_to_async(Patient.objects.count)()

    async def count_doctors(self):
        return await sync_to_async(Doctor.objects.count)()

    async def count_appointments_on(self, day):
        return await sync_to_async(Appointment.objects.filter(appointment_date=day).count)()

    async def completed_revenue_since(self, day):
        def q():
            agg = Payment.objects.filter(status='completed', payment_date__gte=day).aggregate(total=Sum('amount'))
            return agg['total'] or Decimal('0')
        return await sync_to_async(q)()

    async def recent_appointments(self, limit):
        def q():
            qs = Appointment.objects.select_related('patient', 'doctor').order_by('-created_at')[:limit]
            return [_appointment_row(a) for a in qs]
        return await sync_to_async(q)()

    async def recent_payments(self, limit):
        def q():
            qs = Payment.objects.select_related('patient').order_by('-created_at')[:limit]
            return [_payment_row(p) for p in qs]
        return await sync_to_async(q)()

    async def upcoming_appointments(self, from_day, limit):
        def q():
            qs = (Appointment.objects.select_related('patient', 'doctor')
                  .filter(appointment_date__gte=from_day)
                  .order_by('appointment_date', 'appointment_time')[:limit])
            return [_appointment_row(a) for a in qs]
        return await sync_to_async(q)()
