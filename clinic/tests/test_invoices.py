from decimal import Decimal

import pytest
from django.core.files.storage import default_storage
from django.db import DatabaseError

from clinic.exceptions import BackendUnavailable
from clinic.models import AuditEvent, Invoice, Payment
from clinic.services.invoices import generate_invoice, invoice_number_for


@pytest.fixture
def completed_payment(patient):
    return Payment.objects.create(patient=patient, amount=Decimal('800.00'), status='completed')


@pytest.mark.django_db
def test_invoice_document_is_stored_with_row(completed_payment, admin_user):
    invoice = generate_invoice(completed_payment, user=admin_user)
    assert invoice.invoice_number == invoice_number_for(completed_payment)
    assert invoice.document.name.startswith(f"invoices/{invoice.invoice_number}_")
    assert default_storage.exists(invoice.document.name)
    assert AuditEvent.objects.filter(action='invoice_generate', user=admin_user).exists()


@pytest.mark.django_db
def test_failed_row_insert_removes_stored_document(completed_payment, monkeypatch):
    def refuse(self, *args, **kwargs):
        raise DatabaseError('insert refused')

    monkeypatch.setattr(Invoice, 'save', refuse)
    with pytest.raises(BackendUnavailable):
        generate_invoice(completed_payment)

    _, files = default_storage.listdir('invoices')
    assert files == []
    assert not AuditEvent.objects.filter(action='invoice_generate').exists()
