import logging

from django.core.files.base import ContentFile
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from clinic.exceptions import BackendUnavailable
from clinic.models import Invoice, Payment
from clinic.services.audit import log_action
from clinic.services.reports import build_pdf, hospital_letterhead, invoice_sections

logger = logging.getLogger(__name__)


def invoice_number_for(payment: Payment) -> str:
    return f"INV-{str(payment.id)[:8]}"


def generate_invoice(payment: Payment, *, user=None) -> Invoice:
    """Render the invoice PDF for a completed payment and store it.

    Each call produces a new ``Invoice`` row; earlier documents stay in the
    history.
    """
    if payment.status != 'completed':
        raise ValidationError({'status': 'invoices can only be generated for completed payments'})
    number = invoice_number_for(payment)
    title, subtitles = hospital_letterhead()
    pdf = build_pdf(invoice_sections(payment, number), title=title, subtitles=subtitles)
    invoice = Invoice(payment=payment, invoice_number=number)
    try:
        invoice.document.save(f"{number}_{payment.payment_date:%Y%m%d}.pdf", ContentFile(pdf), save=False)
    except OSError as e:
        logger.error("storing invoice %s failed: %s", number, e)
        raise BackendUnavailable('could not store invoice') from e
    try:
        invoice.save()
    except DatabaseError as e:
        # the row is the only reference to the stored document
        logger.error("recording invoice %s failed: %s", number, e)
        invoice.document.delete(save=False)
        raise BackendUnavailable('could not record invoice') from e
    log_action(user=user, action='invoice_generate', object_type='invoice', object_id=invoice.id,
               detail={'paymentId': str(payment.id), 'invoiceNumber': number})
    return invoice
