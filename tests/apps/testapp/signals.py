from django.dispatch import receiver

from django_rentpay.signals import invoice_paid


@receiver(invoice_paid)
def handle_invoice_paid(sender, invoice, receipt, **kwargs):
    """Handle settled invoices."""
    # Mark that this handler was called (for testing)
    if not hasattr(invoice, "_signal_handlers_called"):
        invoice._signal_handlers_called = []
    invoice._signal_handlers_called.append("invoice_paid")
