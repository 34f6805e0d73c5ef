from django.dispatch import Signal

# Fired once per settled invoice, after the enrichment records are written
invoice_paid = Signal()  # sender=Invoice, invoice=instance, receipt=instance|None
