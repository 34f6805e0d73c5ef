import logging

from django.core.management.base import BaseCommand, CommandError

from django_rentpay.conf import ProcessorConfig
from django_rentpay.models import AuditLog, Invoice, Notification, Receipt
from django_rentpay.services.settlement import (
    INVOICE_ENTITY_TYPE,
    SettlementContext,
    SettlementExecutor,
)

__all__ = ["Command", "find_missing_steps"]

logger = logging.getLogger(__name__)


def find_missing_steps(invoice: Invoice) -> list[str]:
    """Return the settlement steps whose records are absent for a paid invoice."""
    missing = []

    if not Receipt.objects.filter(invoice=invoice).exists():
        missing.append("receipt")

    if not AuditLog.objects.filter(
        entity_type=INVOICE_ENTITY_TYPE,
        entity_id=invoice.pk,
        action=AuditLog.Action.PAYMENT_CONFIRMED,
    ).exists():
        missing.append("audit_log")

    notifications = Notification.objects.filter(
        user_id=invoice.student_id, type=Notification.Type.PAYMENT
    )
    if invoice.gateway_reference:
        notifications = notifications.filter(
            message__contains=invoice.gateway_reference
        )
    if not notifications.exists():
        missing.append("notification")

    return missing


class Command(BaseCommand):
    help = "Find paid invoices with missing receipt, audit or notification records"

    def add_arguments(self, parser):
        parser.add_argument(
            "--invoice",
            action="append",
            dest="invoice_ids",
            help="Only check this invoice id (repeatable)",
        )
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Recreate the missing records from the surviving payment records",
        )

    def handle(self, *args, **options):
        invoice_ids = options.get("invoice_ids")
        repair = options["repair"]

        invoices = Invoice.objects.filter(status=Invoice.Status.PAID).order_by(
            "paid_at"
        )
        if invoice_ids:
            invoices = invoices.filter(pk__in=invoice_ids)

        mode = "(REPAIR)" if repair else "(REPORT ONLY)"
        self.stdout.write(f"Rent payment reconciliation {mode}")
        self.stdout.write("=" * 40)

        executor = SettlementExecutor(ProcessorConfig.from_settings())
        incomplete = 0
        repaired = 0
        failed = 0

        for invoice in invoices:
            missing = find_missing_steps(invoice)
            if not missing:
                continue

            incomplete += 1
            self.stdout.write(f"{invoice.pk}: missing {', '.join(missing)}")

            if not repair:
                continue

            result = executor.enrich(SettlementContext.from_invoice(invoice), missing)
            if result.failures:
                failed += 1
                for failure in result.failures:
                    self.stderr.write(f"  {failure.step} failed: {failure.error}")
            else:
                repaired += 1
                self.stdout.write(self.style.SUCCESS("  repaired"))

        self.stdout.write("")
        self.stdout.write(f"Incomplete invoices: {incomplete}")
        if repair:
            self.stdout.write(f"Repaired: {repaired}")
            self.stdout.write(f"Failed: {failed}")
            if failed:
                raise CommandError(f"{failed} invoice(s) could not be repaired")
