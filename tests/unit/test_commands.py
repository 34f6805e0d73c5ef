from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.utils import timezone

from django_rentpay.conf import ProcessorConfig
from django_rentpay.management.commands.rentpay_reconcile import find_missing_steps
from django_rentpay.models import AuditLog, Invoice, Notification, Receipt
from django_rentpay.services.settlement import SettlementExecutor
from django_rentpay.services.webhook_processor import WebhookProcessor
from tests.payloads import encode, make_charge_payload, sign

pytestmark = pytest.mark.django_db


@pytest.fixture
def paid_invoice():
    return Invoice.objects.create(
        id="INV-7",
        student_id="S7",
        amount=Decimal("800.00"),
        status=Invoice.Status.PAID,
        gateway_reference="R7",
        paid_at=timezone.now(),
    )


def complete_records(invoice):
    Receipt.objects.create(
        invoice=invoice,
        student_id=invoice.student_id,
        amount_paid=invoice.amount,
        payment_method="paystack",
        gateway_reference=invoice.gateway_reference,
        paid_at=invoice.paid_at,
    )
    AuditLog.objects.create(
        entity_type="rent_invoice",
        entity_id=invoice.pk,
        action=AuditLog.Action.PAYMENT_CONFIRMED,
        actor_id=invoice.student_id,
    )
    Notification.objects.create(
        user_id=invoice.student_id,
        title="Payment Confirmed",
        message=f"Reference: {invoice.gateway_reference}",
    )


class TestFindMissingSteps:
    def test_all_missing(self, paid_invoice):
        assert find_missing_steps(paid_invoice) == [
            "receipt",
            "audit_log",
            "notification",
        ]

    def test_nothing_missing(self, paid_invoice):
        complete_records(paid_invoice)

        assert find_missing_steps(paid_invoice) == []

    def test_notification_for_other_reference_does_not_count(self, paid_invoice):
        Notification.objects.create(
            user_id="S7", title="Payment Confirmed", message="Reference: R-older"
        )

        assert "notification" in find_missing_steps(paid_invoice)


class TestReconcileCommand:
    def test_report_only(self, paid_invoice):
        out = StringIO()
        call_command("rentpay_reconcile", stdout=out)

        output = out.getvalue()
        assert "REPORT ONLY" in output
        assert "INV-7: missing receipt, audit_log, notification" in output
        assert "Incomplete invoices: 1" in output
        assert Receipt.objects.count() == 0

    def test_ignores_unpaid_and_complete_invoices(self, paid_invoice, invoice):
        complete_records(paid_invoice)

        out = StringIO()
        call_command("rentpay_reconcile", stdout=out)

        assert "Incomplete invoices: 0" in out.getvalue()

    def test_repair_creates_missing_records(self, paid_invoice):
        Receipt.objects.create(
            invoice=paid_invoice,
            student_id="S7",
            amount_paid=Decimal("800.00"),
            payment_method="paystack",
            gateway_reference="R7",
            paid_at=paid_invoice.paid_at,
        )

        out = StringIO()
        call_command("rentpay_reconcile", "--repair", stdout=out)

        assert "INV-7: missing audit_log, notification" in out.getvalue()
        assert "Repaired: 1" in out.getvalue()
        assert Receipt.objects.count() == 1
        assert AuditLog.objects.get().metadata["reference"] == "R7"
        notification = Notification.objects.get()
        assert notification.user_id == "S7"
        assert "GHS 800.00" in notification.message
        assert find_missing_steps(paid_invoice) == []

    def test_repair_is_idempotent(self, paid_invoice):
        call_command("rentpay_reconcile", "--repair", stdout=StringIO())
        out = StringIO()
        call_command("rentpay_reconcile", "--repair", stdout=out)

        assert "Incomplete invoices: 0" in out.getvalue()
        assert Receipt.objects.count() == 1
        assert AuditLog.objects.count() == 1
        assert Notification.objects.count() == 1

    def test_invoice_filter(self, paid_invoice):
        Invoice.objects.create(
            id="INV-8",
            student_id="S8",
            amount=Decimal("100.00"),
            status=Invoice.Status.PAID,
            gateway_reference="R8",
            paid_at=timezone.now(),
        )

        out = StringIO()
        call_command("rentpay_reconcile", "--invoice", "INV-8", stdout=out)

        assert "INV-8" in out.getvalue()
        assert "INV-7" not in out.getvalue()

    def test_repair_failure_raises(self, paid_invoice, mocker):
        mocker.patch.object(
            SettlementExecutor, "_create_receipt", side_effect=DatabaseError("locked")
        )

        err = StringIO()
        with pytest.raises(CommandError, match="1 invoice"):
            call_command(
                "rentpay_reconcile", "--repair", stdout=StringIO(), stderr=err
            )

        assert "receipt failed: locked" in err.getvalue()

    def test_repair_keeps_paid_amount_when_it_differs_from_invoice(self, invoice):
        body = encode(make_charge_payload(amount=100000, channel="card"))
        with patch.object(
            SettlementExecutor,
            "_create_receipt",
            side_effect=DatabaseError("receipts offline"),
        ):
            WebhookProcessor(ProcessorConfig.from_settings()).process(body, sign(body))

        call_command("rentpay_reconcile", "--repair", stdout=StringIO())

        receipt = Receipt.objects.get()
        assert receipt.amount_paid == Decimal("1000.00")
        assert receipt.payment_channel == "card"
        assert receipt.gateway_reference == "R1"
        assert AuditLog.objects.get().metadata["expected_amount"] == "5000.00"
