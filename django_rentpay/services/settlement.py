import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from django_rentpay.conf import ProcessorConfig
from django_rentpay.models import AuditLog, Invoice, Notification, Receipt
from django_rentpay.services.event_parser import ChargeSuccess
from django_rentpay.signals import invoice_paid
from django_rentpay.utils import minor_to_major, safe_decimal

logger = logging.getLogger(__name__)

INVOICE_ENTITY_TYPE = "rent_invoice"
NOTIFICATION_TITLE = "Payment Confirmed"
NOTIFICATION_MESSAGE = (
    "Your rent payment of {currency} {amount:.2f} has been confirmed. "
    "Reference: {reference}"
)


@dataclass(frozen=True)
class SettlementContext:
    """Everything the enrichment steps need, fixed at the moment of payment."""

    invoice: Invoice
    student_id: str
    reference: str
    amount_paid: Decimal
    paid_at: datetime
    channel: str = ""
    customer_email: str = ""

    @classmethod
    def from_event(
        cls, invoice: Invoice, event: ChargeSuccess, paid_at: datetime
    ) -> "SettlementContext":
        return cls(
            invoice=invoice,
            student_id=invoice.student_id or event.student_id,
            reference=event.reference,
            amount_paid=minor_to_major(event.amount),
            paid_at=paid_at,
            channel=event.channel,
            customer_email=event.customer_email,
        )

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "SettlementContext":
        """
        Rebuild a context from a paid invoice when the original event is gone.

        Payment details come from the surviving receipt, then from the
        ``payment_confirmed`` audit entry. The invoice's own amount is used
        only when neither record exists.
        """
        receipt = Receipt.objects.filter(invoice=invoice).first()
        audit_entry = (
            AuditLog.objects.filter(
                entity_type=INVOICE_ENTITY_TYPE,
                entity_id=invoice.pk,
                action=AuditLog.Action.PAYMENT_CONFIRMED,
            )
            .order_by("-created_at")
            .first()
        )
        metadata = audit_entry.metadata if audit_entry is not None else {}
        if not isinstance(metadata, dict):
            metadata = {}

        if receipt is not None:
            reference = receipt.gateway_reference
            amount_paid = receipt.amount_paid
            channel = receipt.payment_channel
            paid_at = receipt.paid_at
        else:
            reference = metadata.get("reference")
            amount_paid = safe_decimal(metadata.get("amount"), invoice.amount)
            channel = metadata.get("channel") or ""
            paid_at = invoice.paid_at or timezone.now()

        return cls(
            invoice=invoice,
            student_id=invoice.student_id,
            reference=reference or invoice.gateway_reference,
            amount_paid=amount_paid,
            paid_at=paid_at,
            channel=channel,
            customer_email=metadata.get("customer_email") or "",
        )


@dataclass(frozen=True)
class StepFailure:
    step: str
    error: str


@dataclass
class SettlementResult:
    applied: bool
    context: SettlementContext | None = None
    records: dict = field(default_factory=dict)
    failures: list[StepFailure] = field(default_factory=list)

    @property
    def receipt(self) -> Receipt | None:
        return self.records.get("receipt")

    @property
    def complete(self) -> bool:
        return self.applied and not self.failures


class SettlementExecutor:
    """
    Marks an invoice paid and writes its dependent records.

    The conditional status update is the durability boundary: once it
    commits, the payment counts as applied and redeliveries short-circuit.
    Receipt, audit entry and notification follow as independent steps whose
    failures are collected and logged instead of failing the webhook.
    """

    STEPS = (
        ("receipt", "_create_receipt"),
        ("audit_log", "_create_audit_log"),
        ("notification", "_create_notification"),
    )

    def __init__(self, config: ProcessorConfig):
        self.config = config

    def settle(self, invoice: Invoice, event: ChargeSuccess) -> SettlementResult:
        """
        Apply a confirmed charge to an invoice at most once.

        Raises:
            DatabaseError: If the status transition itself cannot be written.
                Nothing has been applied and the gateway should retry.
        """
        paid_at = timezone.now()

        # Compare-and-set: only one concurrent delivery can match this row
        updated = (
            Invoice.objects.filter(pk=invoice.pk)
            .exclude(status=Invoice.Status.PAID)
            .update(
                status=Invoice.Status.PAID,
                gateway_reference=event.reference,
                paid_at=paid_at,
                updated_at=paid_at,
            )
        )

        if not updated:
            logger.info(
                "[django-rentpay] Invoice %s was settled by a concurrent delivery",
                invoice.pk,
            )
            return SettlementResult(applied=False)

        invoice.status = Invoice.Status.PAID
        invoice.gateway_reference = event.reference
        invoice.paid_at = paid_at
        invoice.updated_at = paid_at

        context = SettlementContext.from_event(invoice, event, paid_at)

        if context.amount_paid <= 0:
            logger.error(
                "[django-rentpay] Invoice %s settled by charge %s with no amount",
                invoice.pk,
                event.reference,
            )
        elif context.amount_paid != invoice.amount:
            logger.warning(
                "[django-rentpay] Invoice %s paid %s but %s was expected",
                invoice.pk,
                context.amount_paid,
                invoice.amount,
            )

        logger.info(
            "[django-rentpay] Invoice %s marked paid (reference=%s)",
            invoice.pk,
            event.reference,
        )

        result = self.enrich(context)
        self._send_paid_signal(invoice, result.receipt)
        return result

    def enrich(self, context: SettlementContext, steps=None) -> SettlementResult:
        """
        Run the post-payment steps in order, isolating each failure.

        Args:
            context: Settlement details for the paid invoice
            steps: Optional subset of step names to run

        Returns:
            SettlementResult with the created records and any step failures
        """
        result = SettlementResult(applied=True, context=context)

        for step_name, method_name in self.STEPS:
            if steps is not None and step_name not in steps:
                continue

            try:
                with transaction.atomic():
                    record = getattr(self, method_name)(context)
            except Exception as e:
                logger.exception(
                    "[django-rentpay] Settlement step %s failed for invoice %s",
                    step_name,
                    context.invoice.pk,
                )
                result.failures.append(StepFailure(step=step_name, error=str(e)))
            else:
                result.records[step_name] = record

        if result.failures:
            logger.error(
                "[django-rentpay] Invoice %s paid with incomplete records: %s",
                context.invoice.pk,
                ", ".join(f.step for f in result.failures),
            )

        return result

    def _create_receipt(self, context: SettlementContext) -> Receipt:
        return Receipt.objects.create(
            invoice=context.invoice,
            student_id=context.student_id,
            amount_paid=context.amount_paid,
            payment_method=self.config.payment_method,
            gateway_reference=context.reference,
            payment_channel=context.channel,
            paid_at=context.paid_at,
        )

    def _create_audit_log(self, context: SettlementContext) -> AuditLog:
        metadata = {
            "reference": context.reference,
            "amount": context.amount_paid,
            "channel": context.channel,
            "customer_email": context.customer_email,
        }
        if context.amount_paid != context.invoice.amount:
            metadata["expected_amount"] = context.invoice.amount

        return AuditLog.objects.create(
            entity_type=INVOICE_ENTITY_TYPE,
            entity_id=context.invoice.pk,
            action=AuditLog.Action.PAYMENT_CONFIRMED,
            actor_id=context.student_id,
            metadata=metadata,
        )

    def _create_notification(self, context: SettlementContext) -> Notification:
        return Notification.objects.create(
            user_id=context.student_id,
            title=NOTIFICATION_TITLE,
            message=NOTIFICATION_MESSAGE.format(
                currency=self.config.currency,
                amount=context.amount_paid,
                reference=context.reference,
            ),
            type=Notification.Type.PAYMENT,
            is_read=False,
        )

    @staticmethod
    def _send_paid_signal(invoice: Invoice, receipt: Receipt | None) -> None:
        responses = invoice_paid.send_robust(
            sender=Invoice, invoice=invoice, receipt=receipt
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "[django-rentpay] invoice_paid receiver %r failed: %s",
                    receiver,
                    response,
                )
