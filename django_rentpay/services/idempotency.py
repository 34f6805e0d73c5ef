import logging
from dataclasses import dataclass
from enum import Enum

from django_rentpay.models import Invoice

logger = logging.getLogger(__name__)


class GuardVerdict(str, Enum):
    PROCEED = "proceed"
    UNKNOWN_INVOICE = "unknown_invoice"
    ALREADY_PROCESSED = "already_processed"


@dataclass(frozen=True)
class GuardDecision:
    verdict: GuardVerdict
    invoice: Invoice | None = None

    @property
    def should_settle(self) -> bool:
        return self.verdict == GuardVerdict.PROCEED


class IdempotencyGuard:
    """
    Decides whether a confirmed charge still needs to be applied.

    Keys off the invoice's persisted status rather than the gateway
    reference. This read only short-circuits the common redelivery case;
    concurrent deliveries are serialized by the conditional update in
    SettlementExecutor.
    """

    def check(self, invoice_id: str) -> GuardDecision:
        invoice = Invoice.objects.filter(pk=invoice_id).first()

        if invoice is None:
            logger.warning("[django-rentpay] Webhook for unknown invoice %s", invoice_id)
            return GuardDecision(GuardVerdict.UNKNOWN_INVOICE)

        if invoice.status == Invoice.Status.PAID:
            logger.debug("[django-rentpay] Invoice %s already paid", invoice_id)
            return GuardDecision(GuardVerdict.ALREADY_PROCESSED, invoice)

        if invoice.status == Invoice.Status.VOID:
            logger.warning(
                "[django-rentpay] Settling payment against void invoice %s", invoice_id
            )

        return GuardDecision(GuardVerdict.PROCEED, invoice)
