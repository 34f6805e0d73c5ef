import logging
from dataclasses import dataclass
from enum import Enum

from django.core.exceptions import ImproperlyConfigured

from django_rentpay.conf import ProcessorConfig
from django_rentpay.exceptions import MalformedEvent, MissingInvoiceId, SignatureInvalid
from django_rentpay.services.event_parser import EventParser, IgnoredEvent
from django_rentpay.services.idempotency import GuardVerdict, IdempotencyGuard
from django_rentpay.services.settlement import SettlementExecutor, StepFailure
from django_rentpay.services.signature import SignatureVerifier

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of handling one webhook delivery."""

    SIGNATURE_INVALID = "signature_invalid"
    MALFORMED = "malformed"
    IGNORED = "ignored"
    MISSING_INVOICE_ID = "missing_invoice_id"
    UNKNOWN_INVOICE = "unknown_invoice"
    ALREADY_PROCESSED = "already_processed"
    PROCESSED = "processed"


@dataclass(frozen=True)
class WebhookResult:
    outcome: Outcome
    invoice_id: str | None = None
    failures: tuple[StepFailure, ...] = ()


class WebhookProcessor:
    """
    Processes Paystack payment webhooks idempotently.

    Flow: verify signature -> parse event -> check invoice status ->
    settle. Every expected failure is returned as an Outcome; anything
    else (a database outage during the status transition, for instance)
    propagates so the caller can answer with a retryable error.
    """

    def __init__(self, config: ProcessorConfig):
        if config.require_signature and not config.secret_key:
            raise ImproperlyConfigured(
                "DJANGO_RENTPAY_PAYSTACK_SECRET_KEY is required while "
                "DJANGO_RENTPAY_REQUIRE_SIGNATURE is enabled."
            )

        self.config = config
        self.verifier = SignatureVerifier(
            config.secret_key, require_signature=config.require_signature
        )
        self.parser = EventParser()
        self.guard = IdempotencyGuard()
        self.executor = SettlementExecutor(config)

    def process(self, body: bytes, signature: str | None) -> WebhookResult:
        """
        Handle one delivery.

        Args:
            body: Raw request body, exactly as received
            signature: Value of the x-paystack-signature header, if any

        Returns:
            WebhookResult describing what happened
        """
        try:
            self.verifier.verify(body, signature)
        except SignatureInvalid as e:
            logger.warning("[django-rentpay] Rejected webhook: %s", e)
            return WebhookResult(Outcome.SIGNATURE_INVALID)

        try:
            event = self.parser.parse(body)
        except MalformedEvent as e:
            logger.warning("[django-rentpay] Malformed webhook payload: %s", e)
            return WebhookResult(Outcome.MALFORMED)
        except MissingInvoiceId:
            logger.error("[django-rentpay] charge.success without invoice_id")
            return WebhookResult(Outcome.MISSING_INVOICE_ID)

        if isinstance(event, IgnoredEvent):
            logger.debug("[django-rentpay] Ignoring %s webhook", event.event_type)
            return WebhookResult(Outcome.IGNORED)

        decision = self.guard.check(event.invoice_id)
        if decision.verdict == GuardVerdict.UNKNOWN_INVOICE:
            return WebhookResult(Outcome.UNKNOWN_INVOICE, invoice_id=event.invoice_id)
        if not decision.should_settle:
            return WebhookResult(Outcome.ALREADY_PROCESSED, invoice_id=event.invoice_id)

        result = self.executor.settle(decision.invoice, event)
        if not result.applied:
            return WebhookResult(Outcome.ALREADY_PROCESSED, invoice_id=event.invoice_id)

        logger.info(
            "[django-rentpay] Processed payment %s for invoice %s",
            event.reference,
            event.invoice_id,
        )
        return WebhookResult(
            Outcome.PROCESSED,
            invoice_id=event.invoice_id,
            failures=tuple(result.failures),
        )
