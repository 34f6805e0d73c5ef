from .event_parser import ChargeSuccess, EventParser, IgnoredEvent
from .idempotency import GuardVerdict, IdempotencyGuard
from .payment_service import PaymentService
from .settlement import SettlementExecutor, SettlementResult
from .signature import SignatureVerifier, compute_signature
from .webhook_processor import Outcome, WebhookProcessor, WebhookResult

__all__ = [
    "ChargeSuccess",
    "EventParser",
    "GuardVerdict",
    "IdempotencyGuard",
    "IgnoredEvent",
    "Outcome",
    "PaymentService",
    "SettlementExecutor",
    "SettlementResult",
    "SignatureVerifier",
    "WebhookProcessor",
    "WebhookResult",
    "compute_signature",
]
