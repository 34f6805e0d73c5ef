import json
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django_rentpay.exceptions import MalformedEvent, MissingInvoiceId
from django_rentpay.utils import safe_decimal

logger = logging.getLogger(__name__)

CHARGE_SUCCESS = "charge.success"


@dataclass(frozen=True)
class IgnoredEvent:
    """An event kind this app does not act on. Acknowledged, never applied."""

    event_type: str


@dataclass(frozen=True)
class ChargeSuccess:
    """A successful charge, correlated to an invoice through its metadata."""

    invoice_id: str
    reference: str
    amount: int  # minor units
    channel: str = ""
    student_id: str = ""
    customer_email: str = ""
    event_type: str = CHARGE_SUCCESS


def _as_dict(value: Any) -> dict:
    """
    Coerce a nested payload section to a dict.

    Paystack delivers ``metadata`` as a JSON-encoded string when the
    transaction was initialized with a string value.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def _as_minor_units(value: Any) -> int:
    if isinstance(value, bool):
        value = None
    if isinstance(value, int):
        return value

    amount = safe_decimal(value, default=None)
    try:
        if amount is None or not amount.is_finite():
            raise ValueError(value)
        minor = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except (ValueError, ArithmeticError):
        logger.warning("[django-rentpay] Unusable charge amount: %r", value)
        return 0

    if minor != amount:
        logger.warning(
            "[django-rentpay] Fractional charge amount %r rounded to %s", value, minor
        )
    return int(minor)


class EventParser:
    """Decodes a raw webhook body into a typed event."""

    def parse(self, body: bytes) -> ChargeSuccess | IgnoredEvent:
        """
        Args:
            body: Raw request body

        Returns:
            ChargeSuccess for ``charge.success``, IgnoredEvent for anything else

        Raises:
            MalformedEvent: Body is not a JSON object
            MissingInvoiceId: A charge.success event without metadata.invoice_id
        """
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedEvent(f"Invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedEvent("Webhook body must be a JSON object")

        event_type = str(payload.get("event") or payload.get("event_type") or "")
        if event_type != CHARGE_SUCCESS:
            return IgnoredEvent(event_type=event_type)

        data = _as_dict(payload.get("data"))
        metadata = _as_dict(data.get("metadata"))
        customer = _as_dict(data.get("customer"))

        invoice_id = metadata.get("invoice_id")
        if invoice_id in (None, ""):
            raise MissingInvoiceId("Missing invoice_id in metadata")

        return ChargeSuccess(
            invoice_id=str(invoice_id),
            reference=str(data.get("reference") or ""),
            amount=_as_minor_units(data.get("amount")),
            channel=str(data.get("channel") or ""),
            student_id=str(metadata.get("student_id") or ""),
            customer_email=str(customer.get("email") or ""),
        )
