import logging
import time

import httpx

from django_rentpay.conf import settings as app_settings
from django_rentpay.exceptions import PaystackAPIError
from django_rentpay.models import AuditLog, Invoice, Receipt
from django_rentpay.services.settlement import INVOICE_ENTITY_TYPE
from django_rentpay.utils import major_to_minor

logger = logging.getLogger(__name__)


class PaymentService:
    """
    High-level service for starting Paystack checkouts and reading receipts.
    """

    @classmethod
    def build_reference(cls, invoice: Invoice) -> str:
        return f"INV-{str(invoice.pk)[:8]}-{int(time.time() * 1000)}"

    @classmethod
    def get_pending_invoice(cls, invoice_id: str, student_id: str) -> Invoice | None:
        return Invoice.objects.filter(
            pk=invoice_id,
            student_id=student_id,
            status=Invoice.Status.PENDING,
        ).first()

    @classmethod
    def initialize(
        cls,
        invoice: Invoice,
        email: str,
        *,
        callback_url: str | None = None,
    ) -> dict:
        """
        Start a Paystack transaction for a pending invoice.

        Args:
            invoice: The invoice being paid
            email: Payer email address sent to Paystack
            callback_url: Where Paystack redirects the payer afterwards

        Returns:
            Dict with authorization_url, access_code and reference

        Raises:
            PaystackAPIError: Paystack rejected the request
            httpx.HTTPError: On network/connection failure
        """
        reference = cls.build_reference(invoice)
        payload = {
            "email": email,
            "amount": major_to_minor(invoice.amount),
            "reference": reference,
            "metadata": {
                "invoice_id": invoice.pk,
                "student_id": invoice.student_id,
                "custom_fields": [
                    {
                        "display_name": "Invoice ID",
                        "variable_name": "invoice_id",
                        "value": invoice.pk,
                    }
                ],
            },
            "channels": list(app_settings.PAYMENT_CHANNELS),
            "currency": app_settings.CURRENCY,
        }
        if callback_url or app_settings.CALLBACK_URL:
            payload["callback_url"] = callback_url or app_settings.CALLBACK_URL

        response = httpx.post(
            f"{app_settings.API_BASE_URL}/transaction/initialize",
            json=payload,
            headers={"Authorization": f"Bearer {app_settings.PAYSTACK_SECRET_KEY}"},
            timeout=app_settings.API_TIMEOUT,
        )
        data = response.json()

        if not data.get("status"):
            raise PaystackAPIError(data.get("message") or "Paystack error")

        logger.info(
            "[django-rentpay] Initialized payment %s for invoice %s",
            reference,
            invoice.pk,
        )

        AuditLog.objects.create(
            entity_type=INVOICE_ENTITY_TYPE,
            entity_id=invoice.pk,
            action=AuditLog.Action.PAYMENT_INITIALIZED,
            actor_id=invoice.student_id,
            metadata={"reference": reference, "amount": invoice.amount, "email": email},
        )

        result = data.get("data") or {}
        return {
            "authorization_url": result.get("authorization_url"),
            "access_code": result.get("access_code"),
            "reference": result.get("reference", reference),
        }

    @classmethod
    def list_receipts(cls, student_id: str):
        return (
            Receipt.objects.filter(student_id=student_id)
            .select_related("invoice")
            .order_by("-paid_at")
        )
