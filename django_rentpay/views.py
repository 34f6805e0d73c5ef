import json
import logging
from functools import lru_cache

from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from django_rentpay.conf import ProcessorConfig
from django_rentpay.conf import settings as app_settings
from django_rentpay.exceptions import PaystackAPIError
from django_rentpay.responses import ResponsePolicy
from django_rentpay.services import PaymentService, WebhookProcessor
from django_rentpay.services.signature import SIGNATURE_HEADER

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_processor() -> WebhookProcessor:
    """Build the process-wide processor from settings on first use."""
    return WebhookProcessor(ProcessorConfig.from_settings())


@receiver(setting_changed)
def _reset_processor(setting, **kwargs):
    if setting.startswith("DJANGO_RENTPAY_"):
        get_processor.cache_clear()


def _parse_json_body(request: HttpRequest) -> tuple[dict | None, JsonResponse | None]:
    """
    Parse JSON body from request.

    Returns:
        (data, None) on success
        (None, error_response) on failure
    """
    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        return None, ResponsePolicy.json({"error": "Invalid JSON"}, status=400)

    if not isinstance(data, dict):
        return None, ResponsePolicy.json({"error": "Invalid JSON"}, status=400)
    return data, None


def _student_id(request: HttpRequest) -> str | None:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return None
    return str(user.pk)


def process_webhook_request(request: HttpRequest) -> JsonResponse:
    """Process a Paystack webhook delivery."""
    try:
        processor = get_processor()
    except ImproperlyConfigured:
        logger.exception("[django-rentpay] Webhook processor is not configured")
        return ResponsePolicy.json({"error": "Paystack not configured"}, status=500)

    try:
        result = processor.process(
            request.body, request.headers.get(SIGNATURE_HEADER)
        )
    except Exception as e:
        logger.exception("[django-rentpay] Webhook processing failed")
        return ResponsePolicy.fault(e)

    if result.failures:
        logger.error(
            "[django-rentpay] Invoice %s needs remediation: %s",
            result.invoice_id,
            "; ".join(f"{f.step}: {f.error}" for f in result.failures),
        )

    return ResponsePolicy.respond(result)


@csrf_exempt
@require_http_methods(["POST", "OPTIONS"])
def webhook(request):
    if request.method == "OPTIONS":
        return ResponsePolicy.preflight()
    return process_webhook_request(request)


@require_http_methods(["POST", "OPTIONS"])
def initialize(request):
    if request.method == "OPTIONS":
        return ResponsePolicy.preflight()

    student_id = _student_id(request)
    if student_id is None:
        return ResponsePolicy.json({"error": "Unauthorized"}, status=401)

    data, error = _parse_json_body(request)
    if error:
        return error

    invoice_id = data.get("invoice_id")
    email = data.get("email")
    if not invoice_id or not email:
        return ResponsePolicy.json(
            {"error": "invoice_id and email required"}, status=400
        )

    invoice = PaymentService.get_pending_invoice(str(invoice_id), student_id)
    if invoice is None:
        return ResponsePolicy.json(
            {"error": "Invoice not found or already paid"}, status=404
        )

    if not app_settings.PAYSTACK_SECRET_KEY:
        return ResponsePolicy.json({"error": "Paystack not configured"}, status=500)

    try:
        checkout = PaymentService.initialize(
            invoice, email, callback_url=data.get("callback_url")
        )
    except PaystackAPIError as e:
        logger.warning(
            "[django-rentpay] Paystack rejected invoice %s: %s", invoice.pk, e
        )
        return ResponsePolicy.json({"error": str(e)}, status=400)
    except Exception as e:
        logger.exception("[django-rentpay] Failed to initialize invoice %s", invoice.pk)
        return ResponsePolicy.json({"error": str(e)}, status=500)

    return ResponsePolicy.json(checkout)


@require_http_methods(["GET"])
def receipts(request):
    student_id = _student_id(request)
    if student_id is None:
        return ResponsePolicy.json({"error": "Unauthorized"}, status=401)

    return ResponsePolicy.json(
        {
            "receipts": [
                {
                    "id": str(receipt.id),
                    "invoice_id": receipt.invoice_id,
                    "invoice_number": receipt.invoice.invoice_number,
                    "invoice_amount": str(receipt.invoice.amount),
                    "due_date": (
                        receipt.invoice.due_date.isoformat()
                        if receipt.invoice.due_date
                        else None
                    ),
                    "amount_paid": str(receipt.amount_paid),
                    "payment_method": receipt.payment_method,
                    "payment_channel": receipt.payment_channel,
                    "gateway_reference": receipt.gateway_reference,
                    "paid_at": receipt.paid_at.isoformat(),
                }
                for receipt in PaymentService.list_receipts(student_id)
            ]
        }
    )
