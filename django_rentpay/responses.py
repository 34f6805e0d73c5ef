from django.http import HttpResponse, JsonResponse

from django_rentpay.services.webhook_processor import Outcome, WebhookResult

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

ALREADY_PROCESSED_BODY = {"received": True, "note": "Already processed"}


class ResponsePolicy:
    """Maps webhook outcomes to the status codes and bodies Paystack sees."""

    RESPONSES = {
        Outcome.SIGNATURE_INVALID: (401, {"error": "Invalid signature"}),
        Outcome.MALFORMED: (400, {"error": "Malformed event payload"}),
        Outcome.IGNORED: (200, {"received": True}),
        Outcome.MISSING_INVOICE_ID: (400, {"error": "Missing invoice_id in metadata"}),
        Outcome.UNKNOWN_INVOICE: (200, ALREADY_PROCESSED_BODY),
        Outcome.ALREADY_PROCESSED: (200, ALREADY_PROCESSED_BODY),
        Outcome.PROCESSED: (200, {"received": True, "status": "processed"}),
    }

    @staticmethod
    def _with_cors(response: HttpResponse) -> HttpResponse:
        for header, value in CORS_HEADERS.items():
            response[header] = value
        return response

    @classmethod
    def json(cls, data: dict, status: int = 200) -> JsonResponse:
        return cls._with_cors(JsonResponse(data, status=status))

    @classmethod
    def respond(cls, result: WebhookResult) -> JsonResponse:
        status, body = cls.RESPONSES[result.outcome]
        return cls.json(dict(body), status=status)

    @classmethod
    def fault(cls, error: Exception) -> JsonResponse:
        return cls.json({"error": str(error)}, status=500)

    @classmethod
    def preflight(cls) -> HttpResponse:
        return cls._with_cors(HttpResponse(status=200))
