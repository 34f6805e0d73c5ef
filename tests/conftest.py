from decimal import Decimal

import pytest

from django_rentpay.models import Invoice
from tests.payloads import WEBHOOK_URL, encode, sign


@pytest.fixture
def invoice(db):
    return Invoice.objects.create(
        id="INV-1",
        invoice_number="RENT-0001",
        student_id="S1",
        agreement_id="AG-1",
        amount=Decimal("5000.00"),
        status=Invoice.Status.PENDING,
    )


@pytest.fixture
def post_webhook(client):
    """POST a payload to the webhook view, signed with the test secret by default."""

    def _post(payload, *, signature=None, signed=True):
        body = encode(payload)
        extra = {}
        if signed:
            extra["HTTP_X_PAYSTACK_SIGNATURE"] = signature or sign(body)
        return client.post(
            WEBHOOK_URL, data=body, content_type="application/json", **extra
        )

    return _post
