import pytest
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError

from django_rentpay.conf import ProcessorConfig
from django_rentpay.models import AuditLog, Invoice, Notification, Receipt
from django_rentpay.services.settlement import SettlementExecutor
from django_rentpay.services.webhook_processor import Outcome, WebhookProcessor
from tests.payloads import encode, make_charge_payload, sign

pytestmark = pytest.mark.django_db

SECRET = "sk_test_webhook_secret"


@pytest.fixture
def processor():
    return WebhookProcessor(ProcessorConfig(secret_key=SECRET))


def deliver(processor, payload, signature=None):
    body = encode(payload)
    return processor.process(body, signature or sign(body, SECRET))


def side_effect_counts():
    return (
        Receipt.objects.count(),
        AuditLog.objects.count(),
        Notification.objects.count(),
    )


class TestConstruction:
    def test_requires_secret_when_signature_required(self):
        with pytest.raises(ImproperlyConfigured):
            WebhookProcessor(ProcessorConfig(secret_key=None, require_signature=True))

    def test_allows_missing_secret_in_weak_mode(self):
        processor = WebhookProcessor(
            ProcessorConfig(secret_key=None, require_signature=False)
        )
        assert processor.verifier.require_signature is False


class TestOutcomes:
    def test_processed(self, processor, invoice):
        result = deliver(processor, make_charge_payload())

        assert result.outcome == Outcome.PROCESSED
        assert result.invoice_id == "INV-1"
        assert result.failures == ()

    def test_invalid_signature(self, processor, invoice):
        body = encode(make_charge_payload())

        result = processor.process(body, sign(body, "sk_test_other"))

        invoice.refresh_from_db()
        assert result.outcome == Outcome.SIGNATURE_INVALID
        assert invoice.status == Invoice.Status.PENDING
        assert side_effect_counts() == (0, 0, 0)

    def test_missing_signature(self, processor, invoice):
        result = processor.process(encode(make_charge_payload()), None)

        assert result.outcome == Outcome.SIGNATURE_INVALID
        assert side_effect_counts() == (0, 0, 0)

    def test_signature_checked_before_parsing(self, processor):
        assert processor.process(b"not json", "bad").outcome == Outcome.SIGNATURE_INVALID

    def test_malformed(self, processor):
        assert deliver(processor, b"not json").outcome == Outcome.MALFORMED

    def test_ignored_event(self, processor, invoice):
        result = deliver(processor, make_charge_payload(event="transfer.success"))

        invoice.refresh_from_db()
        assert result.outcome == Outcome.IGNORED
        assert invoice.status == Invoice.Status.PENDING
        assert side_effect_counts() == (0, 0, 0)

    def test_missing_invoice_id(self, processor, invoice):
        result = deliver(processor, make_charge_payload(invoice_id=None))

        assert result.outcome == Outcome.MISSING_INVOICE_ID
        assert side_effect_counts() == (0, 0, 0)

    def test_unknown_invoice(self, processor):
        result = deliver(processor, make_charge_payload(invoice_id="INV-404"))

        assert result.outcome == Outcome.UNKNOWN_INVOICE
        assert Invoice.objects.count() == 0
        assert side_effect_counts() == (0, 0, 0)

    def test_already_paid(self, processor, invoice):
        Invoice.objects.filter(pk=invoice.pk).update(status=Invoice.Status.PAID)

        result = deliver(processor, make_charge_payload())

        assert result.outcome == Outcome.ALREADY_PROCESSED
        assert Receipt.objects.count() == 0

    def test_lost_race_reports_already_processed(self, processor, invoice, mocker):
        def settle_elsewhere_first(invoice_id):
            decision = original_check(invoice_id)
            Invoice.objects.filter(pk=invoice_id).update(status=Invoice.Status.PAID)
            return decision

        original_check = processor.guard.check
        mocker.patch.object(processor.guard, "check", side_effect=settle_elsewhere_first)

        result = deliver(processor, make_charge_payload())

        assert result.outcome == Outcome.ALREADY_PROCESSED
        assert side_effect_counts() == (0, 0, 0)

    def test_enrichment_failures_are_reported_not_raised(
        self, processor, invoice, mocker
    ):
        mocker.patch.object(
            SettlementExecutor, "_create_receipt", side_effect=DatabaseError("boom")
        )

        result = deliver(processor, make_charge_payload())

        assert result.outcome == Outcome.PROCESSED
        assert [f.step for f in result.failures] == ["receipt"]

    def test_durability_failure_propagates(self, processor, invoice, mocker):
        mocker.patch.object(
            processor.executor, "settle", side_effect=DatabaseError("db down")
        )

        with pytest.raises(DatabaseError):
            deliver(processor, make_charge_payload())


class TestWeakMode:
    def test_unsigned_delivery_is_processed(self, invoice):
        processor = WebhookProcessor(
            ProcessorConfig(secret_key=SECRET, require_signature=False)
        )

        result = processor.process(encode(make_charge_payload()), None)

        assert result.outcome == Outcome.PROCESSED

    def test_bad_signature_still_rejected(self, invoice):
        processor = WebhookProcessor(
            ProcessorConfig(secret_key=SECRET, require_signature=False)
        )
        body = encode(make_charge_payload())

        result = processor.process(body, sign(body, "sk_test_other"))

        assert result.outcome == Outcome.SIGNATURE_INVALID


class TestIdempotency:
    def test_sequential_redelivery_settles_once(self, processor, invoice):
        payload = make_charge_payload()

        first = deliver(processor, payload)
        second = deliver(processor, payload)

        assert first.outcome == Outcome.PROCESSED
        assert second.outcome == Outcome.ALREADY_PROCESSED
        assert side_effect_counts() == (1, 1, 1)

    def test_second_reference_for_paid_invoice_is_ignored(self, processor, invoice):
        deliver(processor, make_charge_payload(reference="R1"))
        result = deliver(processor, make_charge_payload(reference="R2"))

        invoice.refresh_from_db()
        assert result.outcome == Outcome.ALREADY_PROCESSED
        assert invoice.gateway_reference == "R1"
        assert Receipt.objects.get().gateway_reference == "R1"
