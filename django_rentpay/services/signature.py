import hashlib
import hmac
import logging

from django_rentpay.exceptions import SignatureInvalid

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def compute_signature(body: bytes, secret_key: str) -> str:
    """Hex HMAC-SHA512 of the raw request body, as Paystack sends it."""
    return hmac.new(secret_key.encode("utf-8"), body, hashlib.sha512).hexdigest()


class SignatureVerifier:
    """
    Authenticates webhook deliveries against the shared Paystack secret.

    The digest is always computed over the body bytes exactly as received.
    Re-serializing the parsed JSON changes key order and whitespace, which
    would make every genuine signature fail.
    """

    def __init__(self, secret_key: str | None, require_signature: bool = True):
        self.secret_key = secret_key
        self.require_signature = require_signature

    def verify(self, body: bytes, signature: str | None) -> None:
        """
        Raises:
            SignatureInvalid: If the signature is missing (when required) or
                does not match the body.
        """
        if not self.secret_key or not signature:
            if self.require_signature:
                raise SignatureInvalid("Missing webhook signature")

            logger.warning(
                "[django-rentpay] Skipping signature verification (secret=%s, header=%s)",
                bool(self.secret_key),
                bool(signature),
            )
            return

        expected = compute_signature(body, self.secret_key)
        provided = signature.strip().lower().encode("utf-8")
        if not hmac.compare_digest(expected.encode("ascii"), provided):
            raise SignatureInvalid("Webhook signature mismatch")
