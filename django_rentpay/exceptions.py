class RentPay_Error(Exception):
    """Common base class for django-rentpay exceptions"""

    pass


class SignatureInvalid(RentPay_Error):
    """The webhook signature is missing or does not match the request body."""

    pass


class RentPay_InputError(RentPay_Error):
    """The webhook body cannot be used to settle an invoice."""

    pass


class MalformedEvent(RentPay_InputError):
    pass


class MissingInvoiceId(RentPay_InputError):
    pass


class PaystackAPIError(RentPay_Error):
    pass
