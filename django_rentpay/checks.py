from django.core.checks import Error, Tags, Warning, register

from django_rentpay.conf import settings as app_settings


@register(Tags.security)
def check_paystack_secret(app_configs, **kwargs):
    """Webhook signatures cannot be verified without the shared secret."""
    if app_settings.PAYSTACK_SECRET_KEY:
        return []

    if app_settings.REQUIRE_SIGNATURE:
        return [
            Error(
                "DJANGO_RENTPAY_PAYSTACK_SECRET_KEY is not set.",
                hint=(
                    "Set it (or the PAYSTACK_SECRET_KEY environment variable) so "
                    "webhook signatures can be verified."
                ),
                id="django_rentpay.E001",
            )
        ]

    return [
        Warning(
            "Paystack webhooks are accepted without signature verification.",
            hint="Set DJANGO_RENTPAY_PAYSTACK_SECRET_KEY in production.",
            id="django_rentpay.W001",
        )
    ]
