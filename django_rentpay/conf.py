import os
from dataclasses import dataclass

from django.conf import settings as dj_settings
from django.core.signals import setting_changed

DEFAULTS = {
    "PAYSTACK_SECRET_KEY": None,
    "REQUIRE_SIGNATURE": True,
    "CURRENCY": "GHS",
    "PAYMENT_METHOD": "paystack",
    "API_BASE_URL": "https://api.paystack.co",
    "API_TIMEOUT": 30,
    "CALLBACK_URL": None,
    "PAYMENT_CHANNELS": ("card", "mobile_money", "bank"),
}

# Settings that may also come from the process environment
ENVIRONMENT_FALLBACKS = {
    "PAYSTACK_SECRET_KEY": "PAYSTACK_SECRET_KEY",
}


class Settings(object):
    def __getattr__(self, name):
        if name not in DEFAULTS:
            msg = "'%s' object has no attribute '%s'"
            raise AttributeError(msg % (self.__class__.__name__, name))

        value = self.get_setting(name)

        # Cache the result
        setattr(self, name, value)
        return value

    def get_setting(self, setting):
        django_setting = f"DJANGO_RENTPAY_{setting}"
        if hasattr(dj_settings, django_setting):
            return getattr(dj_settings, django_setting)

        env_name = ENVIRONMENT_FALLBACKS.get(setting)
        if env_name and os.environ.get(env_name):
            return os.environ[env_name]

        return DEFAULTS[setting]

    def change_setting(self, setting, value, enter, **kwargs):
        if not setting.startswith("DJANGO_RENTPAY_"):
            return

        setting = setting.split("DJANGO_RENTPAY_")[1]  # strip 'DJANGO_RENTPAY_'

        # ensure a valid app setting is being overridden
        if setting not in DEFAULTS:
            return

        # drop the cached value so the next access re-reads it
        self.__dict__.pop(setting, None)


settings = Settings()
setting_changed.connect(settings.change_setting)


@dataclass(frozen=True)
class ProcessorConfig:
    """
    Read-only snapshot of the settings the webhook processor depends on.

    Built once and handed to the processor at construction time; nothing in
    the processing path reads Django settings directly.
    """

    secret_key: str | None
    require_signature: bool = True
    currency: str = "GHS"
    payment_method: str = "paystack"

    @classmethod
    def from_settings(cls) -> "ProcessorConfig":
        return cls(
            secret_key=settings.PAYSTACK_SECRET_KEY or None,
            require_signature=bool(settings.REQUIRE_SIGNATURE),
            currency=settings.CURRENCY,
            payment_method=settings.PAYMENT_METHOD,
        )
