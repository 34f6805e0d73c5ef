from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class DjangoRentPayAppConfig(AppConfig):
    default = True
    default_auto_field = "django.db.models.BigAutoField"
    name = "django_rentpay"
    verbose_name = _("Rent Payments")

    def ready(self):
        from django_rentpay import checks  # noqa: F401
