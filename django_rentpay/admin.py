from django.contrib import admin
from django.http import HttpRequest
from django.urls import reverse
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from django_rentpay.models import AuditLog, Invoice, Notification, Receipt


class ImmutableAdminMixin:
    """Records that are written once by the webhook processor and never edited."""

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    def has_change_permission(self, request: HttpRequest, obj=None) -> bool:
        return False

    def has_delete_permission(self, request: HttpRequest, obj=None) -> bool:
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "invoice_number",
        "student_id",
        "amount",
        "due_date",
        "display_status_colored",
        "gateway_reference",
        "paid_at",
    )
    list_filter = ("status", "due_date", "paid_at")
    search_fields = ("id", "invoice_number", "student_id", "gateway_reference")
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            _("Invoice"),
            {
                "fields": (
                    "id",
                    "invoice_number",
                    "student_id",
                    "agreement_id",
                    "amount",
                    "due_date",
                    "status",
                )
            },
        ),
        (
            _("Payment"),
            {"fields": ("gateway_reference", "paid_at", "receipt_link")},
        ),
        (
            _("Timestamps"),
            {"classes": ("collapse",), "fields": ("created_at", "updated_at")},
        ),
    )

    readonly_fields = (
        "id",
        "gateway_reference",
        "paid_at",
        "receipt_link",
        "created_at",
        "updated_at",
    )

    def get_readonly_fields(self, request: HttpRequest, obj: Invoice | None = None):
        # Paid invoices are owned by the settlement record
        if obj is not None and obj.is_paid:
            return self.readonly_fields + ("status", "amount", "student_id")
        return self.readonly_fields

    @admin.display(description=_("Status"), ordering="status")
    def display_status_colored(self, obj: Invoice) -> str:
        colors = {
            Invoice.Status.PAID: "green",
            Invoice.Status.OVERDUE: "orange",
            Invoice.Status.VOID: "red",
            Invoice.Status.PENDING: "gray",
        }
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            colors.get(obj.status, "gray"),
            obj.get_status_display(),
        )

    @admin.display(description=_("Receipt"))
    def receipt_link(self, obj: Invoice) -> str:
        receipt = Receipt.objects.filter(invoice=obj).first()
        if receipt is None:
            return "-"

        url = reverse("admin:django_rentpay_receipt_change", args=[receipt.pk])
        return format_html('<a href="{}">{}</a>', url, receipt)


@admin.register(Receipt)
class ReceiptAdmin(ImmutableAdminMixin, admin.ModelAdmin):
    list_display = (
        "gateway_reference",
        "invoice",
        "student_id",
        "amount_paid",
        "payment_method",
        "payment_channel",
        "paid_at",
    )
    list_filter = ("payment_method", "payment_channel", "paid_at")
    search_fields = ("gateway_reference", "invoice__id", "student_id")
    date_hierarchy = "paid_at"


@admin.register(AuditLog)
class AuditLogAdmin(ImmutableAdminMixin, admin.ModelAdmin):
    list_display = ("action", "entity_type", "entity_id", "actor_id", "created_at")
    list_filter = ("action", "entity_type", "created_at")
    search_fields = ("entity_id", "actor_id")
    date_hierarchy = "created_at"


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "user_id", "type", "is_read", "created_at")
    list_filter = ("type", "is_read", "created_at")
    search_fields = ("user_id", "title", "message")
    readonly_fields = ("created_at",)
