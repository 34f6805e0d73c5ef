import uuid
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _


def generate_invoice_id() -> str:
    return uuid.uuid4().hex


class Invoice(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")
        OVERDUE = "overdue", _("Overdue")
        VOID = "void", _("Void")

    id = models.CharField(
        primary_key=True,
        max_length=64,
        default=generate_invoice_id,
        editable=False,
    )
    invoice_number = models.CharField(max_length=64, blank=True)

    # Owned by the auth and tenancy domains, referenced by identifier only
    student_id = models.CharField(max_length=64, db_index=True)
    agreement_id = models.CharField(max_length=64, blank=True)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text=_("Amount owed in major currency units"),
    )
    due_date = models.DateField(blank=True, null=True)

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    # Populated when the gateway confirms payment
    gateway_reference = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Paystack transaction reference"),
    )
    paid_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "rentpay_invoice"
        verbose_name = _("Rent Invoice")
        verbose_name_plural = _("Rent Invoices")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["student_id", "status"], name="rentpay_invoice_student_idx"
            ),
        ]

    def __str__(self):
        return self.invoice_number or self.id

    @property
    def is_paid(self) -> bool:
        return self.status == self.Status.PAID


class Receipt(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)

    invoice = models.OneToOneField(
        Invoice, on_delete=models.PROTECT, related_name="receipt"
    )
    student_id = models.CharField(max_length=64, db_index=True)

    amount_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Amount paid in major currency units"),
    )
    payment_method = models.CharField(max_length=32)
    gateway_reference = models.CharField(max_length=255, blank=True)
    payment_channel = models.CharField(max_length=32, blank=True)
    paid_at = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "rentpay_receipt"
        verbose_name = _("Receipt")
        verbose_name_plural = _("Receipts")
        ordering = ["-paid_at"]

    def __str__(self):
        return self.gateway_reference or str(self.id)


class AuditLog(models.Model):
    """
    Append-only record of billing actions, kept for forensic traceability.
    """

    class Action(models.TextChoices):
        PAYMENT_INITIALIZED = "payment_initialized", _("Payment Initialized")
        PAYMENT_CONFIRMED = "payment_confirmed", _("Payment Confirmed")

    entity_type = models.CharField(max_length=64)
    entity_id = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=64, choices=Action.choices)
    actor_id = models.CharField(max_length=64, blank=True)
    metadata = models.JSONField(default=dict, encoder=DjangoJSONEncoder)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "rentpay_audit_log"
        verbose_name = _("Audit Log Entry")
        verbose_name_plural = _("Audit Log")
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["entity_type", "entity_id"], name="rentpay_audit_entity_idx"
            ),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"


class Notification(models.Model):
    class Type(models.TextChoices):
        PAYMENT = "payment", _("Payment")

    user_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255)
    message = models.TextField()
    type = models.CharField(max_length=32, choices=Type.choices, default=Type.PAYMENT)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "rentpay_notification"
        verbose_name = _("Notification")
        verbose_name_plural = _("Notifications")
        ordering = ["-created_at"]

    def __str__(self):
        return self.title
