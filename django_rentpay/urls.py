from django.urls import path

from django_rentpay import views

app_name = "django_rentpay"

urlpatterns = [
    path("webhook/", views.webhook, name="webhook"),
    path("api/initialize/", views.initialize, name="initialize"),
    path("api/receipts/", views.receipts, name="receipts"),
]
