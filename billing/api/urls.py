"""API URL routing for billing."""
from django.urls import path

from .views import InvoiceTotalsView

urlpatterns = [
    path('invoices/calculate/', InvoiceTotalsView.as_view(), name='invoice-calculate'),
]
