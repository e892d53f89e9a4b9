from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .ordering.api.views import (
    AdminOrderViewSet,
    OrderViewSet,
    VendorOrderViewSet,
    VendorPaymentViewSet,
    VendorSalesView,
)

# Role-prefixed order routes are registered before the buyer routes
router = DefaultRouter()
router.register(r"orders/admin", AdminOrderViewSet, basename="admin-order")
router.register(r"orders/vendor", VendorOrderViewSet, basename="vendor-order")
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"admin/vendor-payments", VendorPaymentViewSet, basename="vendor-payment")

app_name = "marketplace"

urlpatterns = [
    path("admin/vendors/<int:vendor_id>/sales/", VendorSalesView.as_view(), name="vendor-sales"),
    # Main API routes
    path("", include(router.urls)),
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.marketplace_prometheus_metrics, name="marketplace-metrics"),
]
