from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from infrastructure.container import container
from marketplace.api.errors import error_response
from marketplace.api.serializers import (
    ErrorResponseSerializer,
    GenerateVendorPaymentRequestSerializer,
    ProcessVendorPaymentRequestSerializer,
    VendorSalesReportSerializer,
)
from marketplace.ordering.api.serializers.order_serializers import VendorPaymentSerializer
from marketplace.permissions import IsAdminRole
from utils.rbac import ACTOR_ADMIN, build_actor_context


class VendorSalesView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    @extend_schema(
        operation_id="admin_vendor_sales",
        summary="Vendor sales report",
        description="""
        **What it receives:**
        - `vendor_id` (in URL)
        - `start_date`, `end_date` (ISO 8601, optional; default is the last 30 days)

        **What it returns:**
        - Totals over the vendor's items in paid, delivered orders
        - Per-product breakdown and the contributing orders
        """,
        parameters=[
            OpenApiParameter(name="start_date", type=str, description="Period start (ISO 8601)"),
            OpenApiParameter(name="end_date", type=str, description="Period end (ISO 8601)"),
        ],
        responses={
            200: OpenApiResponse(response=VendorSalesReportSerializer, description="Report generated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid date range"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Vendor not found"),
        },
        tags=["Marketplace - Admin Vendors"],
    )
    def get(self, request, vendor_id):
        result = container.vendor_sales_service().sales_report(
            build_actor_context(request.user, as_role=ACTOR_ADMIN),
            vendor_id,
            start_date=request.query_params.get("start_date"),
            end_date=request.query_params.get("end_date"),
        )
        if not result.ok:
            return error_response(result)
        return Response(VendorSalesReportSerializer(result.value).data, status=status.HTTP_200_OK)


class VendorPaymentViewSet(viewsets.ViewSet):
    """Vendor payout records."""

    permission_classes = [IsAuthenticated, IsAdminRole]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_service(self):
        return container.vendor_sales_service()

    def get_actor(self, request):
        return build_actor_context(request.user, as_role=ACTOR_ADMIN)

    @extend_schema(
        operation_id="admin_vendor_payments_list",
        summary="List vendor payments",
        parameters=[
            OpenApiParameter(name="vendor_id", type=int, description="Filter by vendor"),
            OpenApiParameter(name="status", type=str, description="Filter by payment status"),
        ],
        responses={
            200: OpenApiResponse(response=VendorPaymentSerializer(many=True), description="Payments retrieved"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid filter"),
        },
        tags=["Marketplace - Admin Vendors"],
    )
    def list(self, request):
        result = self.get_service().list_vendor_payments(
            self.get_actor(request),
            vendor_id=request.query_params.get("vendor_id"),
            status=request.query_params.get("status"),
        )
        if not result.ok:
            return error_response(result)
        return Response(VendorPaymentSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="admin_vendor_payments_generate",
        summary="Generate a vendor payment",
        description="Creates a pending payment worth the payout rate times the vendor's paid sales in the period.",
        request=GenerateVendorPaymentRequestSerializer,
        responses={
            201: OpenApiResponse(response=VendorPaymentSerializer, description="Payment generated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Missing or invalid dates"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Vendor not found"),
        },
        tags=["Marketplace - Admin Vendors"],
    )
    def create(self, request):
        result = self.get_service().generate_vendor_payment(
            self.get_actor(request),
            vendor_id=request.data.get("vendor_id"),
            start_date=request.data.get("start_date"),
            end_date=request.data.get("end_date"),
            notes=request.data.get("notes", ""),
        )
        if not result.ok:
            return error_response(result)

        generated = result.value
        return Response(
            {
                "payment": VendorPaymentSerializer(generated["payment"]).data,
                "sales": {
                    "total_sales": str(generated["total_sales"]),
                    "payment_amount": str(generated["payment_amount"]),
                },
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="admin_vendor_payments_process",
        summary="Mark a vendor payment as paid",
        request=ProcessVendorPaymentRequestSerializer,
        responses={
            200: OpenApiResponse(response=VendorPaymentSerializer, description="Payment processed"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Payment is not pending"),
        },
        tags=["Marketplace - Admin Vendors"],
    )
    @action(detail=True, methods=["patch"])
    def process(self, request, pk=None):
        result = self.get_service().process_vendor_payment(
            self.get_actor(request), pk, transaction_id=request.data.get("transaction_id", "")
        )
        if not result.ok:
            return error_response(result)
        return Response(VendorPaymentSerializer(result.value).data, status=status.HTTP_200_OK)
