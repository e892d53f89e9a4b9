from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response
from marketplace.api.serializers import (
    CancelOrderRequestSerializer,
    CreateOrderRequestSerializer,
    ErrorResponseSerializer,
    OrderCreatedResponseSerializer,
    OrderListResponseSerializer,
    StatusUpdateRequestSerializer,
    VerifyPaymentRequestSerializer,
)
from marketplace.ordering.api.serializers.order_serializers import OrderSerializer
from marketplace.permissions import IsAdminRole, IsVendorRole
from utils.rbac import ACTOR_ADMIN, ACTOR_BUYER, ACTOR_VENDOR, build_actor_context

UUID_LOOKUP_REGEX = "[0-9a-fA-F-]{36}"

PAGINATION_PARAMETERS = [
    OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
    OpenApiParameter(name="limit", type=int, description="Items per page (default: 10, max: 100)"),
    OpenApiParameter(name="status", type=str, description="Filter by order status"),
]


def intent_data(intent):
    if intent is None:
        return None
    return {
        "intent_id": intent.intent_id,
        "amount": intent.amount,
        "currency": intent.currency,
        "status": intent.status.value,
        "client_secret": intent.client_secret,
    }


class RoleScopedOrderMixin:
    """List/retrieve shared by the buyer, vendor and admin order endpoints."""

    actor_role = ACTOR_BUYER

    def get_actor(self, request):
        return build_actor_context(request.user, as_role=self.actor_role)

    def get_service(self):
        return container.order_service()

    def list_for_actor(self, request, allow_payment_status=False):
        query = request.query_params
        result = self.get_service().list_orders(
            self.get_actor(request),
            page=query.get("page"),
            limit=query.get("limit"),
            status=query.get("status"),
            payment_status=query.get("payment_status") if allow_payment_status else None,
        )
        if not result.ok:
            return error_response(result)

        response_data = dict(result.value)
        response_data["results"] = OrderSerializer(result.value["results"], many=True).data
        return Response(response_data, status=status.HTTP_200_OK)

    def retrieve_for_actor(self, request, pk):
        return self.scoped_order_response(self.get_actor(request), pk)

    def scoped_order_response(self, actor, order_id):
        # Vendors only get their own line items back
        result = self.get_service().get_order(actor, order_id)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)


class OrderViewSet(RoleScopedOrderMixin, viewsets.ViewSet):
    """Buyer-facing order endpoints."""

    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_LOOKUP_REGEX
    actor_role = ACTOR_BUYER

    @extend_schema(
        operation_id="orders_list",
        summary="List the buyer's orders",
        description="""
        **What it receives:**
        - Authentication token
        - Optional `status` and `payment_status` filters (query params)
        - Pagination parameters (`page`, `limit`)

        **What it returns:**
        - Paginated list of the caller's own orders, newest first
        """,
        parameters=PAGINATION_PARAMETERS
        + [OpenApiParameter(name="payment_status", type=str, description="Filter by payment status")],
        responses={
            200: OpenApiResponse(response=OrderListResponseSerializer, description="Orders retrieved successfully"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid filter or pagination"),
        },
        tags=["Marketplace - Orders"],
    )
    def list(self, request):
        return self.list_for_actor(request, allow_payment_status=True)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order retrieved successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not order owner"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        return self.retrieve_for_actor(request, pk)

    @extend_schema(
        operation_id="orders_create",
        summary="Place an order",
        description="""
        **What it receives:**
        - `items` (list): `offer_id` and `quantity` per vendor offer
        - `shipping_address` (object): name, street, city, state, zip_code, country, phone
        - `billing_address` (object, optional): defaults to the shipping address
        - `payment_method`: `gateway`, `cod` or `wallet`
        - `notes` (string, optional)

        **What it returns:**
        - Created order with frozen prices and totals
        - For `gateway` orders, the payment intent to redirect the buyer with
        - Cash-on-delivery orders reserve stock immediately
        """,
        request=CreateOrderRequestSerializer,
        responses={
            201: OpenApiResponse(response=OrderCreatedResponseSerializer, description="Order created successfully"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Offer not found or not available"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Insufficient stock or duplicate item"),
            502: OpenApiResponse(
                response=ErrorResponseSerializer, description="Order created but the payment gateway call failed"
            ),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Storage conflict, retry later"),
        },
        tags=["Marketplace - Orders"],
    )
    def create(self, request):
        result = self.get_service().create_order(
            self.get_actor(request),
            items=request.data.get("items"),
            shipping_address=request.data.get("shipping_address"),
            payment_method=request.data.get("payment_method"),
            billing_address=request.data.get("billing_address"),
            notes=request.data.get("notes", ""),
        )

        if not result.ok:
            return error_response(result)

        placed = result.value
        return Response(
            {"order": OrderSerializer(placed.order).data, "payment": intent_data(placed.payment_intent)},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="orders_cancel",
        summary="Cancel order",
        description="""
        **What it receives:**
        - `order_id` (UUID in URL): Order to cancel
        - `reason` (string, optional): Cancellation reason

        **What it returns:**
        - Updated order with cancelled status
        - Reserved stock is released; a completed payment becomes refunded
        """,
        request=CancelOrderRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order cancelled successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not order owner"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order already delivered or cancelled"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["patch"])
    def cancel(self, request, pk=None):
        result = container.order_status_service().cancel_order(
            self.get_actor(request), pk, reason=request.data.get("reason", "")
        )
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value.order).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_payment_verify",
        summary="Verify a gateway payment",
        description="""
        **What it receives:**
        - `gateway_order_id`, `gateway_payment_id`, `signature` from the gateway redirect

        **What it returns:**
        - The order with payment status `completed`; stock is reserved for every line item
        - Repeating the same confirmation returns the order unchanged
        """,
        request=VerifyPaymentRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Payment verified"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Missing fields or invalid signature"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Payment conflict or insufficient stock"),
            503: OpenApiResponse(response=ErrorResponseSerializer, description="Write conflicts persisted, retry"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["post"], url_path="payment/verify")
    def verify_payment(self, request):
        # Admins may confirm on a buyer's behalf
        actor = build_actor_context(request.user)
        result = container.payment_confirmation_service().confirm_payment(
            actor,
            gateway_order_id=request.data.get("gateway_order_id"),
            gateway_payment_id=request.data.get("gateway_payment_id"),
            signature=request.data.get("signature"),
        )
        if not result.ok:
            return error_response(result)

        confirmation = result.value
        response_data = OrderSerializer(confirmation.order).data
        response_data["already_confirmed"] = confirmation.already_confirmed
        return Response(response_data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_payment_intent",
        summary="Retry payment initiation",
        description="Creates the gateway intent for a pending gateway order whose first attempt failed.",
        request=None,
        responses={
            200: OpenApiResponse(response=OrderCreatedResponseSerializer, description="Intent available"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order is no longer payable"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment gateway call failed"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="payment-intent")
    def payment_intent(self, request, pk=None):
        result = self.get_service().create_payment_intent(self.get_actor(request), pk)
        if not result.ok:
            return error_response(result)
        placed = result.value
        return Response(
            {"order": OrderSerializer(placed.order).data, "payment": intent_data(placed.payment_intent)},
            status=status.HTTP_200_OK,
        )


class VendorOrderViewSet(RoleScopedOrderMixin, viewsets.ViewSet):
    """Orders containing the calling vendor's items; only those items are shown."""

    permission_classes = [IsAuthenticated, IsVendorRole]
    lookup_value_regex = UUID_LOOKUP_REGEX
    actor_role = ACTOR_VENDOR

    @extend_schema(
        operation_id="vendor_orders_list",
        summary="List orders containing the vendor's items",
        parameters=PAGINATION_PARAMETERS,
        responses={
            200: OpenApiResponse(response=OrderListResponseSerializer, description="Orders retrieved successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a vendor"),
        },
        tags=["Marketplace - Vendor Orders"],
    )
    def list(self, request):
        return self.list_for_actor(request)

    @extend_schema(
        operation_id="vendor_orders_retrieve",
        summary="Get an order containing the vendor's items",
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order retrieved successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Order has none of your items"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Vendor Orders"],
    )
    def retrieve(self, request, pk=None):
        return self.retrieve_for_actor(request, pk)

    @extend_schema(
        operation_id="vendor_orders_status",
        summary="Advance order status",
        description="""
        **What it receives:**
        - `status`: the next status in pending -> confirmed -> processing -> shipped -> delivered

        **What it returns:**
        - The order with the vendor's items
        - Confirming reserves stock for the vendor's items not reserved yet
        """,
        request=StatusUpdateRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Status updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown status"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Order has none of your items"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid transition or no stock"),
        },
        tags=["Marketplace - Vendor Orders"],
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        actor = self.get_actor(request)
        result = container.order_status_service().update_status_as_vendor(actor, pk, request.data.get("status"))
        if not result.ok:
            return error_response(result)
        return self.scoped_order_response(actor, pk)


class AdminOrderViewSet(RoleScopedOrderMixin, viewsets.ViewSet):
    """All orders, with an unrestricted status setter."""

    permission_classes = [IsAuthenticated, IsAdminRole]
    lookup_value_regex = UUID_LOOKUP_REGEX
    actor_role = ACTOR_ADMIN

    @extend_schema(
        operation_id="admin_orders_list",
        summary="List all orders",
        parameters=PAGINATION_PARAMETERS
        + [OpenApiParameter(name="payment_status", type=str, description="Filter by payment status")],
        responses={
            200: OpenApiResponse(response=OrderListResponseSerializer, description="Orders retrieved successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
        },
        tags=["Marketplace - Admin Orders"],
    )
    def list(self, request):
        return self.list_for_actor(request, allow_payment_status=True)

    @extend_schema(
        operation_id="admin_orders_retrieve",
        summary="Get any order",
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order retrieved successfully"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Admin Orders"],
    )
    def retrieve(self, request, pk=None):
        return self.retrieve_for_actor(request, pk)

    @extend_schema(
        operation_id="admin_orders_status",
        summary="Set order status",
        description="""
        **What it receives:**
        - `status`: any defined order status
        - `reason` (string, optional): used when cancelling

        **What it returns:**
        - Updated order. Terminal orders (delivered, cancelled) cannot change.
        """,
        request=StatusUpdateRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Status updated"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown status"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order is terminal or no stock"),
        },
        tags=["Marketplace - Admin Orders"],
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        actor = self.get_actor(request)
        result = container.order_status_service().update_status_as_admin(
            actor, pk, request.data.get("status"), reason=request.data.get("reason", "")
        )
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value.order).data, status=status.HTTP_200_OK)
