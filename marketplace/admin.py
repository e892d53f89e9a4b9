from django.contrib import admin, messages
from django.utils.html import format_html

from infrastructure.container import container
from utils.rbac import ACTOR_ADMIN, build_actor_context

from .models import Cart, CartItem, Order, OrderItem, Product, Vendor, VendorOffer, VendorPayment


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'brand', 'is_active', 'image_preview', 'created_at')
    list_filter = ('is_active', 'created_at')
    search_fields = ('name', 'brand', 'slug')
    readonly_fields = ('slug', 'image_preview', 'created_at', 'updated_at')

    def image_preview(self, obj):
        from marketplace.catalog.domain.images import normalize_image_reference

        reference = normalize_image_reference(obj.images)
        if reference:
            return format_html('<img src="{}" width="100" height="100" />', reference.url)
        return "No Image"
    image_preview.short_description = "Preview"


class VendorOfferInline(admin.TabularInline):
    model = VendorOffer
    extra = 0
    fields = ('product', 'sku', 'price', 'shipping_price', 'stock', 'approval_status', 'is_active')


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ('business_name', 'user', 'business_email', 'status', 'last_payment_date')
    list_filter = ('status',)
    search_fields = ('business_name', 'business_email', 'user__email')
    readonly_fields = ('last_payment_date', 'created_at', 'updated_at')

    inlines = [VendorOfferInline]


@admin.register(VendorOffer)
class VendorOfferAdmin(admin.ModelAdmin):
    list_display = ('sku', 'product', 'vendor', 'price', 'stock', 'approval_status', 'is_active')
    list_filter = ('approval_status', 'is_active', 'vendor')
    search_fields = ('sku', 'product__name', 'vendor__business_name')
    # Stock moves only through the order engine
    readonly_fields = ('created_at', 'updated_at')

    actions = ['approve_offers', 'reject_offers']

    def approve_offers(self, request, queryset):
        updated = queryset.update(approval_status='approved')
        self.message_user(request, f"{updated} offers approved.")
    approve_offers.short_description = "Approve selected offers"

    def reject_offers(self, request, queryset):
        updated = queryset.update(approval_status='rejected')
        self.message_user(request, f"{updated} offers rejected.")
    reject_offers.short_description = "Reject selected offers"


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('offer', 'vendor', 'quantity', 'unit_price', 'unit_shipping_price', 'total_price',
                       'product_name', 'stock_reserved', 'reserved_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'buyer', 'status', 'payment_status', 'payment_method',
                    'grand_total', 'created_at', 'item_count')
    list_filter = ('status', 'payment_status', 'payment_method', 'created_at')
    search_fields = ('order_number', 'id', 'gateway_order_id', 'buyer__email')
    readonly_fields = ('id', 'order_number', 'status', 'payment_status', 'total_amount', 'shipping_price',
                       'grand_total', 'gateway_order_id', 'gateway_payment_id', 'paid_at', 'delivered_at',
                       'cancelled_at', 'cancelled_by', 'created_at', 'updated_at', 'item_count')

    inlines = [OrderItemInline]

    fieldsets = (
        ('Order Information', {
            'fields': ('id', 'order_number', 'buyer', 'status', 'payment_status', 'payment_method')
        }),
        ('Pricing', {
            'fields': ('total_amount', 'shipping_price', 'grand_total', 'currency')
        }),
        ('Gateway', {
            'fields': ('gateway_order_id', 'gateway_payment_id', 'paid_at'),
            'classes': ('collapse',)
        }),
        ('Addresses', {
            'fields': ('shipping_address', 'billing_address')
        }),
        ('Notes', {
            'fields': ('notes', 'cancellation_reason', 'cancelled_by', 'cancelled_at'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'delivered_at'),
            'classes': ('collapse',)
        })
    )

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = "Items"

    actions = ['mark_confirmed', 'mark_shipped', 'mark_delivered', 'cancel_orders']

    def _set_status(self, request, queryset, new_status):
        # Route through the status machine so stock and payment stay consistent
        actor = build_actor_context(request.user, as_role=ACTOR_ADMIN)
        service = container.order_status_service()
        changed = 0
        for order in queryset:
            result = service.update_status_as_admin(actor, order.pk, new_status, reason="Cancelled from admin")
            if result.ok:
                changed += 1
            else:
                self.message_user(request, f"{order.order_number}: {result.error_detail}", level=messages.WARNING)
        self.message_user(request, f"{changed} orders marked as {new_status}.")

    def mark_confirmed(self, request, queryset):
        self._set_status(request, queryset, 'confirmed')
    mark_confirmed.short_description = "Mark selected orders as confirmed"

    def mark_shipped(self, request, queryset):
        self._set_status(request, queryset, 'shipped')
    mark_shipped.short_description = "Mark selected orders as shipped"

    def mark_delivered(self, request, queryset):
        self._set_status(request, queryset, 'delivered')
    mark_delivered.short_description = "Mark selected orders as delivered"

    def cancel_orders(self, request, queryset):
        self._set_status(request, queryset, 'cancelled')
    cancel_orders.short_description = "Cancel selected orders"


@admin.register(VendorPayment)
class VendorPaymentAdmin(admin.ModelAdmin):
    list_display = ('vendor', 'amount', 'period_start', 'period_end', 'status', 'payment_date')
    list_filter = ('status', 'payment_date')
    search_fields = ('vendor__business_name', 'transaction_id')
    readonly_fields = ('amount', 'period_start', 'period_end', 'created_at', 'updated_at')


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    readonly_fields = ('total_price',)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ('user', 'created_at', 'updated_at')
    search_fields = ('user__email',)
    readonly_fields = ('created_at', 'updated_at')

    inlines = [CartItemInline]
