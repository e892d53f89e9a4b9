from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter(
    "marketplace_orders_placed_total", "Total orders placed", ["status", "payment_method"]
)
order_value = Histogram(
    "marketplace_order_value",
    "Order grand total distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
order_creation_failures_total = Counter(
    "marketplace_order_creation_failures_total", "Rejected order creation requests", ["reason"]
)

# Payment Metrics
payment_confirmations_total = Counter(
    "marketplace_payment_confirmations_total", "Gateway payment confirmations", ["outcome"]
)
transaction_retries_total = Counter(
    "marketplace_transaction_retries_total", "Transactions re-run after a write conflict", ["operation"]
)

# Stock Metrics
stock_reservation_failures = Counter("marketplace_stock_reservation_failure", "Stock reservation failures")
stock_movements_total = Counter(
    "marketplace_stock_movements_total", "Units moved through the stock ledger", ["direction"]
)

# Fulfillment Metrics
order_status_transitions_total = Counter(
    "marketplace_order_status_transitions_total", "Order status transitions", ["actor_role", "to_status"]
)
