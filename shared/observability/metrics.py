from prometheus_client import Counter

# Business Metrics
restaurant_checkout_sessions_total = Counter(
    "restaurant_checkout_sessions_total",
    "Checkout sessions requested from the payment gateway",
    ["status"] # Labels: 'created', 'failed'
)

restaurant_orders_reconciled_total = Counter(
    "restaurant_orders_reconciled_total",
    "Reconciliation attempts turning paid sessions into orders",
    ["path", "outcome"] # path: 'verify' | 'webhook'; outcome: 'created' | 'duplicate' | 'rejected'
)

restaurant_webhook_events_total = Counter(
    "restaurant_webhook_events_total",
    "Verified payment gateway notifications received",
    ["event_type"]
)

restaurant_order_status_changes_total = Counter(
    "restaurant_order_status_changes_total",
    "Order status changes",
    ["actor", "status"] # actor: 'customer' | 'admin' | 'admin_override'
)
