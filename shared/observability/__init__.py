from .setup import setup_observability
from .metrics import (
    restaurant_checkout_sessions_total,
    restaurant_orders_reconciled_total,
    restaurant_webhook_events_total,
    restaurant_order_status_changes_total,
)
