from .setup import setup_observability, configure_logging
from .metrics import (
    ecomm_orders_created_total,
    ecomm_order_create_duration_seconds,
    ecomm_order_transitions_total,
    ecomm_payment_status_total,
    ecomm_stock_released_units_total,
    ecomm_seller_decisions_total,
    ecomm_conflicts_total,
)
