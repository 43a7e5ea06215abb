from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Total orders created",
    ["status"] # Labels: 'success', 'failed'
)

ecomm_order_create_duration_seconds = Histogram(
    "ecomm_order_create_duration_seconds",
    "Order creation (reservation + insert) duration in seconds"
)

ecomm_order_transitions_total = Counter(
    "ecomm_order_transitions_total",
    "Total order status transitions applied",
    ["from_status", "to_status"]
)

ecomm_payment_status_total = Counter(
    "ecomm_payment_status_total",
    "Total payment status updates applied",
    ["payment_status"] # Labels: 'paid', 'failed'
)

ecomm_stock_released_units_total = Counter(
    "ecomm_stock_released_units_total",
    "Units of stock returned to inventory by cancellations"
)

ecomm_seller_decisions_total = Counter(
    "ecomm_seller_decisions_total",
    "Total admin decisions on seller accounts",
    ["decision"] # Labels: 'approve', 'reject', 'suspend'
)

ecomm_conflicts_total = Counter(
    "ecomm_conflicts_total",
    "Writes rejected because the record changed since it was read",
    ["operation"]
)
