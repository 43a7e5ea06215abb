import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Pricing (flat, illustrative only)
TAX_RATE = float(os.getenv("TAX_RATE", "0.10"))
FREE_SHIPPING_THRESHOLD = float(os.getenv("FREE_SHIPPING_THRESHOLD", "50"))
SHIPPING_CHARGE = float(os.getenv("SHIPPING_CHARGE", "10"))
ESTIMATED_DELIVERY_DAYS = int(os.getenv("ESTIMATED_DELIVERY_DAYS", "7"))

# Dashboards
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
RECENT_REVENUE_DAYS = int(os.getenv("RECENT_REVENUE_DAYS", "30"))
DASHBOARD_LIST_SIZE = int(os.getenv("DASHBOARD_LIST_SIZE", "5"))

# Observability / security toggles
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _env_flag("SQL_ECHO", "false")
OTEL_ENABLED = _env_flag("OTEL_ENABLED", "true")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "10/minute")
