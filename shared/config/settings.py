import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

# Payment gateway
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
CURRENCY = os.getenv("CURRENCY", "usd")

# Pricing rules applied to the cart
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.08"))
DELIVERY_FEE = Decimal(os.getenv("DELIVERY_FEE", "4.99"))
FREE_DELIVERY_THRESHOLD = Decimal(os.getenv("FREE_DELIVERY_THRESHOLD", "30"))

# Toggles
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "true").lower() == "true"
