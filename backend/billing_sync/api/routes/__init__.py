# API Routes Module
from billing_sync.api.routes import (
    checkout,
    webhooks,
)

__all__ = [
    "checkout",
    "webhooks",
]
