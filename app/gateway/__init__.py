"""Per-resource wrappers around the commission backend API."""
from . import auth, commissions, coupons, dashboard, manager, payments, users, whatsapp
from .client import ApiClient, ApiResult

__all__ = [
    "ApiClient",
    "ApiResult",
    "auth",
    "commissions",
    "coupons",
    "dashboard",
    "manager",
    "payments",
    "users",
    "whatsapp",
]
