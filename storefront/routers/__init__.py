"""API routers."""

from . import auth, categories, customers, notifications, oidc, orders, products, status, users

__all__ = ["auth", "categories", "customers", "notifications", "oidc", "orders", "products", "status", "users"]
