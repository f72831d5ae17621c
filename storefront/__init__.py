"""Storefront backend: catalog, orders and dual-mode authentication."""

from .version import APP_VERSION

__all__ = ["APP_VERSION"]
