"""Business services."""

from .auth import AuthService, IssuedTokens, LoginResult, OIDCLoginResult
from .catalog import CategoryService, ProductService
from .notifications import NotificationDispatcher
from .order_numbers import OrderNumberAllocator
from .orders import OrderService
from .users import CustomerService, UserService

__all__ = [
    "AuthService",
    "CategoryService",
    "CustomerService",
    "IssuedTokens",
    "LoginResult",
    "NotificationDispatcher",
    "OIDCLoginResult",
    "OrderNumberAllocator",
    "OrderService",
    "ProductService",
    "UserService",
]
