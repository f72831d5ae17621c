"""Persistence layer."""

from .base import (
    CategoryRepository,
    CustomerRepository,
    OrderItemRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)
from .catalog import SQLCategoryRepository, SQLProductRepository
from .orders import SQLOrderItemRepository, SQLOrderRepository
from .users import SQLCustomerRepository, SQLUserRepository

__all__ = [
    "CategoryRepository",
    "CustomerRepository",
    "OrderItemRepository",
    "OrderRepository",
    "ProductRepository",
    "SQLCategoryRepository",
    "SQLCustomerRepository",
    "SQLOrderItemRepository",
    "SQLOrderRepository",
    "SQLProductRepository",
    "SQLUserRepository",
    "UserRepository",
]
