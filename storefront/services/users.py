"""User and customer account management."""

from __future__ import annotations

from typing import Any, Dict, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..db import transaction
from ..errors import AlreadyExistsError, InvalidStateError, NotFoundError
from ..logger import get_logger
from ..models import Customer, User
from ..repositories import SQLCustomerRepository, SQLOrderRepository, SQLUserRepository
from ..schemas import CustomerCreate, CustomerUpdate, UserUpdate
from .auth import normalize_email

logger = get_logger(__name__)

# Contact fields an explicit null resets to empty; names and email keep their value.
CLEARABLE_CUSTOMER_FIELDS = ("phone", "address", "city", "state", "zip_code", "country")


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = SQLUserRepository(session)

    def get_user(self, user_id: UUID) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def list_users(self, limit: int, offset: int) -> Sequence[User]:
        return self.users.list(limit, offset)

    def count_users(self) -> int:
        return self.users.count()

    def update_user(self, user_id: UUID, data: UserUpdate) -> User:
        try:
            with transaction(self.session):
                user = self.get_user(user_id)
                if data.email is not None:
                    email = normalize_email(data.email)
                    if email != user.email:
                        if self.users.get_by_email(email) is not None:
                            raise AlreadyExistsError("User with this email already exists")
                        user.email = email
                if data.name is not None:
                    user.name = data.name
                self.users.update(user)
        except IntegrityError as exc:
            raise AlreadyExistsError("User with this email already exists") from exc
        return user

    def delete_user(self, user_id: UUID) -> None:
        with transaction(self.session):
            self.users.delete(self.get_user(user_id))
        logger.info("Deleted user %s", user_id)


class CustomerService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.customers = SQLCustomerRepository(session)
        self.orders = SQLOrderRepository(session)

    def create_customer(self, data: CustomerCreate) -> Customer:
        email = normalize_email(data.email)
        try:
            with transaction(self.session):
                if self.customers.get_by_email(email) is not None:
                    raise AlreadyExistsError("Customer with this email already exists")
                customer = self.customers.create(Customer(**data.model_dump(exclude={"email"}), email=email))
        except IntegrityError as exc:
            raise AlreadyExistsError("Customer with this email already exists") from exc
        logger.info("Registered customer %s", customer.id)
        return customer

    def get_customer(self, customer_id: UUID) -> Customer:
        customer = self.customers.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_customer_by_email(self, email: str) -> Customer:
        customer = self.customers.get_by_email(normalize_email(email))
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    def list_customers(self, limit: int, offset: int) -> Sequence[Customer]:
        return self.customers.list(limit, offset)

    def count_customers(self) -> int:
        return self.customers.count()

    def update_customer(self, customer_id: UUID, data: CustomerUpdate) -> Customer:
        changes: Dict[str, Any] = {}
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key in CLEARABLE_CUSTOMER_FIELDS:
                value = ""
            if value is not None:
                changes[key] = value
        try:
            with transaction(self.session):
                customer = self.get_customer(customer_id)
                email = changes.pop("email", None)
                if email is not None:
                    email = normalize_email(email)
                    if email != customer.email:
                        if self.customers.get_by_email(email) is not None:
                            raise AlreadyExistsError("Customer with this email already exists")
                        customer.email = email
                for field, value in changes.items():
                    setattr(customer, field, value)
                self.customers.update(customer)
        except IntegrityError as exc:
            raise AlreadyExistsError("Customer with this email already exists") from exc
        return customer

    def delete_customer(self, customer_id: UUID) -> None:
        with transaction(self.session):
            customer = self.get_customer(customer_id)
            if self.orders.count(customer_id=customer.id) > 0:
                raise InvalidStateError("Customer still has orders")
            self.customers.delete(customer)
        logger.info("Deleted customer %s", customer_id)
