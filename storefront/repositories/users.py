"""User and customer repositories."""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select

from ..models import Customer, User
from .session import SessionRepository


class SQLUserRepository(SessionRepository):
    def create(self, user: User) -> User:
        return self._save(user)

    def get_by_id(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email)).first()

    def list(self, limit: int, offset: int) -> Sequence[User]:
        statement = select(User).order_by(User.created_at.desc(), User.id).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def count(self) -> int:
        return int(self.session.exec(select(func.count()).select_from(User)).one())

    def update(self, user: User) -> User:
        return self._save(user, touch=True)

    def delete(self, user: User) -> None:
        self._remove(user)


class SQLCustomerRepository(SessionRepository):
    def create(self, customer: Customer) -> Customer:
        return self._save(customer)

    def get_by_id(self, customer_id: UUID) -> Optional[Customer]:
        return self.session.get(Customer, customer_id)

    def get_by_email(self, email: str) -> Optional[Customer]:
        return self.session.exec(select(Customer).where(Customer.email == email)).first()

    def list(self, limit: int, offset: int) -> Sequence[Customer]:
        statement = select(Customer).order_by(Customer.created_at.desc(), Customer.id).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def count(self) -> int:
        return int(self.session.exec(select(func.count()).select_from(Customer)).one())

    def update(self, customer: Customer) -> Customer:
        return self._save(customer, touch=True)

    def delete(self, customer: Customer) -> None:
        self._remove(customer)
