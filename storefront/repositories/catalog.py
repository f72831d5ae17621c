"""Category and product repositories."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import col, select

from ..models import Category, Product, utcnow
from .session import SessionRepository


class SQLCategoryRepository(SessionRepository):
    def create(self, category: Category) -> Category:
        return self._save(category)

    def get_by_id(self, category_id: UUID) -> Optional[Category]:
        return self.session.get(Category, category_id)

    def get_by_name(self, name: str) -> Optional[Category]:
        return self.session.exec(select(Category).where(Category.name == name)).first()

    def list(self, limit: int, offset: int) -> Sequence[Category]:
        statement = select(Category).order_by(Category.name).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def count(self) -> int:
        return int(self.session.exec(select(func.count()).select_from(Category)).one())

    def list_roots(self) -> Sequence[Category]:
        statement = select(Category).where(col(Category.parent_id).is_(None)).order_by(Category.name)
        return self.session.exec(statement).all()

    def list_children(self, parent_id: UUID) -> Sequence[Category]:
        statement = select(Category).where(Category.parent_id == parent_id).order_by(Category.name)
        return self.session.exec(statement).all()

    def count_children(self, parent_id: UUID) -> int:
        statement = select(func.count()).select_from(Category).where(Category.parent_id == parent_id)
        return int(self.session.exec(statement).one())

    def update(self, category: Category) -> Category:
        return self._save(category, touch=True)

    def delete(self, category: Category) -> None:
        self._remove(category)


class SQLProductRepository(SessionRepository):
    def create(self, product: Product) -> Product:
        return self._save(product)

    def get_by_id(self, product_id: UUID) -> Optional[Product]:
        return self.session.get(Product, product_id)

    def get_by_sku(self, sku: str) -> Optional[Product]:
        return self.session.exec(select(Product).where(Product.sku == sku)).first()

    @staticmethod
    def _filters(category_id: Optional[UUID], active_only: bool, search: Optional[str]) -> List[Any]:
        filters: List[Any] = []
        if category_id is not None:
            filters.append(Product.category_id == category_id)
        if active_only:
            filters.append(col(Product.is_active).is_(True))
        if search:
            filters.append(col(Product.name).ilike(f"%{search}%"))
        return filters

    def list(
        self,
        limit: int,
        offset: int,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> Sequence[Product]:
        statement = select(Product)
        for condition in self._filters(category_id, active_only, search):
            statement = statement.where(condition)
        statement = statement.order_by(Product.name, Product.id).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def count(
        self,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> int:
        statement = select(func.count()).select_from(Product)
        for condition in self._filters(category_id, active_only, search):
            statement = statement.where(condition)
        return int(self.session.exec(statement).one())

    def update(self, product: Product) -> Product:
        return self._save(product, touch=True)

    def update_stock(self, product_id: UUID, stock: int) -> bool:
        """Set the absolute stock level; returns ``False`` when the product is missing."""

        statement = update(Product).where(col(Product.id) == product_id).values(stock=stock, updated_at=utcnow())
        result = self.session.exec(statement)  # type: ignore[call-overload]
        self.session.expire_all()
        return result.rowcount == 1

    def adjust_stock(self, product_id: UUID, delta: int) -> bool:
        """Add ``delta`` to the stock in a single conditional statement.

        A negative delta only applies while enough units remain, so stock
        never drops below zero.  Returns ``False`` when no row matched.
        """

        statement = update(Product).where(col(Product.id) == product_id)
        if delta < 0:
            statement = statement.where(col(Product.stock) >= -delta)
        statement = statement.values(stock=Product.stock + delta, updated_at=utcnow())
        result = self.session.exec(statement)  # type: ignore[call-overload]
        self.session.expire_all()
        return result.rowcount == 1

    def delete(self, product: Product) -> None:
        self._remove(product)
