"""Category and product management."""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..db import transaction
from ..errors import AlreadyExistsError, InvalidStateError, NotFoundError
from ..logger import get_logger
from ..models import Category, Product
from ..repositories import SQLCategoryRepository, SQLOrderItemRepository, SQLProductRepository
from ..schemas import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate

logger = get_logger(__name__)


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.categories = SQLCategoryRepository(session)

    def create_category(self, data: CategoryCreate) -> Category:
        try:
            with transaction(self.session):
                if self.categories.get_by_name(data.name) is not None:
                    raise AlreadyExistsError(f"Category {data.name!r} already exists")
                if data.parent_id is not None:
                    self.get_category(data.parent_id)
                category = self.categories.create(
                    Category(name=data.name, description=data.description, parent_id=data.parent_id)
                )
        except IntegrityError as exc:
            raise AlreadyExistsError(f"Category {data.name!r} already exists") from exc
        return category

    def get_category(self, category_id: UUID) -> Category:
        category = self.categories.get_by_id(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def list_categories(self, limit: int, offset: int) -> Sequence[Category]:
        return self.categories.list(limit, offset)

    def count_categories(self) -> int:
        return self.categories.count()

    def list_root_categories(self) -> Sequence[Category]:
        return self.categories.list_roots()

    def list_children(self, parent_id: UUID) -> Sequence[Category]:
        self.get_category(parent_id)
        return self.categories.list_children(parent_id)

    def _check_parent(self, category_id: UUID, parent_id: UUID) -> None:
        """Walk up from ``parent_id``; reaching ``category_id`` would close a cycle."""

        seen = set()
        current: Optional[UUID] = parent_id
        while current is not None:
            if current == category_id:
                raise InvalidStateError("A category cannot be moved below itself")
            if current in seen:
                raise InvalidStateError("Category hierarchy already contains a cycle")
            seen.add(current)
            ancestor = self.categories.get_by_id(current)
            if ancestor is None:
                raise NotFoundError(f"Category {current} not found")
            current = ancestor.parent_id

    def update_category(self, category_id: UUID, data: CategoryUpdate) -> Category:
        changes = data.model_dump(exclude_unset=True)
        try:
            with transaction(self.session):
                category = self.get_category(category_id)
                name = changes.get("name")
                if name is not None and name != category.name:
                    if self.categories.get_by_name(name) is not None:
                        raise AlreadyExistsError(f"Category {name!r} already exists")
                    category.name = name
                if changes.get("description") is not None:
                    category.description = changes["description"]
                if "parent_id" in changes:
                    parent_id = changes["parent_id"]
                    if parent_id is not None:
                        self._check_parent(category.id, parent_id)
                    category.parent_id = parent_id
                self.categories.update(category)
        except IntegrityError as exc:
            raise AlreadyExistsError("Category name already exists") from exc
        return category

    def delete_category(self, category_id: UUID) -> None:
        with transaction(self.session):
            category = self.get_category(category_id)
            if self.categories.count_children(category.id) > 0:
                raise InvalidStateError("Category still has child categories")
            self.categories.delete(category)
        logger.info("Deleted category %s", category_id)


class ProductService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.products = SQLProductRepository(session)
        self.categories = SQLCategoryRepository(session)
        self.items = SQLOrderItemRepository(session)

    def _require_category(self, category_id: UUID) -> None:
        if self.categories.get_by_id(category_id) is None:
            raise NotFoundError(f"Category {category_id} not found")

    def create_product(self, data: ProductCreate) -> Product:
        try:
            with transaction(self.session):
                if self.products.get_by_sku(data.sku) is not None:
                    raise AlreadyExistsError(f"Product with SKU {data.sku!r} already exists")
                self._require_category(data.category_id)
                product = self.products.create(Product(**data.model_dump()))
        except IntegrityError as exc:
            raise AlreadyExistsError(f"Product with SKU {data.sku!r} already exists") from exc
        logger.info("Created product %s (%s)", product.id, data.sku)
        return product

    def get_product(self, product_id: UUID) -> Product:
        product = self.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list_products(
        self,
        limit: int,
        offset: int,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> Sequence[Product]:
        if category_id is not None:
            self._require_category(category_id)
        return self.products.list(limit, offset, category_id=category_id, active_only=active_only, search=search)

    def count_products(
        self,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> int:
        return self.products.count(category_id=category_id, active_only=active_only, search=search)

    def update_product(self, product_id: UUID, data: ProductUpdate) -> Product:
        changes = {key: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None}
        try:
            with transaction(self.session):
                product = self.get_product(product_id)
                sku = changes.get("sku")
                if sku is not None and sku != product.sku and self.products.get_by_sku(sku) is not None:
                    raise AlreadyExistsError(f"Product with SKU {sku!r} already exists")
                category_id = changes.get("category_id")
                if category_id is not None and category_id != product.category_id:
                    self._require_category(category_id)
                stock = changes.pop("stock", None)
                if stock is not None and stock < 0:
                    raise InvalidStateError("Stock cannot be negative")
                for field, value in changes.items():
                    setattr(product, field, value)
                self.products.update(product)
                if stock is not None:
                    self.products.update_stock(product.id, stock)
        except IntegrityError as exc:
            raise AlreadyExistsError("Product SKU already exists") from exc
        return product

    def delete_product(self, product_id: UUID) -> None:
        with transaction(self.session):
            product = self.get_product(product_id)
            if self.items.count_by_product(product.id) > 0:
                raise InvalidStateError("Product is referenced by existing orders")
            self.products.delete(product)
        logger.info("Deleted product %s", product_id)
