"""카탈로그 저장소 어댑터.

관계형 카탈로그에서 활성 상품과 카테고리를 읽어옵니다.
쓰기 작업은 수행하지 않습니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..utils.errors import CatalogError
from ..utils.logger import get_logger
from .models import CatalogPage, CatalogProduct, Category, ProductStatus

logger = get_logger(__name__)

metadata = MetaData()

products_table = Table(
    "products",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("sku", String(100)),
    Column("brand", String(100)),
    Column("model", String(100)),
    Column("category_id", String(64)),
    Column("wholesale_price", Float, nullable=False, default=0),
    Column("retail_price", Float),
    Column("market_price", Float),
    Column("currency", String(3), nullable=False, default="JPY"),
    Column("condition", String(32), nullable=False, default="new"),
    Column("status", String(32), nullable=False, default="active"),
    Column("supplier", String(255)),
    Column("stock_quantity", Integer, nullable=False, default=0),
    Column("images", JSON),
    Column("primary_image_url", String(500)),
    Column("specifications", JSON),
    Column("tags", JSON),
    Column("view_count", Integer, nullable=False, default=0),
    Column("average_rating", Float, nullable=False, default=0),
    Column("review_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("version", Integer),
)

categories_table = Table(
    "categories",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("slug", String(120), nullable=False, unique=True),
    Column("description", Text),
    Column("image_url", String(500)),
    Column("sort_order", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("parent_id", String(64)),
)


class CatalogStore(Protocol):
    """카탈로그 조회 인터페이스."""

    async def get_active_product_by_id(self, product_id: str) -> CatalogProduct | None:
        """활성 상품을 조회합니다. 없거나 비활성이면 None."""
        ...

    async def list_active_products(
        self, cursor: str | None = None, limit: int = 500
    ) -> CatalogPage:
        """id 오름차순 커서로 활성 상품 페이지를 반환합니다."""
        ...

    async def list_categories(self) -> list[Category]:
        """활성 카테고리 전체를 반환합니다."""
        ...


class SqlCatalogStore:
    """SQLAlchemy Core 기반 카탈로그 저장소.

    동기 엔진을 사용하며 각 조회는 ``asyncio.to_thread`` 로 실행되어
    이벤트 루프를 막지 않습니다.

    Examples:
        >>> store = SqlCatalogStore.from_url("postgresql+psycopg://...")
        >>> product = await store.get_active_product_by_id("p-001")
    """

    def __init__(self, engine: Engine):
        """SqlCatalogStore를 초기화합니다.

        Args:
            engine: SQLAlchemy Engine
        """
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> SqlCatalogStore:
        """접속 URL로 저장소를 생성합니다."""
        return cls(create_engine(database_url, **engine_kwargs))

    def create_schema(self) -> None:
        """products/categories 테이블을 생성합니다. (로컬 개발/테스트용)"""
        metadata.create_all(self.engine)

    async def get_active_product_by_id(self, product_id: str) -> CatalogProduct | None:
        return await self._run(self._get_active_product_by_id, product_id)

    async def list_active_products(
        self, cursor: str | None = None, limit: int = 500
    ) -> CatalogPage:
        return await self._run(self._list_active_products, cursor, limit)

    async def list_categories(self) -> list[Category]:
        return await self._run(self._list_categories)

    async def _run(self, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            logger.error(f"카탈로그 조회 실패: {e}")
            raise CatalogError(f"카탈로그 조회 실패: {e}") from e

    def _get_active_product_by_id(self, product_id: str) -> CatalogProduct | None:
        stmt = select(products_table).where(
            products_table.c.id == product_id,
            products_table.c.status == ProductStatus.ACTIVE.value,
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return _row_to_product(row) if row else None

    def _list_active_products(self, cursor: str | None, limit: int) -> CatalogPage:
        stmt = (
            select(products_table)
            .where(products_table.c.status == ProductStatus.ACTIVE.value)
            .order_by(products_table.c.id)
            .limit(limit)
        )
        if cursor is not None:
            stmt = stmt.where(products_table.c.id > cursor)

        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()

        items = [_row_to_product(row) for row in rows]
        next_cursor = items[-1].id if len(items) == limit else None
        return CatalogPage(items=items, next_cursor=next_cursor)

    def _list_categories(self) -> list[Category]:
        stmt = (
            select(categories_table)
            .where(categories_table.c.is_active.is_(True))
            .order_by(categories_table.c.sort_order, categories_table.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [Category(**dict(row)) for row in rows]


def _row_to_product(row: Any) -> CatalogProduct:
    data = dict(row)
    # JSON 컬럼은 NULL일 수 있음
    data["images"] = data.get("images") or []
    data["specifications"] = data.get("specifications") or {}
    data["tags"] = data.get("tags") or []
    return CatalogProduct(**data)
