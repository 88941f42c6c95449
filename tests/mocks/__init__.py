"""테스트용 Mock 구현

실제 카탈로그 DB나 Azure AI Search 없이 동작할 수 있도록
인메모리 카탈로그, 장애 주입 엔진, Mock SearchClient를 제공합니다.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from product_search.catalog.models import CatalogPage, CatalogProduct, Category
from product_search.engine.memory import InMemorySearchEngine
from product_search.utils.errors import CatalogError, EngineUnavailableError

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_product(product_id: str, **overrides: Any) -> CatalogProduct:
    """기본값이 채워진 CatalogProduct를 생성합니다."""
    number = int("".join(ch for ch in product_id if ch.isdigit()) or 0)
    data: dict[str, Any] = {
        "id": product_id,
        "name": f"Product {product_id}",
        "description": f"Description of {product_id}",
        "sku": f"SKU-{product_id.upper()}",
        "brand": "Canon",
        "category_id": "cat-camera",
        "wholesale_price": 1000.0,
        "condition": "new",
        "status": "active",
        "stock_quantity": 1,
        "created_at": BASE_TIME + timedelta(days=number),
        "updated_at": BASE_TIME + timedelta(days=number),
        "version": 1,
    }
    data.update(overrides)
    return CatalogProduct(**data)


def make_category(category_id: str, name: str, **overrides: Any) -> Category:
    data: dict[str, Any] = {"id": category_id, "name": name, "slug": category_id}
    data.update(overrides)
    return Category(**data)


class InMemoryCatalogStore:
    """테스트용 인메모리 카탈로그 저장소

    CatalogStore 프로토콜을 구현하며 장애 주입과 페이지 훅을 지원합니다.
    """

    def __init__(
        self,
        products: list[CatalogProduct] | None = None,
        categories: list[Category] | None = None,
    ):
        self.products: dict[str, CatalogProduct] = {p.id: p for p in products or []}
        self.categories: dict[str, Category] = {c.id: c for c in categories or []}

        # 장애 주입
        self.fail_lookups = 0
        self.fail_on_page: int | None = None

        # 각 페이지 반환 직전에 호출되는 훅 (재색인 도중 변경 시뮬레이션)
        self.on_page: Callable[[int], Awaitable[None]] | None = None

        self.lookup_calls = 0
        self.page_calls = 0
        self.category_calls = 0

    def put(self, product: CatalogProduct) -> None:
        self.products[product.id] = product

    def update(self, product_id: str, **changes: Any) -> CatalogProduct:
        """상품을 수정하고 버전을 1 올립니다."""
        current = self.products[product_id]
        changes.setdefault("version", (current.version or 0) + 1)
        updated = current.model_copy(update=changes)
        self.products[product_id] = updated
        return updated

    def put_category(self, category: Category) -> None:
        self.categories[category.id] = category

    async def get_active_product_by_id(self, product_id: str) -> CatalogProduct | None:
        self.lookup_calls += 1
        if self.fail_lookups > 0:
            self.fail_lookups -= 1
            raise CatalogError("catalog connection lost")
        product = self.products.get(product_id)
        if product is None or not product.is_active:
            return None
        return product

    async def list_active_products(
        self, cursor: str | None = None, limit: int = 500
    ) -> CatalogPage:
        page_number = self.page_calls
        self.page_calls += 1
        if self.fail_on_page is not None and page_number >= self.fail_on_page:
            raise CatalogError(f"page {page_number} fetch failed")

        active = sorted(
            (p for p in self.products.values() if p.is_active and (cursor is None or p.id > cursor)),
            key=lambda p: p.id,
        )
        items = active[:limit]
        if self.on_page is not None:
            await self.on_page(page_number)
        next_cursor = items[-1].id if len(items) == limit else None
        return CatalogPage(items=items, next_cursor=next_cursor)

    async def list_categories(self) -> list[Category]:
        self.category_calls += 1
        return sorted(
            (c for c in self.categories.values() if c.is_active),
            key=lambda c: (c.sort_order, c.id),
        )


class FlakyEngine(InMemorySearchEngine):
    """장애를 주입할 수 있는 인메모리 엔진

    Attributes:
        write_failures: 남은 쓰기 실패 횟수 (upsert_if_newer, delete)
        query_unavailable: True이면 query가 EngineUnavailableError
        write_delay: 쓰기 전 지연 (초)
        fail_upsert_many_for: 이 세대에 대한 upsert_many는 실패
        before_upsert_many: upsert_many 쓰기 직전에 호출되는 훅 (세대 이름 전달)
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.write_failures = 0
        self.query_unavailable = False
        self.write_delay = 0.0
        self.fail_upsert_many_for: str | None = None
        self.before_upsert_many: Callable[[str | None], Awaitable[None]] | None = None
        self.write_calls = 0

    async def _before_write(self) -> None:
        self.write_calls += 1
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.write_failures > 0:
            self.write_failures -= 1
            raise EngineUnavailableError("engine temporarily unavailable")

    async def upsert_if_newer(self, document, version, generation=None):
        await self._before_write()
        await super().upsert_if_newer(document, version, generation)

    async def delete(self, document_id, generation=None):
        await self._before_write()
        await super().delete(document_id, generation)

    async def upsert_many(self, documents, generation=None):
        if self.before_upsert_many is not None:
            await self.before_upsert_many(generation)
        if generation is not None and generation == self.fail_upsert_many_for:
            raise EngineUnavailableError(f"bulk write to {generation} failed")
        return await super().upsert_many(documents, generation)

    async def query(self, compiled, facets, page, limit):
        if self.query_unavailable:
            raise EngineUnavailableError("engine down")
        return await super().query(compiled, facets, page, limit)


class MockSearchResults:
    """azure.search.documents SearchItemPaged 대역"""

    def __init__(
        self,
        documents: list[dict[str, Any]],
        count: int | None = None,
        facets: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self._documents = documents
        self._count = count if count is not None else len(documents)
        self._facets = facets

    def __iter__(self):
        return iter(self._documents)

    def get_count(self) -> int:
        return self._count

    def get_facets(self) -> dict[str, list[dict[str, Any]]] | None:
        return self._facets


class MockUploadResult:
    """IndexingResult 대역"""

    def __init__(self, key: str, succeeded: bool = True, error_message: str | None = None):
        self.key = key
        self.succeeded = succeeded
        self.error_message = error_message
