#!/usr/bin/env python3
"""상품 검색 데모 스크립트

SQLite 카탈로그와 인메모리 검색 엔진으로 동기화/검색 흐름을 시연합니다.
Azure AI Search 없이 실행됩니다.

실행 방법:
    python examples/demo_catalog_search.py
"""

import asyncio
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sqlalchemy import update

from product_search import (
    CatalogSearchOrchestrator,
    ChangeEvent,
    PriceRange,
    SearchQuery,
    SearchSortBy,
)
from product_search.catalog.store import SqlCatalogStore, categories_table, products_table
from product_search.utils.config import AppConfig, CatalogSettings, IndexingSettings
from product_search.utils.logger import get_logger

logger = get_logger("product_search.demo")

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)

CATEGORIES = [
    {"id": "cat-camera", "name": "カメラ", "slug": "camera", "sort_order": 1},
    {"id": "cat-lens", "name": "レンズ", "slug": "lens", "sort_order": 2},
    {"id": "cat-audio", "name": "オーディオ", "slug": "audio", "sort_order": 3},
]

PRODUCTS = [
    ("p-001", "Canon EOS R5", "Canon", "cat-camera", 380000, "new", ["mirrorless", "8k"]),
    ("p-002", "Canon EOS R6", "Canon", "cat-camera", 250000, "like_new", ["mirrorless"]),
    ("p-003", "Nikon Z6 II", "Nikon", "cat-camera", 220000, "good", ["mirrorless"]),
    ("p-004", "Sony FE 24-70mm", "Sony", "cat-lens", 150000, "very_good", ["zoom"]),
    ("p-005", "Nikon Z 50mm f1.8", "Nikon", "cat-lens", 60000, "new", ["prime"]),
    ("p-006", "Sony WH-1000XM5", "Sony", "cat-audio", 45000, "new", ["noise-cancelling"]),
]

DEMO_QUERIES = [
    ("키워드 검색", SearchQuery(q="canon", include_facets=True)),
    ("브랜드 OR 필터 + 가격순", SearchQuery(brands=["Nikon", "Sony"], sort_by=SearchSortBy.PRICE_ASC)),
    ("가격 범위", SearchQuery(price_range=PriceRange(min=100000, max=300000))),
    ("오타 (검색 제안)", SearchQuery(q="nikn")),
]


def print_separator(char: str = "=", length: int = 80) -> None:
    """구분선을 출력합니다."""
    print(char * length)


def print_header(title: str) -> None:
    """헤더를 출력합니다."""
    print_separator()
    print(f"  {title}")
    print_separator()
    print()


def seed_catalog(store: SqlCatalogStore) -> None:
    """데모용 카테고리/상품을 저장합니다."""
    store.create_schema()
    rows = []
    for i, (pid, name, brand, category_id, price, condition, tags) in enumerate(PRODUCTS):
        rows.append(
            {
                "id": pid,
                "name": name,
                "description": f"{brand} {name} 中古品",
                "sku": f"SKU-{pid.upper()}",
                "brand": brand,
                "category_id": category_id,
                "wholesale_price": price * 0.8,
                "retail_price": price,
                "currency": "JPY",
                "condition": condition,
                "status": "active",
                "stock_quantity": i % 3,
                "tags": tags,
                "view_count": 100 - i * 10,
                "average_rating": 4.0 + (i % 2) * 0.5,
                "review_count": 10 + i,
                "created_at": NOW - timedelta(days=i),
                "updated_at": NOW - timedelta(days=i),
            }
        )
    with store.engine.begin() as conn:
        conn.execute(categories_table.insert(), CATEGORIES)
        conn.execute(products_table.insert(), rows)


def print_result(title: str, result) -> None:
    print(f"\n🔍 {title}  (query={result.query!r})")
    print(f"   총 {result.total}건, {result.pagination.total_pages}페이지, {result.search_time}ms")
    for hit in result.products:
        print(
            f"   - {hit.id} {hit.name} / {hit.category_name} / "
            f"¥{hit.effective_price:,.0f} (score={hit.search_score})"
        )
        if hit.highlights:
            print(f"     highlights: {hit.highlights}")
    for facet in result.facets or []:
        values = ", ".join(f"{v.label or v.value}={v.count}" for v in facet.values)
        print(f"   [{facet.label}] {values}")
    if result.suggestions:
        print(f"   💡 혹시: {', '.join(result.suggestions)}")


async def run_demo(database_url: str) -> None:
    """데모를 실행합니다."""
    print_header("🛒 상품 검색 데모")

    store = SqlCatalogStore.from_url(database_url)
    seed_catalog(store)
    print("   ✓ 카탈로그 준비 완료")

    config = AppConfig(
        catalog=CatalogSettings(database_url=database_url),
        indexing=IndexingSettings(engine_backend="memory", backoff_base_seconds=0.01),
    )
    orchestrator = CatalogSearchOrchestrator.create_default(config, catalog=store)
    await orchestrator.start()

    status = await orchestrator.reindex_products()
    print(f"   ✓ 전체 재색인 완료: {status.live_generation} ({status.processed}건)")

    for title, query in DEMO_QUERIES:
        print_result(title, await orchestrator.search(query))

    print_separator("-")
    print("\n📝 상품 p-006 비활성화 후 변경 이벤트 처리")
    with store.engine.begin() as conn:
        conn.execute(
            update(products_table).where(products_table.c.id == "p-006").values(status="inactive")
        )
    await orchestrator.submit_change(ChangeEvent(product_id="p-006"))
    await orchestrator.worker_pool.join()
    print_result("Sony 검색", await orchestrator.search(SearchQuery(q="sony")))

    print(f"\n🩺 상태: {await orchestrator.health()}")
    await orchestrator.stop()


def main() -> None:
    """메인 함수."""
    try:
        with tempfile.TemporaryDirectory() as tmp:
            database_url = f"sqlite:///{Path(tmp) / 'demo_catalog.db'}"
            asyncio.run(run_demo(database_url))
    except KeyboardInterrupt:
        print("\n\n⚠️  사용자가 중단했습니다.")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ 예상치 못한 에러 발생: {e}")
        logger.exception("데모 실행 중 에러")
        sys.exit(1)


if __name__ == "__main__":
    main()
