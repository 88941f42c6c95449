"""공통 테스트 Fixture."""

import pytest

from product_search.catalog.categories import CategoryLookup
from product_search.indexing.coordinator import ReindexCoordinator
from product_search.indexing.shadow import ShadowWriteTracker
from product_search.indexing.synchronizer import IndexSynchronizer
from product_search.search.service import SearchService
from product_search.utils.config import SearchSettings, reset_config
from tests.mocks import FlakyEngine, InMemoryCatalogStore, make_category


@pytest.fixture(autouse=True)
def _reset_config():
    """테스트 간 전역 설정 캐시를 초기화합니다."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def search_settings():
    """기본 검색 설정."""
    return SearchSettings(
        default_limit=20,
        max_limit=100,
        page_policy="clamp",
        suggestion_limit=5,
        facet_value_limit=10,
        timeout_seconds=1.0,
    )


@pytest.fixture
def catalog():
    """카테고리 3개가 등록된 인메모리 카탈로그."""
    return InMemoryCatalogStore(
        categories=[
            make_category("cat-camera", "カメラ", sort_order=1, description="デジタルカメラ"),
            make_category("cat-lens", "レンズ", sort_order=2, description="交換レンズ"),
            make_category("cat-audio", "オーディオ", sort_order=3, description="ヘッドホンとスピーカー"),
        ]
    )


@pytest.fixture
def engine():
    """장애 주입이 가능한 인메모리 엔진."""
    return FlakyEngine(alias="products")


@pytest.fixture
def categories(catalog):
    return CategoryLookup(catalog, ttl_seconds=300)


@pytest.fixture
def tracker():
    return ShadowWriteTracker()


@pytest.fixture
def synchronizer(catalog, engine, categories, tracker):
    return IndexSynchronizer(catalog, engine, categories, tracker=tracker)


@pytest.fixture
def coordinator(catalog, engine, categories, tracker):
    return ReindexCoordinator(
        catalog,
        engine,
        categories,
        tracker=tracker,
        page_size=2,
        failure_rate_threshold=0.05,
    )


@pytest.fixture
def search_service(engine, categories, search_settings):
    return SearchService(engine, categories, search_settings)
