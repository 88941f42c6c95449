"""검색 문서 변환 테스트"""

import json
from datetime import datetime, timedelta, timezone

from product_search.indexing.documents import (
    build_search_document,
    build_searchable_text,
    format_datetime,
)
from tests.mocks import make_product


class TestBuildSearchDocument:
    """CatalogProduct -> SearchDocument 변환 테스트"""

    def test_effective_price_prefers_retail_then_market(self):
        # Arrange
        retail = make_product("p1", retail_price=2000.0, market_price=1800.0)
        market = make_product("p2", market_price=1800.0)
        wholesale = make_product("p3")

        # Act & Assert
        assert build_search_document(retail).effective_price == 2000.0
        assert build_search_document(market).effective_price == 1800.0
        assert build_search_document(wholesale).effective_price == 1000.0

    def test_searchable_text_includes_sku_tags_and_category(self):
        # Arrange
        product = make_product(
            "p1", name="EOS R5", brand="Canon", model="R5", sku="CN-R5-001", tags=["8k"]
        )

        # Act
        document = build_search_document(product, category_name="カメラ")

        # Assert
        assert document.category_name == "カメラ"
        for part in ("EOS R5", "Canon", "CN-R5-001", "8k", "カメラ"):
            assert part in document.searchable_text

    def test_searchable_text_skips_empty_parts(self):
        product = make_product("p1", name="Lens", description=None, brand=None, sku=None)

        assert build_searchable_text(product, None) == "Lens"

    def test_source_version_uses_explicit_counter(self):
        assert build_search_document(make_product("p1", version=12)).source_version == 12

    def test_source_version_falls_back_to_updated_at(self):
        updated_at = datetime(2024, 3, 1, tzinfo=timezone.utc)
        product = make_product("p1", version=None, updated_at=updated_at)

        document = build_search_document(product)

        assert document.source_version == int(updated_at.timestamp() * 1000)

    def test_specifications_serialized_as_json(self):
        product = make_product("p1", specifications={"mount": "RF", "画素数": 45})

        document = build_search_document(product)

        assert json.loads(document.specifications) == {"mount": "RF", "画素数": 45}

    def test_index_dict_has_plain_values(self):
        document = build_search_document(make_product("p1")).to_index_dict()

        assert document["status"] == "active"
        assert document["condition"] == "new"
        assert isinstance(document["created_at"], str)


class TestFormatDatetime:
    def test_naive_datetime_is_treated_as_utc(self):
        assert format_datetime(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000000Z"

    def test_aware_datetime_converted_to_utc(self):
        jst = timezone(timedelta(hours=9))

        assert format_datetime(datetime(2024, 1, 2, 9, 0, tzinfo=jst)) == (
            "2024-01-02T00:00:00.000000Z"
        )
