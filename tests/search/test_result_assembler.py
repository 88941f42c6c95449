"""ResultAssembler / 하이라이트 / 페이지 정보 테스트"""

import pytest

from product_search.engine.query import EngineHit, EngineResult, FacetCount
from product_search.search.assembler import ResultAssembler, mark_spans
from product_search.search.compiler import QueryCompiler
from product_search.search.models import Pagination, SearchQuery
from tests.mocks import make_category


def document(doc_id, **fields):
    base = {
        "id": doc_id,
        "name": f"Item {doc_id}",
        "category_id": "cat-camera",
        "category_name": "旧カメラ",
        "effective_price": 1000.0,
        "wholesale_price": 800.0,
        "currency": "JPY",
        "condition": "new",
        "status": "active",
    }
    base.update(fields)
    return base


class TestMarkSpans:
    def test_wraps_matches(self):
        assert mark_spans("Canon EOS R5", [(0, 5)]) == "<em>Canon</em> EOS R5"

    def test_multiple_spans(self):
        assert mark_spans("a canon b canon", [(10, 15), (2, 7)]) == (
            "a <em>canon</em> b <em>canon</em>"
        )

    def test_long_text_is_trimmed(self):
        value = "x" * 100 + "canon" + "y" * 100

        snippet = mark_spans(value, [(100, 105)], context=3)

        assert snippet == "...xxx<em>canon</em>yyy..."


class TestPagination:
    def test_from_counts(self):
        pagination = Pagination.from_counts(page=2, limit=20, total=45)

        assert pagination.total_pages == 3
        assert pagination.has_next is True
        assert pagination.has_prev is True

    def test_last_page(self):
        pagination = Pagination.from_counts(page=3, limit=20, total=45)

        assert pagination.has_next is False

    def test_empty_result(self):
        pagination = Pagination.from_counts(page=1, limit=20, total=0)

        assert pagination.total_pages == 0
        assert pagination.has_next is False
        assert pagination.has_prev is False

    def test_camel_case_dump(self):
        dumped = Pagination.from_counts(page=1, limit=10, total=5).model_dump(by_alias=True)

        assert dumped["totalPages"] == 1
        assert dumped["hasNext"] is False


@pytest.mark.asyncio
class TestResultAssembler:
    """결과 조립 테스트"""

    @pytest.fixture
    def assembler(self, categories):
        return ResultAssembler(categories)

    @pytest.fixture
    def compiler(self, search_settings):
        return QueryCompiler(search_settings)

    async def test_category_name_comes_from_lookup(self, assembler, compiler):
        # Arrange
        query = SearchQuery(q="item")
        engine_result = EngineResult(hits=[EngineHit(document=document("p1"))], total=1)

        # Act
        result = await assembler.assemble(query, compiler.compile(query), engine_result)

        # Assert
        assert result.products[0].category_name == "カメラ"
        assert result.total == 1
        assert result.query == "item"

    async def test_indexed_category_name_used_when_unknown(self, assembler, compiler):
        query = SearchQuery()
        hit = EngineHit(document=document("p1", category_id="cat-gone", category_name="旧"))

        result = await assembler.assemble(
            query, compiler.compile(query), EngineResult(hits=[hit], total=1)
        )

        assert result.products[0].category_name == "旧"

    async def test_engine_highlights_preferred(self, assembler, compiler):
        query = SearchQuery(q="item")
        hit = EngineHit(
            document=document("p1"),
            highlights={"name": ["<em>Item</em> p1"]},
            match_positions={"name": [(0, 4)]},
        )

        result = await assembler.assemble(
            query, compiler.compile(query), EngineResult(hits=[hit], total=1)
        )

        assert result.products[0].highlights == {"name": ["<em>Item</em> p1"]}

    async def test_highlights_built_from_positions(self, assembler, compiler):
        query = SearchQuery(q="item")
        hit = EngineHit(document=document("p1"), match_positions={"name": [(0, 4)]})

        result = await assembler.assemble(
            query, compiler.compile(query), EngineResult(hits=[hit], total=1)
        )

        assert result.products[0].highlights == {"name": ["<em>Item</em> p1"]}

    async def test_facets_have_labels_and_selection(self, assembler, compiler):
        # Arrange
        query = SearchQuery(brands=["Canon"], include_facets=True)
        engine_result = EngineResult(
            total=3,
            facets={
                "category": [FacetCount(value="cat-camera", count=3)],
                "brand": [FacetCount(value="Canon", count=2), FacetCount(value="Nikon", count=1)],
                "condition": [],
            },
        )

        # Act
        result = await assembler.assemble(query, compiler.compile(query), engine_result)

        # Assert - 값이 없는 패싯은 제외
        facets = {f.name: f for f in result.facets}
        assert set(facets) == {"category", "brand"}
        assert facets["category"].label == "カテゴリ"
        assert facets["category"].values[0].label == "カメラ"
        brand_values = {v.value: v.selected for v in facets["brand"].values}
        assert brand_values == {"Canon": True, "Nikon": False}

    async def test_facets_omitted_when_not_requested(self, assembler, compiler):
        query = SearchQuery()
        engine_result = EngineResult(facets={"brand": [FacetCount(value="Canon", count=1)]})

        result = await assembler.assemble(query, compiler.compile(query), engine_result)

        assert result.facets is None

    async def test_suggestions_only_for_empty_results(self, assembler, compiler):
        query = SearchQuery(q="x")
        compiled = compiler.compile(query)

        empty = await assembler.assemble(
            query, compiled, EngineResult(total=0), suggestions=["Canon"]
        )
        found = await assembler.assemble(
            query,
            compiled,
            EngineResult(hits=[EngineHit(document=document("p1"))], total=1),
            suggestions=["Canon"],
        )

        assert empty.suggestions == ["Canon"]
        assert found.suggestions is None

    async def test_pagination_uses_compiled_limit(self, assembler, compiler):
        query = SearchQuery(page=2, limit=2)

        result = await assembler.assemble(query, compiler.compile(query), EngineResult(total=5))

        assert result.pagination.total_pages == 3
        assert result.pagination.has_next is True


@pytest.mark.asyncio
class TestCategoryRename:
    async def test_renamed_category_shows_without_reindex(self, catalog, categories, search_settings):
        # Arrange
        assembler = ResultAssembler(categories)
        query = SearchQuery()
        compiled = QueryCompiler(search_settings).compile(query)
        engine_result = EngineResult(hits=[EngineHit(document=document("p1"))], total=1)
        await assembler.assemble(query, compiled, engine_result)

        # Act
        catalog.put_category(make_category("cat-camera", "デジカメ"))
        categories.invalidate()
        result = await assembler.assemble(query, compiled, engine_result)

        # Assert
        assert result.products[0].category_name == "デジカメ"
