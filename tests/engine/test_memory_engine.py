"""InMemorySearchEngine 테스트

세대/별칭 관리, 버전 조건부 쓰기, 검색/패싯/제안 동작을 검증합니다.
"""

import pytest

from product_search.engine.memory import InMemorySearchEngine, edit_distance, tokenize
from product_search.engine.query import (
    SCORE_FIELD,
    CompiledQuery,
    FacetRequest,
    RangeFilter,
    SortKey,
    TermsFilter,
    WriteOutcome,
)
from product_search.utils.errors import EngineError, VersionConflictError


def doc(doc_id: str, **fields):
    base = {
        "id": doc_id,
        "name": f"Item {doc_id}",
        "brand": "Canon",
        "searchable_text": f"Item {doc_id}",
        "effective_price": 1000.0,
        "tags": [],
        "source_version": 1,
    }
    base.update(fields)
    return base


class TestTokenize:
    """토큰화/편집 거리 유틸리티 테스트"""

    def test_tokenize_lowercases_and_flattens_lists(self):
        # Act
        tokens = tokenize(["Canon EOS-R5", None, "Mirrorless"])

        # Assert
        assert tokens == ["canon", "eos", "r5", "mirrorless"]

    def test_edit_distance(self):
        assert edit_distance("nikon", "nikon") == 0
        assert edit_distance("nikn", "nikon") == 1
        assert edit_distance("", "abc") == 3
        assert edit_distance("kitten", "sitting") == 3


@pytest.mark.asyncio
class TestGenerations:
    """세대와 별칭 관리 테스트"""

    async def test_ensure_ready_creates_live_generation_once(self):
        # Arrange
        engine = InMemorySearchEngine(alias="products")

        # Act
        first = await engine.ensure_ready()
        second = await engine.ensure_ready()

        # Assert
        assert first == second == "products-v1"
        assert await engine.live_generation() == "products-v1"

    async def test_swap_alias_switches_live_generation(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1"), version=1)
        shadow = await engine.create_generation()
        await engine.upsert_if_newer(doc("p2"), version=1, generation=shadow)

        # Act
        await engine.swap_alias(shadow)

        # Assert
        assert await engine.live_generation() == shadow
        assert await engine.iter_document_ids() == ["p2"]

    async def test_cannot_drop_live_generation(self):
        # Arrange
        engine = InMemorySearchEngine()
        live = await engine.ensure_ready()

        # Act & Assert
        with pytest.raises(EngineError):
            await engine.drop_generation(live)

    async def test_drop_generation_removes_it(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        shadow = await engine.create_generation()

        # Act
        await engine.drop_generation(shadow)

        # Assert
        assert shadow not in engine.generations()

    async def test_swap_to_unknown_generation_fails(self):
        engine = InMemorySearchEngine()
        await engine.ensure_ready()

        with pytest.raises(EngineError):
            await engine.swap_alias("products-v99")

    async def test_write_without_live_generation_fails(self):
        engine = InMemorySearchEngine()

        with pytest.raises(EngineError):
            await engine.upsert_if_newer(doc("p1"), version=1)


@pytest.mark.asyncio
class TestVersionedWrites:
    """버전 조건부 쓰기 테스트"""

    async def test_older_version_is_rejected(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1", name="v7"), version=7)

        # Act & Assert
        with pytest.raises(VersionConflictError) as exc_info:
            await engine.upsert_if_newer(doc("p1", name="v5"), version=5)

        assert exc_info.value.existing == 7
        stored = await engine.get_document("p1")
        assert stored["name"] == "v7"

    async def test_equal_version_is_accepted(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1"), version=3)

        # Act
        await engine.upsert_if_newer(doc("p1", name="again"), version=3)

        # Assert
        stored = await engine.get_document("p1")
        assert stored["name"] == "again"
        assert stored["source_version"] == 3

    async def test_upsert_many_reports_stale_documents(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1"), version=9)

        # Act
        results = await engine.upsert_many(
            [doc("p1", source_version=2), doc("p2", source_version=2)]
        )

        # Assert
        outcomes = {r.id: r.outcome for r in results}
        assert outcomes == {"p1": WriteOutcome.STALE, "p2": WriteOutcome.APPLIED}

    async def test_delete_missing_document_is_not_an_error(self):
        engine = InMemorySearchEngine()
        await engine.ensure_ready()

        await engine.delete("nope")

        assert await engine.iter_document_ids() == []


@pytest.mark.asyncio
class TestQuery:
    """검색 실행 테스트"""

    @pytest.fixture
    def documents(self):
        return [
            doc("p1", name="Canon EOS R5", brand="Canon", searchable_text="Canon EOS R5 camera",
                effective_price=3000.0, review_count=5, tags=["mirrorless"]),
            doc("p2", name="Canon EOS R6", brand="Canon", searchable_text="Canon EOS R6 camera",
                effective_price=2000.0, review_count=9, tags=["mirrorless"]),
            doc("p3", name="Nikon Z6", brand="Nikon", searchable_text="Nikon Z6 camera",
                effective_price=1000.0, review_count=1, tags=["mirrorless", "fullframe"]),
            doc("p4", name="Sony Headphones", brand="Sony", searchable_text="Sony headphones audio",
                effective_price=500.0, review_count=0, tags=[]),
        ]

    async def _engine(self, documents):
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        for d in documents:
            await engine.upsert_if_newer(d, version=1)
        return engine

    async def test_text_requires_all_terms(self, documents):
        # Arrange
        engine = await self._engine(documents)
        compiled = CompiledQuery(text="canon camera", search_fields=["searchable_text"])

        # Act
        result = await engine.query(compiled, [], page=1, limit=10)

        # Assert
        assert {h.document["id"] for h in result.hits} == {"p1", "p2"}
        assert result.total == 2
        assert all(h.score is not None and h.score > 0 for h in result.hits)

    async def test_filters_and_across_or_within(self, documents):
        # Arrange
        engine = await self._engine(documents)
        compiled = CompiledQuery(
            filters=[
                TermsFilter(dimension="brand", field="brand", values=["Canon", "Nikon"]),
                RangeFilter(dimension="price", field="effective_price", gte=1500, lte=3000),
            ],
            sort=[SortKey(field="id")],
        )

        # Act
        result = await engine.query(compiled, [], page=1, limit=10)

        # Assert
        assert [h.document["id"] for h in result.hits] == ["p1", "p2"]

    async def test_collection_filter_matches_any_tag(self, documents):
        engine = await self._engine(documents)
        compiled = CompiledQuery(
            filters=[TermsFilter(dimension="tags", field="tags", values=["fullframe"], collection=True)]
        )

        result = await engine.query(compiled, [], page=1, limit=10)

        assert [h.document["id"] for h in result.hits] == ["p3"]

    async def test_sort_with_score_and_tiebreaks(self, documents):
        # Arrange
        engine = await self._engine(documents)
        compiled = CompiledQuery(
            text="canon",
            search_fields=["searchable_text"],
            sort=[
                SortKey(field=SCORE_FIELD, descending=True),
                SortKey(field="review_count", descending=True),
                SortKey(field="id"),
            ],
        )

        # Act
        result = await engine.query(compiled, [], page=1, limit=10)

        # Assert - 점수가 같으면 리뷰 수 내림차순
        assert [h.document["id"] for h in result.hits] == ["p2", "p1"]

    async def test_pagination_slices_ordered_hits(self, documents):
        engine = await self._engine(documents)
        compiled = CompiledQuery(sort=[SortKey(field="effective_price")])

        page2 = await engine.query(compiled, [], page=2, limit=3)

        assert [h.document["id"] for h in page2.hits] == ["p1"]
        assert page2.total == 4

    async def test_match_none_returns_empty(self, documents):
        engine = await self._engine(documents)

        result = await engine.query(
            CompiledQuery(match_none=True),
            [FacetRequest(name="brand", field="brand")],
            page=1,
            limit=10,
        )

        assert result.total == 0
        assert result.facets["brand"] == []

    async def test_facets_use_their_own_filters(self, documents):
        # Arrange
        engine = await self._engine(documents)
        brand_filter = TermsFilter(dimension="brand", field="brand", values=["Canon"])
        compiled = CompiledQuery(filters=[brand_filter])

        # Act
        result = await engine.query(
            compiled, [FacetRequest(name="brand", field="brand", filters=[])], page=1, limit=10
        )

        # Assert - 브랜드 패싯은 브랜드 필터 없이 집계
        counts = {f.value: f.count for f in result.facets["brand"]}
        assert result.total == 2
        assert counts == {"Canon": 2, "Nikon": 1, "Sony": 1}

    async def test_match_positions_for_highlight_fields(self, documents):
        engine = await self._engine(documents)
        compiled = CompiledQuery(
            text="nikon", search_fields=["searchable_text"], highlight_fields=["name", "brand"]
        )

        result = await engine.query(compiled, [], page=1, limit=10)

        assert result.hits[0].match_positions == {"name": [(0, 5)], "brand": [(0, 5)]}

    async def test_query_reports_generation(self, documents):
        engine = await self._engine(documents)

        result = await engine.query(CompiledQuery(), [], page=1, limit=1)

        assert result.generation == "products-v1"


@pytest.mark.asyncio
class TestSuggest:
    """검색 제안 테스트"""

    async def test_suggest_tolerates_typos(self):
        # Arrange
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1", name="Nikon Z6", brand="Nikon", view_count=5), 1)
        await engine.upsert_if_newer(doc("p2", name="Nikon Z7", brand="Nikon", view_count=50), 1)
        await engine.upsert_if_newer(doc("p3", name="Sony A7", brand="Sony"), 1)

        # Act
        suggestions = await engine.suggest("nikn", limit=5)

        # Assert - 조회수 높은 순
        assert suggestions == ["Nikon Z7", "Nikon Z6"]

    async def test_suggest_respects_limit_and_empty_input(self):
        engine = InMemorySearchEngine()
        await engine.ensure_ready()
        await engine.upsert_if_newer(doc("p1", name="Canon R5"), 1)
        await engine.upsert_if_newer(doc("p2", name="Canon R6"), 1)

        assert len(await engine.suggest("canon", limit=1)) == 1
        assert await engine.suggest("   ", limit=5) == []
