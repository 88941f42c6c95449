"""QueryCompiler 테스트"""

import pytest
from pydantic import ValidationError

from product_search.engine.query import SCORE_FIELD, RangeFilter, SortKey, TermsFilter
from product_search.search.compiler import QueryCompiler, sanitize_text
from product_search.search.models import PriceRange, SearchQuery, SearchSortBy, SearchType
from product_search.utils.config import SearchSettings
from product_search.utils.errors import QueryCompilationError


@pytest.fixture
def compiler(search_settings):
    return QueryCompiler(search_settings)


class TestSanitizeText:
    def test_strips_unsafe_characters(self):
        assert sanitize_text("canon <script>") == "canon script"
        assert sanitize_text("EOS-R5!") == "EOS-R5"

    def test_keeps_japanese(self):
        assert sanitize_text("デジタル　カメラ") == "デジタル　カメラ"

    def test_empty_becomes_none(self):
        assert sanitize_text(None) is None
        assert sanitize_text("  ?! ") is None


class TestSearchQueryModel:
    def test_single_brand_becomes_list(self):
        assert SearchQuery(brands="Canon").brands == ["Canon"]

    def test_accepts_camel_case(self):
        query = SearchQuery.model_validate({"sortBy": "price_asc", "inStockOnly": True})

        assert query.sort_by == SearchSortBy.PRICE_ASC
        assert query.in_stock_only is True

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            PriceRange(min=-1)


class TestFilters:
    """필터 컴파일 테스트"""

    def test_no_filters(self, compiler):
        compiled = compiler.compile(SearchQuery())

        assert compiled.query.filters == []
        assert compiled.query.match_none is False

    def test_all_filter_families(self, compiler):
        # Arrange
        query = SearchQuery(
            category_id="cat-camera",
            brands=["Canon", "Nikon"],
            condition="like_new",
            price_range=PriceRange(min=1000, max=2000),
            tags=["8k"],
            in_stock_only=True,
            min_rating=4,
        )

        # Act
        filters = compiler.compile(query).query.filters

        # Assert
        assert filters == [
            TermsFilter(dimension="category", field="category_id", values=["cat-camera"]),
            TermsFilter(dimension="brand", field="brand", values=["Canon", "Nikon"]),
            TermsFilter(dimension="condition", field="condition", values=["like_new"]),
            RangeFilter(dimension="price", field="effective_price", gte=1000, lte=2000),
            TermsFilter(dimension="tags", field="tags", values=["8k"], collection=True),
            RangeFilter(dimension="stock", field="stock_quantity", gt=0),
            RangeFilter(dimension="rating", field="average_rating", gte=4),
        ]

    def test_open_ended_price_range(self, compiler):
        filters = compiler.compile(SearchQuery(price_range=PriceRange(max=500))).query.filters

        assert filters == [RangeFilter(dimension="price", field="effective_price", lte=500)]

    def test_inverted_price_range_rejected(self, compiler):
        with pytest.raises(QueryCompilationError):
            compiler.compile(SearchQuery(price_range=PriceRange(min=3000, max=1000)))

    def test_non_active_status_matches_nothing(self, compiler):
        assert compiler.compile(SearchQuery(status="inactive")).query.match_none is True
        assert compiler.compile(SearchQuery(status="active")).query.match_none is False


class TestSort:
    """정렬 컴파일 테스트"""

    def test_relevance_with_text(self, compiler):
        sort = compiler.compile(SearchQuery(q="canon")).query.sort

        assert sort == [
            SortKey(field=SCORE_FIELD, descending=True),
            SortKey(field="review_count", descending=True),
            SortKey(field="id"),
        ]

    def test_relevance_without_text_is_newest(self, compiler):
        sort = compiler.compile(SearchQuery(q="  ")).query.sort

        assert sort == [SortKey(field="created_at", descending=True), SortKey(field="id")]

    @pytest.mark.parametrize("sort_by", list(SearchSortBy))
    def test_every_sort_ends_with_id(self, compiler, sort_by):
        sort = compiler.compile(SearchQuery(q="x", sort_by=sort_by)).query.sort

        assert sort[-1] == SortKey(field="id")

    def test_price_sort_uses_effective_price(self, compiler):
        sort = compiler.compile(SearchQuery(sort_by="price_desc")).query.sort

        assert sort[0] == SortKey(field="effective_price", descending=True)


class TestPaging:
    """page/limit 정책 테스트"""

    def test_default_limit(self, compiler):
        compiled = compiler.compile(SearchQuery())

        assert (compiled.page, compiled.limit) == (1, 20)

    def test_clamp_policy(self, compiler):
        compiled = compiler.compile(SearchQuery(page=0, limit=500))

        assert (compiled.page, compiled.limit) == (1, 100)

    def test_reject_policy(self):
        compiler = QueryCompiler(SearchSettings(page_policy="reject"))

        with pytest.raises(QueryCompilationError):
            compiler.compile(SearchQuery(limit=0))
        with pytest.raises(QueryCompilationError):
            compiler.compile(SearchQuery(page=-1))


class TestFacets:
    """패싯 요청 테스트"""

    def test_facets_only_when_requested(self, compiler):
        assert compiler.compile(SearchQuery()).facets == []

    def test_facets_skipped_for_category_search(self, compiler):
        query = SearchQuery(include_facets=True, type=SearchType.CATEGORIES)

        assert compiler.compile(query).facets == []

    def test_each_facet_excludes_its_own_dimension(self, compiler):
        # Arrange
        query = SearchQuery(brands=["Canon"], condition="new", include_facets=True)

        # Act
        facets = {f.name: f for f in compiler.compile(query).facets}

        # Assert
        assert [f.dimension for f in facets["brand"].filters] == ["condition"]
        assert [f.dimension for f in facets["condition"].filters] == ["brand"]
        assert [f.dimension for f in facets["category"].filters] == ["brand", "condition"]
        assert facets["category"].field == "category_id"
        assert facets["brand"].limit == 10

    def test_highlight_fields_only_with_text(self, compiler):
        assert compiler.compile(SearchQuery()).query.highlight_fields == []
        assert compiler.compile(SearchQuery(q="canon")).query.highlight_fields == [
            "name",
            "description",
            "brand",
        ]
