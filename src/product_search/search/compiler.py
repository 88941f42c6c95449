"""검색 쿼리 컴파일러

SearchQuery를 엔진 중립 CompiledQuery와 패싯 요청 목록으로 변환합니다.

- 필터: 패밀리 간 AND, 패밀리 내부 OR
- 가격: effective_price (소매가 > 시장가 > 도매가) 하나로 필터/정렬
- 정렬: 모든 정렬은 id 오름차순으로 마무리 (페이지 간 결정적 순서)
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from ..catalog.models import ProductStatus
from ..engine.query import (
    HIGHLIGHT_FIELDS,
    SCORE_FIELD,
    SEARCH_FIELDS,
    CompiledQuery,
    FacetRequest,
    FilterClause,
    RangeFilter,
    SortKey,
    TermsFilter,
)
from ..utils.config import SearchSettings, get_config
from ..utils.errors import QueryCompilationError
from ..utils.logger import get_logger
from .models import SearchQuery, SearchSortBy, SearchType

logger = get_logger(__name__)

# 단어 문자, 공백, 하이픈 외에는 제거
UNSAFE_CHARACTERS = re.compile(r"[^\w\s-]")

# (이름, 표시 라벨, 인덱스 필드)
FACET_DIMENSIONS = [
    ("category", "カテゴリ", "category_id"),
    ("brand", "ブランド", "brand"),
    ("condition", "商品状態", "condition"),
]
FACET_LABELS = {name: label for name, label, _ in FACET_DIMENSIONS}

TIEBREAK = SortKey(field="id")

SORT_KEYS: dict[SearchSortBy, list[SortKey]] = {
    SearchSortBy.PRICE_ASC: [SortKey(field="effective_price")],
    SearchSortBy.PRICE_DESC: [SortKey(field="effective_price", descending=True)],
    SearchSortBy.NAME_ASC: [SortKey(field="name")],
    SearchSortBy.NAME_DESC: [SortKey(field="name", descending=True)],
    SearchSortBy.NEWEST: [SortKey(field="created_at", descending=True)],
    SearchSortBy.POPULARITY: [SortKey(field="view_count", descending=True)],
    SearchSortBy.RATING: [SortKey(field="average_rating", descending=True)],
}

RELEVANCE_KEYS = [
    SortKey(field=SCORE_FIELD, descending=True),
    SortKey(field="review_count", descending=True),
]


class CompiledSearch(BaseModel):
    """컴파일 결과. page/limit은 정책 적용 후 값입니다."""

    query: CompiledQuery
    facets: list[FacetRequest] = Field(default_factory=list)
    page: int
    limit: int


def sanitize_text(q: str | None) -> str | None:
    """검색어에서 허용되지 않는 문자를 제거합니다. 비면 None."""
    if q is None:
        return None
    text = UNSAFE_CHARACTERS.sub("", q).strip()
    return text or None


class QueryCompiler:
    """SearchQuery -> CompiledSearch 변환기.

    Examples:
        >>> compiler = QueryCompiler()
        >>> compiled = compiler.compile(SearchQuery(q="camera", brands=["Canon", "Nikon"]))
        >>> [f.dimension for f in compiled.query.filters]
        ['brand']
    """

    def __init__(self, settings: SearchSettings | None = None):
        """QueryCompiler를 초기화합니다.

        Args:
            settings: 검색 설정 (None이면 전역 설정)
        """
        self.settings = settings or get_config().search

    def compile(self, query: SearchQuery) -> CompiledSearch:
        """검색 요청을 컴파일합니다.

        Raises:
            QueryCompilationError: 잘못된 필터 조합, reject 정책에서 범위 밖 page/limit
        """
        page, limit = self.normalize_page(query.page, query.limit)
        text = sanitize_text(query.q)
        filters, match_none = self.build_filters(query)

        compiled = CompiledQuery(
            text=text,
            search_fields=list(SEARCH_FIELDS),
            filters=filters,
            sort=self.build_sort(query.sort_by, has_text=text is not None),
            highlight_fields=list(HIGHLIGHT_FIELDS) if text else [],
            match_none=match_none,
        )

        facets = []
        if query.include_facets and query.type != SearchType.CATEGORIES:
            facets = self.build_facets(filters)

        logger.debug(
            f"쿼리 컴파일: text={text!r}, filters={len(filters)}, "
            f"sort={query.sort_by.value}, page={page}, limit={limit}"
        )
        return CompiledSearch(query=compiled, facets=facets, page=page, limit=limit)

    def normalize_page(self, page: int, limit: int | None) -> tuple[int, int]:
        """page/limit에 범위 정책을 적용합니다."""
        if limit is None:
            limit = self.settings.default_limit

        out_of_range = page < 1 or limit < 1 or limit > self.settings.max_limit
        if not out_of_range:
            return page, limit

        if self.settings.page_policy == "reject":
            raise QueryCompilationError(
                f"page는 1 이상, limit은 1~{self.settings.max_limit} 범위여야 합니다 "
                f"(page={page}, limit={limit})"
            )

        clamped = max(page, 1), min(max(limit, 1), self.settings.max_limit)
        logger.debug(f"page/limit 보정: ({page}, {limit}) -> {clamped}")
        return clamped

    def build_filters(self, query: SearchQuery) -> tuple[list[FilterClause], bool]:
        """필터 목록과 match_none 여부를 반환합니다.

        인덱스에는 활성 상품만 있으므로 active 외의 status는 빈 결과입니다.
        """
        filters: list[FilterClause] = []
        match_none = query.status is not None and query.status != ProductStatus.ACTIVE

        if query.category_id:
            filters.append(
                TermsFilter(dimension="category", field="category_id", values=[query.category_id])
            )
        if query.brands:
            filters.append(TermsFilter(dimension="brand", field="brand", values=query.brands))
        if query.condition is not None:
            filters.append(
                TermsFilter(dimension="condition", field="condition", values=[query.condition.value])
            )
        if query.price_range is not None:
            price = query.price_range
            if price.min is not None and price.max is not None and price.min > price.max:
                raise QueryCompilationError(
                    f"가격 범위가 올바르지 않습니다: min={price.min} > max={price.max}"
                )
            if price.min is not None or price.max is not None:
                filters.append(
                    RangeFilter(
                        dimension="price", field="effective_price", gte=price.min, lte=price.max
                    )
                )
        if query.tags:
            filters.append(
                TermsFilter(dimension="tags", field="tags", values=query.tags, collection=True)
            )
        if query.in_stock_only:
            filters.append(RangeFilter(dimension="stock", field="stock_quantity", gt=0))
        if query.min_rating is not None:
            filters.append(
                RangeFilter(dimension="rating", field="average_rating", gte=query.min_rating)
            )

        return filters, match_none

    @staticmethod
    def build_sort(sort_by: SearchSortBy, has_text: bool) -> list[SortKey]:
        """정렬 키 목록을 만듭니다.

        검색어 없는 relevance는 최신순으로 대체합니다.
        """
        if sort_by == SearchSortBy.RELEVANCE:
            keys = RELEVANCE_KEYS if has_text else SORT_KEYS[SearchSortBy.NEWEST]
        else:
            keys = SORT_KEYS[sort_by]
        return [*keys, TIEBREAK]

    def build_facets(self, filters: list[FilterClause]) -> list[FacetRequest]:
        """패싯 요청을 만듭니다. 각 패싯은 자기 차원의 필터를 제외합니다."""
        return [
            FacetRequest(
                name=name,
                field=field,
                filters=[f for f in filters if f.dimension != name],
                limit=self.settings.facet_value_limit,
            )
            for name, _, field in FACET_DIMENSIONS
        ]
