"""검색 결과 조립

엔진 결과에 카탈로그 메타데이터(카테고리 이름)를 결합하고
하이라이트, 패싯, 페이지 정보를 만듭니다.
"""

from __future__ import annotations

from typing import Any

from ..catalog.categories import CategoryLookup
from ..engine.query import EngineHit, EngineResult, FacetCount
from ..utils.logger import get_logger
from .compiler import FACET_LABELS, CompiledSearch
from .models import (
    Facet,
    FacetValue,
    Pagination,
    SearchCategoryHit,
    SearchProductHit,
    SearchQuery,
    SearchResult,
)

logger = get_logger(__name__)

HIGHLIGHT_PRE_TAG = "<em>"
HIGHLIGHT_POST_TAG = "</em>"

# 하이라이트 스니펫 앞뒤로 남길 문자 수
SNIPPET_CONTEXT = 40


def mark_spans(value: str, spans: list[tuple[int, int]], context: int = SNIPPET_CONTEXT) -> str:
    """일치 위치를 <em> 태그로 감싼 스니펫을 만듭니다.

    Example:
        >>> mark_spans("Canon EOS R5", [(0, 5)])
        '<em>Canon</em> EOS R5'
    """
    spans = sorted(spans)
    start = max(spans[0][0] - context, 0)
    end = min(spans[-1][1] + context, len(value))

    parts = ["..." if start > 0 else ""]
    cursor = start
    for span_start, span_end in spans:
        if span_start < cursor:
            continue
        parts.append(value[cursor:span_start])
        parts.append(f"{HIGHLIGHT_PRE_TAG}{value[span_start:span_end]}{HIGHLIGHT_POST_TAG}")
        cursor = span_end
    parts.append(value[cursor:end])
    if end < len(value):
        parts.append("...")
    return "".join(parts)


class ResultAssembler:
    """검색 결과 조립기.

    카테고리 이름은 인덱스에 저장된 값 대신 캐시된 카테고리 조회 결과를
    우선 사용하므로, 이름 변경이 재색인 없이 반영됩니다.
    """

    def __init__(self, categories: CategoryLookup):
        """ResultAssembler를 초기화합니다.

        Args:
            categories: 카테고리 이름 조회
        """
        self.categories = categories

    async def assemble(
        self,
        query: SearchQuery,
        compiled: CompiledSearch,
        engine_result: EngineResult | None,
        category_hits: list[SearchCategoryHit] | None = None,
        category_total: int = 0,
        suggestions: list[str] | None = None,
        search_time: float = 0.0,
    ) -> SearchResult:
        """SearchResult를 조립합니다.

        Args:
            query: 원본 검색 요청
            compiled: 컴파일 결과 (정책 적용된 page/limit 포함)
            engine_result: 상품 검색 결과 (상품을 검색하지 않았으면 None)
            category_hits: 카테고리 검색 결과
            category_total: 카테고리 전체 건수
            suggestions: 검색 제안 (결과가 없을 때만 포함)
            search_time: 소요 시간 (밀리초)
        """
        names = await self.categories.get_names()

        products: list[SearchProductHit] = []
        product_total = 0
        facets: list[Facet] | None = None

        if engine_result is not None:
            products = [self.build_product(hit, names) for hit in engine_result.hits]
            product_total = engine_result.total
            if query.include_facets:
                facets = self.build_facets(query, engine_result.facets, names)

        total = product_total + category_total
        return SearchResult(
            products=products,
            categories=category_hits or [],
            total=total,
            pagination=Pagination.from_counts(compiled.page, compiled.limit, total),
            facets=facets,
            search_time=search_time,
            query=query.q or "",
            suggestions=suggestions if total == 0 and suggestions is not None else None,
        )

    def build_product(self, hit: EngineHit, names: dict[str, str]) -> SearchProductHit:
        document = hit.document
        category_id = document.get("category_id")
        category_name = names.get(category_id) if category_id else None

        return SearchProductHit(
            id=document["id"],
            name=document["name"],
            description=document.get("description"),
            sku=document.get("sku"),
            brand=document.get("brand"),
            model=document.get("model"),
            category_id=category_id,
            category_name=category_name or document.get("category_name"),
            effective_price=document["effective_price"],
            wholesale_price=document.get("wholesale_price") or 0.0,
            retail_price=document.get("retail_price"),
            market_price=document.get("market_price"),
            currency=document.get("currency") or "JPY",
            condition=document.get("condition") or "",
            status=document.get("status") or "",
            supplier=document.get("supplier"),
            stock_quantity=document.get("stock_quantity"),
            primary_image_url=document.get("primary_image_url"),
            tags=document.get("tags") or [],
            average_rating=document.get("average_rating") or 0.0,
            review_count=document.get("review_count") or 0,
            search_score=hit.score,
            highlights=self.build_highlights(hit),
        )

    @staticmethod
    def build_highlights(hit: EngineHit) -> dict[str, list[str]] | None:
        """엔진 스니펫을 그대로 쓰고, 없으면 일치 위치로 스니펫을 만듭니다."""
        if hit.highlights:
            return dict(hit.highlights)
        if not hit.match_positions:
            return None

        highlights = {}
        for field, spans in hit.match_positions.items():
            value = hit.document.get(field)
            if isinstance(value, str) and spans:
                highlights[field] = [mark_spans(value, spans)]
        return highlights or None

    def build_facets(
        self,
        query: SearchQuery,
        counts: dict[str, list[FacetCount]],
        names: dict[str, str],
    ) -> list[Facet]:
        """패싯 목록을 만듭니다. 값이 없는 패싯은 제외합니다."""
        selected = self._selected_values(query)
        facets = []
        for name, label in FACET_LABELS.items():
            buckets = counts.get(name) or []
            if not buckets:
                continue
            facets.append(
                Facet(
                    name=name,
                    label=label,
                    values=[
                        FacetValue(
                            value=bucket.value,
                            count=bucket.count,
                            selected=bucket.value in selected.get(name, set()),
                            label=names.get(bucket.value) if name == "category" else None,
                        )
                        for bucket in buckets
                    ],
                )
            )
        return facets

    @staticmethod
    def _selected_values(query: SearchQuery) -> dict[str, set[Any]]:
        selected: dict[str, set[Any]] = {}
        if query.category_id:
            selected["category"] = {query.category_id}
        if query.brands:
            selected["brand"] = set(query.brands)
        if query.condition is not None:
            selected["condition"] = {query.condition.value}
        return selected
