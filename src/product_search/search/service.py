"""검색 서비스

쿼리 컴파일 -> 엔진 실행 -> 결과 조립의 검색 경로를 담당합니다.
엔진에 접근할 수 없으면 빈 결과 대신 SearchUnavailableError를 발생시킵니다.
"""

from __future__ import annotations

import asyncio
import time

from ..catalog.categories import CategoryLookup
from ..engine.base import SearchEngine
from ..engine.query import EngineResult
from ..utils.config import SearchSettings, get_config
from ..utils.errors import CatalogError, EngineError, SearchUnavailableError
from ..utils.logger import get_logger
from .assembler import ResultAssembler
from .categories import CategorySearcher
from .compiler import QueryCompiler, sanitize_text
from .models import Facet, SearchCategoryHit, SearchQuery, SearchResult, SearchType

logger = get_logger(__name__)

# suggest() 한 번에 반환하는 최대 개수
MAX_SUGGESTIONS = 10


class SearchService:
    """상품/카테고리 검색 서비스.

    Examples:
        >>> service = SearchService(engine, CategoryLookup(store))
        >>> result = await service.search(SearchQuery(q="camera", include_facets=True))
        >>> result.pagination.total_pages
    """

    def __init__(
        self,
        engine: SearchEngine,
        categories: CategoryLookup,
        settings: SearchSettings | None = None,
    ):
        """SearchService를 초기화합니다.

        Args:
            engine: 검색 엔진
            categories: 카테고리 조회 (결과 조인, 카테고리 검색)
            settings: 검색 설정 (None이면 전역 설정)
        """
        self.engine = engine
        self.categories = categories
        self.settings = settings or get_config().search
        self.compiler = QueryCompiler(self.settings)
        self.assembler = ResultAssembler(categories)
        self.category_searcher = CategorySearcher(categories)

    async def search(self, query: SearchQuery) -> SearchResult:
        """검색을 실행합니다.

        Raises:
            QueryCompilationError: 잘못된 요청 (엔진에 전달되지 않음)
            SearchUnavailableError: 엔진 또는 카탈로그에 접근할 수 없는 경우
        """
        start = time.perf_counter()
        compiled = self.compiler.compile(query)
        text = compiled.query.text

        engine_result: EngineResult | None = None
        category_hits: list[SearchCategoryHit] | None = None
        category_total = 0

        try:
            if query.type in (SearchType.PRODUCTS, SearchType.ALL):
                engine_result = await asyncio.wait_for(
                    self.engine.query(
                        compiled.query, compiled.facets, compiled.page, compiled.limit
                    ),
                    timeout=self.settings.timeout_seconds,
                )
            if query.type in (SearchType.CATEGORIES, SearchType.ALL):
                category_hits, category_total = await self.category_searcher.search(
                    text, compiled.page, compiled.limit
                )
        except (EngineError, CatalogError, asyncio.TimeoutError) as e:
            logger.error(f"검색 실패: {e!r}")
            raise SearchUnavailableError(f"검색을 사용할 수 없습니다: {e}") from e

        product_total = engine_result.total if engine_result is not None else 0
        suggestions = None
        if text and product_total + category_total == 0:
            suggestions = await self._suggest_for_empty(text)

        try:
            result = await self.assembler.assemble(
                query,
                compiled,
                engine_result,
                category_hits=category_hits,
                category_total=category_total,
                suggestions=suggestions,
                search_time=round((time.perf_counter() - start) * 1000, 2),
            )
        except CatalogError as e:
            logger.error(f"카테고리 조회 실패: {e!r}")
            raise SearchUnavailableError(f"검색을 사용할 수 없습니다: {e}") from e

        logger.info(
            f"검색 완료: q={query.q!r}, type={query.type.value}, total={result.total}, "
            f"generation={engine_result.generation if engine_result else None}, "
            f"time={result.search_time}ms"
        )
        return result

    async def _suggest_for_empty(self, text: str) -> list[str]:
        """결과가 없을 때의 검색 제안. 실패해도 검색 결과는 반환합니다."""
        if self.settings.suggestion_limit <= 0:
            return []
        try:
            return await asyncio.wait_for(
                self.engine.suggest(text, self.settings.suggestion_limit),
                timeout=self.settings.timeout_seconds,
            )
        except (EngineError, asyncio.TimeoutError) as e:
            logger.warning(f"검색 제안 실패: {e!r}")
            return []

    async def get_facets(self, query: SearchQuery) -> list[Facet]:
        """현재 필터 기준 패싯만 반환합니다."""
        facet_query = query.model_copy(
            update={"include_facets": True, "limit": 1, "page": 1, "type": SearchType.PRODUCTS}
        )
        result = await self.search(facet_query)
        return result.facets or []

    async def suggest(self, q: str, limit: int | None = None) -> list[str]:
        """검색어 자동완성/오타 교정 제안을 반환합니다.

        Raises:
            SearchUnavailableError: 엔진에 접근할 수 없는 경우
        """
        text = sanitize_text(q)
        limit = min(limit if limit is not None else self.settings.suggestion_limit, MAX_SUGGESTIONS)
        if not text or limit <= 0:
            return []

        try:
            return await asyncio.wait_for(
                self.engine.suggest(text, limit),
                timeout=self.settings.timeout_seconds,
            )
        except (EngineError, asyncio.TimeoutError) as e:
            logger.error(f"검색 제안 실패: {e!r}")
            raise SearchUnavailableError(f"검색 제안을 사용할 수 없습니다: {e}") from e
