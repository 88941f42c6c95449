"""검색 모듈.

검색 요청 컴파일, 엔진 실행, 결과 조립을 제공합니다.
"""

from .assembler import ResultAssembler
from .categories import CategorySearcher
from .compiler import CompiledSearch, QueryCompiler, sanitize_text
from .models import (
    Facet,
    FacetValue,
    Pagination,
    PriceRange,
    SearchCategoryHit,
    SearchProductHit,
    SearchQuery,
    SearchResult,
    SearchSortBy,
    SearchType,
)
from .service import SearchService

__all__ = [
    "SearchService",
    "QueryCompiler",
    "CompiledSearch",
    "ResultAssembler",
    "CategorySearcher",
    "sanitize_text",
    "SearchQuery",
    "SearchResult",
    "SearchSortBy",
    "SearchType",
    "PriceRange",
    "SearchProductHit",
    "SearchCategoryHit",
    "Facet",
    "FacetValue",
    "Pagination",
]
