"""상품 검색 인덱스 동기화 및 검색 서브시스템."""

from .indexing.worker_pool import ChangeEvent, ChangeKind
from .orchestrator import CatalogSearchOrchestrator
from .search.models import PriceRange, SearchQuery, SearchResult, SearchSortBy, SearchType

__version__ = "0.1.0"

__all__ = [
    "CatalogSearchOrchestrator",
    "ChangeEvent",
    "ChangeKind",
    "SearchQuery",
    "SearchResult",
    "SearchSortBy",
    "SearchType",
    "PriceRange",
]
