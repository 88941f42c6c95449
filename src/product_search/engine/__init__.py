"""검색 엔진 모듈.

엔진 능력 인터페이스, 엔진 중립 쿼리 표현, 구체 엔진 구현을 제공합니다.
"""

from ..utils.config import AppConfig, get_config
from ..utils.logger import get_logger
from .base import SearchEngine
from .memory import InMemorySearchEngine
from .query import (
    SCORE_FIELD,
    CompiledQuery,
    EngineHit,
    EngineResult,
    FacetCount,
    FacetRequest,
    FilterClause,
    RangeFilter,
    SortKey,
    TermsFilter,
    WriteOutcome,
    WriteResult,
)

logger = get_logger(__name__)


def build_search_engine(config: AppConfig | None = None) -> SearchEngine:
    """설정에 맞는 검색 엔진을 생성합니다.

    Args:
        config: 애플리케이션 설정 (None이면 전역 설정)

    Returns:
        SearchEngine 구현체
    """
    config = config or get_config()
    alias = config.azure_search.index_alias

    if config.indexing.engine_backend == "memory":
        logger.info("인메모리 검색 엔진 사용")
        return InMemorySearchEngine(alias=alias)

    # azure SDK는 Azure 백엔드를 쓸 때만 로드
    from .azure import AzureSearchEngine
    from .client import SearchClientManager

    logger.info("Azure AI Search 엔진 사용")
    return AzureSearchEngine(
        SearchClientManager.from_settings(config.azure_search),
        alias=alias,
        suggester_name=config.azure_search.suggester_name,
        timeout=config.indexing.engine_timeout_seconds,
        batch_size=config.indexing.batch_size,
    )


__all__ = [
    "SearchEngine",
    "InMemorySearchEngine",
    "build_search_engine",
    "SCORE_FIELD",
    "CompiledQuery",
    "EngineHit",
    "EngineResult",
    "FacetCount",
    "FacetRequest",
    "FilterClause",
    "RangeFilter",
    "SortKey",
    "TermsFilter",
    "WriteOutcome",
    "WriteResult",
]
