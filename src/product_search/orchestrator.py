"""CatalogSearchOrchestrator - 상품 검색 서브시스템 진입점."""

from __future__ import annotations

from typing import Any

from .catalog.categories import CategoryLookup
from .catalog.store import CatalogStore, SqlCatalogStore
from .engine import SearchEngine, build_search_engine
from .indexing.coordinator import BulkIndexReport, ReindexCoordinator, ReindexStatus
from .indexing.shadow import ShadowWriteTracker
from .indexing.synchronizer import IndexOutcome, IndexSynchronizer
from .indexing.worker_pool import ChangeEvent, IndexingWorkerPool
from .search.models import Facet, SearchQuery, SearchResult
from .search.service import SearchService
from .utils.config import AppConfig, get_config
from .utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


class CatalogSearchOrchestrator:
    """상품 검색 서브시스템 진입점.

    인덱스 동기화 경로와 검색 경로를 하나로 묶습니다. 두 경로는 검색
    엔진을 통해서만 만나며 서로를 직접 호출하지 않습니다.

    플로우:
        - 변경 이벤트 -> IndexingWorkerPool -> IndexSynchronizer -> 엔진
        - 관리자 요청 -> ReindexCoordinator -> 그림자 세대 -> 별칭 전환
        - 검색 요청 -> SearchService (컴파일 -> 엔진 -> 조립)
    """

    def __init__(
        self,
        engine: SearchEngine,
        synchronizer: IndexSynchronizer,
        coordinator: ReindexCoordinator,
        search_service: SearchService,
        worker_pool: IndexingWorkerPool,
    ):
        """CatalogSearchOrchestrator를 초기화합니다.

        Args:
            engine: 검색 엔진
            synchronizer: IndexSynchronizer 인스턴스
            coordinator: ReindexCoordinator 인스턴스
            search_service: SearchService 인스턴스
            worker_pool: IndexingWorkerPool 인스턴스
        """
        self.engine = engine
        self.synchronizer = synchronizer
        self.coordinator = coordinator
        self.search_service = search_service
        self.worker_pool = worker_pool

        logger.info("CatalogSearchOrchestrator 초기화 완료")

    # ------------------------------------------------------------------
    # 생명주기
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """라이브 세대를 준비하고 인덱싱 워커를 시작합니다.

        Returns:
            라이브 세대 이름
        """
        live = await self.engine.ensure_ready()
        await self.worker_pool.start()
        logger.info(f"상품 검색 서브시스템 시작 (live={live})")
        return live

    async def stop(self, drain: bool = True) -> None:
        """인덱싱 워커를 중지합니다."""
        await self.worker_pool.stop(drain=drain)

    # ------------------------------------------------------------------
    # 검색
    # ------------------------------------------------------------------

    async def search(self, query: SearchQuery) -> SearchResult:
        return await self.search_service.search(query)

    async def get_facets(self, query: SearchQuery) -> list[Facet]:
        return await self.search_service.get_facets(query)

    async def suggest(self, q: str, limit: int | None = None) -> list[str]:
        return await self.search_service.suggest(q, limit)

    # ------------------------------------------------------------------
    # 인덱싱
    # ------------------------------------------------------------------

    async def index_product(self, product_id: str) -> IndexOutcome:
        return await self.synchronizer.index_product(product_id)

    async def remove_from_index(self, product_id: str) -> None:
        await self.synchronizer.remove_from_index(product_id)

    async def submit_change(self, event: ChangeEvent) -> None:
        """변경 이벤트를 워커 풀에 넣습니다. 큐가 가득 차면 대기합니다."""
        await self.worker_pool.submit(event)

    async def index_all_products(self, prune: bool = False) -> BulkIndexReport:
        return await self.coordinator.index_all_products(prune=prune)

    async def reindex_products(self) -> ReindexStatus:
        return await self.coordinator.reindex_products()

    async def reindex_status(self) -> ReindexStatus:
        """재색인 진행 상태. 라이브 세대는 엔진에서 다시 읽습니다."""
        status = self.coordinator.status()
        status.live_generation = await self.engine.live_generation()
        return status

    def cancel_reindex(self) -> bool:
        return self.coordinator.cancel()

    async def health(self) -> dict[str, Any]:
        """서브시스템 상태를 반환합니다.

        Example:
            >>> await orchestrator.health()
            {'status': 'ok', 'engine': True, 'live_generation': 'products-v1', ...}
        """
        engine_ok = await self.engine.ping()
        status = await self.reindex_status() if engine_ok else self.coordinator.status()
        return {
            "status": "ok" if engine_ok else "degraded",
            "engine": engine_ok,
            "live_generation": status.live_generation,
            "reindex_state": status.state.value,
            "queue_size": self.worker_pool.queue.qsize(),
            "indexing_failures": len(self.worker_pool.failures),
        }

    @classmethod
    def create_default(
        cls,
        config: AppConfig | None = None,
        catalog: CatalogStore | None = None,
        engine: SearchEngine | None = None,
    ) -> CatalogSearchOrchestrator:
        """설정으로 Orchestrator를 생성합니다.

        Args:
            config: 애플리케이션 설정 (None이면 get_config())
            catalog: 카탈로그 저장소 (None이면 CATALOG_DATABASE_URL로 생성)
            engine: 검색 엔진 (None이면 INDEXING_ENGINE_BACKEND에 따라 생성)

        Returns:
            CatalogSearchOrchestrator 인스턴스

        Example:
            >>> orchestrator = CatalogSearchOrchestrator.create_default()
            >>> await orchestrator.start()
        """
        config = config or get_config()
        set_log_level("DEBUG" if config.debug else config.log_level)

        catalog = catalog or SqlCatalogStore.from_url(config.catalog.database_url)
        engine = engine or build_search_engine(config)
        categories = CategoryLookup(catalog, ttl_seconds=config.catalog.category_cache_ttl_seconds)

        # 동기화기와 코디네이터가 그림자 세대 정보를 공유
        tracker = ShadowWriteTracker()
        synchronizer = IndexSynchronizer(catalog, engine, categories, tracker=tracker)
        coordinator = ReindexCoordinator(
            catalog,
            engine,
            categories,
            tracker=tracker,
            page_size=config.catalog.page_size,
            failure_rate_threshold=config.indexing.failure_rate_threshold,
        )
        worker_pool = IndexingWorkerPool(
            synchronizer,
            worker_count=config.indexing.worker_count,
            queue_capacity=config.indexing.queue_capacity,
            max_attempts=config.indexing.max_attempts,
            backoff_base_seconds=config.indexing.backoff_base_seconds,
            backoff_max_seconds=config.indexing.backoff_max_seconds,
            job_timeout_seconds=config.indexing.engine_timeout_seconds,
        )
        search_service = SearchService(engine, categories, config.search)

        logger.info("기본 CatalogSearchOrchestrator 생성 완료")

        return cls(
            engine=engine,
            synchronizer=synchronizer,
            coordinator=coordinator,
            search_service=search_service,
            worker_pool=worker_pool,
        )
