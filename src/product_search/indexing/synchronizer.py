"""인덱스 동기화

카탈로그 변경 이벤트 단위로 검색 문서를 추가/갱신/삭제합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from enum import Enum
from typing import Any

from ..catalog.categories import CategoryLookup
from ..catalog.store import CatalogStore
from ..engine.base import SearchEngine
from ..utils.errors import EngineError, ProductSearchError, VersionConflictError
from ..utils.logger import get_logger, log_with_context
from .documents import build_search_document
from .shadow import ShadowWriteTracker

logger = get_logger(__name__)


class IndexOutcome(str, Enum):
    """index_product 처리 결과."""

    INDEXED = "indexed"
    REMOVED = "removed"
    STALE = "stale"


class IndexSynchronizer:
    """단일 상품 인덱스 동기화기.

    - 활성 상품: 검색 문서를 만들어 버전 조건부로 저장
    - 없음/비활성 상품: 인덱스에서 삭제 (없어도 오류 아님)
    - 더 새로운 버전이 이미 있으면: DEBUG 로그만 남기고 무시

    조회/쓰기 실패는 product_id와 함께 로그를 남기고 그대로 다시 발생시킵니다.
    재시도는 호출 측(IndexingWorkerPool 등)의 책임입니다.

    Examples:
        >>> synchronizer = IndexSynchronizer(store, engine, CategoryLookup(store))
        >>> await synchronizer.index_product("p-001")
        <IndexOutcome.INDEXED: 'indexed'>
    """

    def __init__(
        self,
        catalog: CatalogStore,
        engine: SearchEngine,
        categories: CategoryLookup,
        tracker: ShadowWriteTracker | None = None,
    ):
        """IndexSynchronizer를 초기화합니다.

        Args:
            catalog: 카탈로그 저장소
            engine: 검색 엔진
            categories: 카테고리 이름 조회
            tracker: 재색인 그림자 세대 추적기 (ReindexCoordinator와 공유)
        """
        self.catalog = catalog
        self.engine = engine
        self.categories = categories
        self.tracker = tracker or ShadowWriteTracker()

    async def index_product(self, product_id: str) -> IndexOutcome:
        """상품을 인덱싱합니다.

        Args:
            product_id: 상품 ID

        Returns:
            IndexOutcome

        Raises:
            CatalogError: 카탈로그 조회 실패
            EngineError: 엔진 쓰기 실패
        """
        try:
            product = await self.catalog.get_active_product_by_id(product_id)
            if product is None:
                logger.debug(f"활성 상품 아님, 인덱스에서 제거: {product_id}")
                await self._delete(product_id)
                return IndexOutcome.REMOVED

            category_name = await self.categories.get_name(product.category_id)
            document = build_search_document(product, category_name).to_index_dict()
            version = product.source_version

            # 쓰기 전에 표시해야 재색인 페이지가 이 상품을 덮어쓰지 않음
            shadow = self.tracker.generation
            self.tracker.mark(product_id)

            outcome = await self._upsert(document, version, None)
            if shadow is not None:
                await self._mirror(shadow, self._upsert(document, version, shadow))
            return outcome

        except ProductSearchError as e:
            log_with_context(
                logger, logging.ERROR, f"상품 인덱싱 실패: {e}", product_id=product_id
            )
            raise

    async def remove_from_index(self, product_id: str) -> None:
        """상품 문서를 인덱스에서 삭제합니다. 없으면 아무 것도 하지 않습니다.

        Raises:
            EngineError: 엔진 삭제 실패
        """
        try:
            await self._delete(product_id)
        except ProductSearchError as e:
            log_with_context(
                logger, logging.ERROR, f"인덱스 삭제 실패: {e}", product_id=product_id
            )
            raise

    async def _delete(self, product_id: str) -> None:
        shadow = self.tracker.generation
        self.tracker.mark(product_id, removed=True)

        await self.engine.delete(product_id)
        if shadow is not None:
            await self._mirror(shadow, self.engine.delete(product_id, generation=shadow))
        logger.info(f"인덱스에서 삭제: {product_id}")

    async def _upsert(
        self, document: dict[str, Any], version: int, generation: str | None
    ) -> IndexOutcome:
        try:
            await self.engine.upsert_if_newer(document, version, generation=generation)
        except VersionConflictError as e:
            logger.debug(f"오래된 쓰기 무시: {e}")
            return IndexOutcome.STALE
        logger.info(
            f"인덱싱 완료: {document['id']} (version={version}, "
            f"generation={generation or 'live'})"
        )
        return IndexOutcome.INDEXED

    async def _mirror(self, shadow: str, write: Awaitable[Any]) -> None:
        """그림자 세대에 같은 변경을 반영합니다.

        그 사이 재색인이 중단되어 세대가 삭제된 경우의 실패는 무시합니다.
        """
        try:
            await write
        except EngineError:
            if self.tracker.generation == shadow:
                raise
            logger.debug(f"종료된 그림자 세대 쓰기 무시: {shadow}")
