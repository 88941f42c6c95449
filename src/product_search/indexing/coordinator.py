"""재색인 코디네이터

전체 카탈로그를 인덱스에 반영하는 두 가지 대량 작업을 담당합니다.

- index_all_products: 라이브 세대에 바로 쓰는 증분 동기화 (선택적 prune)
- reindex_products: 새 세대를 만들어 채운 뒤 별칭을 원자적으로 전환
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ..catalog.categories import CategoryLookup
from ..catalog.models import CatalogProduct
from ..catalog.store import CatalogStore
from ..engine.base import SearchEngine
from ..engine.query import WriteOutcome, WriteResult
from ..utils.errors import (
    BulkIndexError,
    EngineError,
    ProductSearchError,
    RebuildFailureError,
    ReindexCancelledError,
    ReindexInProgressError,
)
from ..utils.logger import get_logger, log_with_context
from .documents import build_search_document
from .shadow import ShadowWriteTracker

logger = get_logger(__name__)


class ReindexState(str, Enum):
    """재색인 상태.

    IDLE -> BUILDING -> SWAPPING -> IDLE (성공)
    IDLE -> BUILDING -> ABORTING -> IDLE (실패/취소)
    """

    IDLE = "idle"
    BUILDING = "building"
    SWAPPING = "swapping"
    ABORTING = "aborting"


class ReindexStatus(BaseModel):
    """재색인 진행 상태 스냅샷."""

    state: ReindexState = ReindexState.IDLE
    generation: str | None = Field(default=None, description="구축 중(또는 마지막으로 구축한) 세대")
    live_generation: str | None = Field(default=None, description="라이브 세대")
    processed: int = 0
    failed: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None


class BulkIndexReport(BaseModel):
    """대량 인덱싱 결과."""

    processed: int = 0
    indexed: int = 0
    skipped_stale: int = 0
    failed: int = 0
    failed_ids: list[str] = Field(default_factory=list)
    pruned: int = 0

    @property
    def failure_rate(self) -> float:
        if self.processed == 0:
            return 0.0
        return self.failed / self.processed

    def record(self, results: list[WriteResult]) -> None:
        """문서 단위 쓰기 결과를 집계합니다."""
        for result in results:
            self.processed += 1
            if result.outcome == WriteOutcome.APPLIED:
                self.indexed += 1
            elif result.outcome == WriteOutcome.STALE:
                self.skipped_stale += 1
            else:
                self.failed += 1
                self.failed_ids.append(result.id)

    def record_failed(self, product_ids: list[str]) -> None:
        self.processed += len(product_ids)
        self.failed += len(product_ids)
        self.failed_ids.extend(product_ids)


class ReindexCoordinator:
    """대량 인덱싱/전체 재색인 코디네이터.

    전체 재색인은 동시에 하나만 실행됩니다. 두 번째 요청은
    ReindexInProgressError로 거부됩니다.

    Examples:
        >>> coordinator = ReindexCoordinator(store, engine, categories, tracker)
        >>> status = await coordinator.reindex_products()
        >>> status.live_generation
        'products-v2'
    """

    def __init__(
        self,
        catalog: CatalogStore,
        engine: SearchEngine,
        categories: CategoryLookup,
        tracker: ShadowWriteTracker | None = None,
        page_size: int = 500,
        failure_rate_threshold: float = 0.05,
    ):
        """ReindexCoordinator를 초기화합니다.

        Args:
            catalog: 카탈로그 저장소
            engine: 검색 엔진
            categories: 카테고리 이름 조회
            tracker: 그림자 세대 추적기 (IndexSynchronizer와 공유)
            page_size: 카탈로그 페이지 크기
            failure_rate_threshold: 허용 실패율 (초과 시 예외)
        """
        self.catalog = catalog
        self.engine = engine
        self.categories = categories
        self.tracker = tracker or ShadowWriteTracker()
        self.page_size = page_size
        self.failure_rate_threshold = failure_rate_threshold

        self._status = ReindexStatus()
        self._cancel_requested = False

    @property
    def is_running(self) -> bool:
        return self._status.state != ReindexState.IDLE

    def status(self) -> ReindexStatus:
        """현재 재색인 상태 사본을 반환합니다."""
        return self._status.model_copy()

    def cancel(self) -> bool:
        """진행 중인 재색인에 취소를 요청합니다.

        페이지 단위 작업 사이에서 확인되며 라이브 세대에는 영향이 없습니다.

        Returns:
            취소 요청이 접수되었는지 여부 (진행 중인 재색인이 없으면 False)
        """
        if self._status.state != ReindexState.BUILDING:
            return False
        self._cancel_requested = True
        logger.info(f"재색인 취소 요청: {self._status.generation}")
        return True

    async def _documents_for(
        self, products: list[CatalogProduct]
    ) -> list[dict]:
        names = await self.categories.get_names()
        documents = []
        for product in products:
            category_name = names.get(product.category_id) if product.category_id else None
            documents.append(build_search_document(product, category_name).to_index_dict())
        return documents

    # ------------------------------------------------------------------
    # 증분 동기화
    # ------------------------------------------------------------------

    async def index_all_products(self, prune: bool = False) -> BulkIndexReport:
        """모든 활성 상품을 라이브 세대에 upsert합니다.

        문서 단위 실패는 격리되어 전체 작업을 중단하지 않습니다.

        Args:
            prune: True이면 이번 패스에서 보지 못한 라이브 문서를 삭제

        Returns:
            BulkIndexReport

        Raises:
            CatalogError: 카탈로그 페이지 조회 실패
            BulkIndexError: 실패율이 임계값을 초과한 경우
        """
        report = BulkIndexReport()
        seen: set[str] = set()
        cursor: str | None = None

        logger.info(f"전체 상품 인덱싱 시작 (prune={prune})")

        while True:
            page = await self.catalog.list_active_products(cursor, self.page_size)
            if page.items:
                documents = await self._documents_for(page.items)
                seen.update(doc["id"] for doc in documents)
                try:
                    report.record(await self.engine.upsert_many(documents))
                except EngineError as e:
                    logger.error(f"배치 인덱싱 실패 ({len(documents)}건): {e}")
                    report.record_failed([doc["id"] for doc in documents])

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        if prune:
            report.pruned = await self._prune(seen)

        logger.info(
            f"전체 상품 인덱싱 완료: 처리 {report.processed}, 성공 {report.indexed}, "
            f"무시 {report.skipped_stale}, 실패 {report.failed}, 정리 {report.pruned}"
        )

        if report.failure_rate > self.failure_rate_threshold:
            log_with_context(
                logger,
                logging.ERROR,
                "대량 인덱싱 실패율 초과",
                failed=report.failed,
                processed=report.processed,
                threshold=self.failure_rate_threshold,
            )
            raise BulkIndexError(
                f"실패율 {report.failure_rate:.1%}가 임계값 "
                f"{self.failure_rate_threshold:.1%}를 초과했습니다",
                report=report,
            )
        return report

    async def _prune(self, seen: set[str]) -> int:
        """이번 패스에서 보지 못한 라이브 문서를 삭제합니다.

        패스 도중 새로 생긴 상품을 지우지 않도록 카탈로그를 다시 확인합니다.
        """
        pruned = 0
        for document_id in await self.engine.iter_document_ids():
            if document_id in seen:
                continue
            if await self.catalog.get_active_product_by_id(document_id) is not None:
                continue
            await self.engine.delete(document_id)
            pruned += 1
            logger.debug(f"비활성 상품 문서 정리: {document_id}")
        return pruned

    # ------------------------------------------------------------------
    # 전체 재색인
    # ------------------------------------------------------------------

    async def reindex_products(self) -> ReindexStatus:
        """새 세대를 구축하고 성공하면 라이브 별칭을 전환합니다.

        실패하거나 취소되면 구축 중이던 세대를 폐기하고 기존 라이브 세대는
        그대로 둡니다.

        Returns:
            완료 시점의 ReindexStatus

        Raises:
            ReindexInProgressError: 이미 재색인이 진행 중인 경우
            ReindexCancelledError: cancel()로 취소된 경우
            RebuildFailureError: 조회/쓰기 실패로 중단된 경우
        """
        if self.is_running:
            raise ReindexInProgressError(
                f"재색인이 이미 진행 중입니다: {self._status.generation}"
            )

        # await 이전에 상태를 바꿔야 동시 요청이 거부됨
        previous = self._status.live_generation
        self._status = ReindexStatus(
            state=ReindexState.BUILDING,
            live_generation=previous,
            started_at=datetime.now(timezone.utc),
        )
        self._cancel_requested = False

        generation: str | None = None
        try:
            previous = await self.engine.live_generation()
            self._status.live_generation = previous

            generation = await self.engine.create_generation()
            self._status.generation = generation
            self.tracker.begin(generation)
            logger.info(f"재색인 시작: {previous} -> {generation}")

            report = await self._build(generation)

            self._check_cancelled()
            self._status.state = ReindexState.SWAPPING
            await self.engine.swap_alias(generation)
            self.tracker.end()

        except ReindexCancelledError as e:
            await self._abort(generation, str(e))
            raise
        except ProductSearchError as e:
            await self._abort(generation, str(e))
            log_with_context(
                logger,
                logging.ERROR,
                f"재색인 실패, 라이브 세대 유지: {e}",
                generation=generation,
                live_generation=previous,
            )
            raise RebuildFailureError(f"재색인 실패: {e}") from e
        except Exception as e:
            await self._abort(generation, str(e))
            logger.error(f"재색인 중 예상치 못한 오류: {e}", exc_info=True)
            raise

        if previous is not None and previous != generation:
            try:
                await self.engine.drop_generation(previous)
            except EngineError as e:
                logger.warning(f"이전 세대 삭제 실패 (수동 정리 필요): {previous} - {e}")

        self._finish(live_generation=generation)
        logger.info(
            f"재색인 완료: {generation} (처리 {report.processed}, 실패 {report.failed})"
        )
        if report.failed_ids:
            logger.warning(f"재색인 중 실패한 상품: {report.failed_ids}")
        return self.status()

    async def _build(self, generation: str) -> BulkIndexReport:
        report = BulkIndexReport()
        cursor: str | None = None

        while True:
            self._check_cancelled()
            page = await self.catalog.list_active_products(cursor, self.page_size)

            # 재색인 중 개별 변경된 상품은 동기화기가 이미 반영함
            products = [p for p in page.items if not self.tracker.was_touched(p.id)]
            if products:
                documents = await self._documents_for(products)
                report.record(await self.engine.upsert_many(documents, generation=generation))
                await self._reapply_removals(generation, [p.id for p in products])

            self._status.processed = report.processed
            self._status.failed = report.failed

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        if report.failure_rate > self.failure_rate_threshold:
            raise BulkIndexError(
                f"실패율 {report.failure_rate:.1%}가 임계값을 초과했습니다 "
                f"({report.failed}/{report.processed})",
                report=report,
            )
        return report

    async def _reapply_removals(self, generation: str, product_ids: list[str]) -> None:
        """페이지를 쓰는 동안 삭제된 상품을 그림자 세대에서 다시 삭제합니다."""
        for product_id in product_ids:
            if self.tracker.was_removed(product_id):
                await self.engine.delete(product_id, generation=generation)
                logger.debug(f"재색인 중 삭제된 상품 재삭제: {product_id} ({generation})")

    def _check_cancelled(self) -> None:
        if self._cancel_requested:
            raise ReindexCancelledError(f"재색인 취소됨: {self._status.generation}")

    async def _abort(self, generation: str | None, error: str) -> None:
        self._status.state = ReindexState.ABORTING
        self.tracker.end()
        if generation is not None:
            try:
                await self.engine.drop_generation(generation)
            except EngineError as e:
                logger.warning(f"중단된 세대 삭제 실패 (수동 정리 필요): {generation} - {e}")
        self._finish(live_generation=self._status.live_generation, error=error)

    def _finish(self, live_generation: str | None, error: str | None = None) -> None:
        self._status.state = ReindexState.IDLE
        self._status.live_generation = live_generation
        self._status.finished_at = datetime.now(timezone.utc)
        self._status.error = error
        self._cancel_requested = False
