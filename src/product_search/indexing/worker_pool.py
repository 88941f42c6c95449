"""인덱싱 워커 풀

카탈로그 변경 이벤트를 제한된 크기의 큐에 받아 여러 워커가 병렬로 처리합니다.

특징:
1. Backpressure (큐가 가득 차면 submit이 대기, try_submit은 예외)
2. 작업 단위 타임아웃
3. 지수 백오프 재시도 (일시 장애만)
4. 재시도 한도 초과 시 영구 실패로 기록
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ..utils.errors import (
    CatalogError,
    EngineUnavailableError,
    IndexingQueueFullError,
    ProductSearchError,
)
from ..utils.logger import get_logger, log_with_context
from .synchronizer import IndexSynchronizer

logger = get_logger(__name__)

# 백오프 후 재시도하는 일시 장애
RETRYABLE_ERRORS = (EngineUnavailableError, CatalogError, asyncio.TimeoutError)


class ChangeKind(str, Enum):
    """카탈로그 변경 종류."""

    UPSERTED = "upserted"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """카탈로그 변경 이벤트. 최소 1회 전달되며 상품 간 순서는 보장되지 않습니다."""

    product_id: str
    change_kind: ChangeKind = ChangeKind.UPSERTED


class IndexingFailure(BaseModel):
    """재시도 후에도 처리하지 못한 이벤트."""

    event: ChangeEvent
    attempts: int
    error: str
    failed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class IndexingWorkerPool:
    """인덱싱 워커 풀.

    Examples:
        >>> pool = IndexingWorkerPool(synchronizer, worker_count=4)
        >>> await pool.start()
        >>> await pool.submit(ChangeEvent(product_id="p-001"))
        >>> await pool.join()
        >>> await pool.stop()
    """

    def __init__(
        self,
        synchronizer: IndexSynchronizer,
        worker_count: int = 4,
        queue_capacity: int = 1000,
        max_attempts: int = 5,
        backoff_base_seconds: float = 0.5,
        backoff_max_seconds: float = 30.0,
        job_timeout_seconds: float = 10.0,
    ):
        """IndexingWorkerPool을 초기화합니다.

        Args:
            synchronizer: 이벤트를 처리할 IndexSynchronizer
            worker_count: 워커 수
            queue_capacity: 큐 최대 크기
            max_attempts: 이벤트당 최대 시도 횟수
            backoff_base_seconds: 첫 재시도 지연 (초)
            backoff_max_seconds: 최대 재시도 지연 (초)
            job_timeout_seconds: 작업 1회 타임아웃 (초)
        """
        self.synchronizer = synchronizer
        self.worker_count = worker_count
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self.job_timeout_seconds = job_timeout_seconds

        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=queue_capacity)
        self.failures: list[IndexingFailure] = []
        self.stats = {
            "processed": 0,
            "retried": 0,
            "failed": 0,
            "queue_full_count": 0,
        }
        self._workers: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        """워커를 시작합니다."""
        if self.is_running:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"indexing-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info(f"인덱싱 워커 풀 시작 (workers={self.worker_count})")

    async def stop(self, drain: bool = True) -> None:
        """워커를 중지합니다.

        Args:
            drain: True이면 큐에 남은 이벤트를 모두 처리한 뒤 중지
        """
        if drain and self.is_running:
            await self.queue.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(f"인덱싱 워커 풀 중지 (stats={self.stats})")

    async def submit(self, event: ChangeEvent) -> None:
        """이벤트를 큐에 넣습니다. 큐가 가득 차면 자리가 날 때까지 대기합니다."""
        await self.queue.put(event)

    def try_submit(self, event: ChangeEvent) -> None:
        """이벤트를 즉시 큐에 넣습니다.

        Raises:
            IndexingQueueFullError: 큐가 가득 찬 경우
        """
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull as e:
            self.stats["queue_full_count"] += 1
            raise IndexingQueueFullError(
                f"인덱싱 큐가 가득 찼습니다 (capacity={self.queue.maxsize})"
            ) from e

    async def join(self) -> None:
        """큐에 들어간 모든 이벤트의 처리가 끝날 때까지 대기합니다."""
        await self.queue.join()

    def backoff_delay(self, attempt: int) -> float:
        """attempt번째 실패 후 재시도 지연 시간 (초)."""
        return min(self.backoff_base_seconds * 2 ** (attempt - 1), self.backoff_max_seconds)

    async def _worker(self, worker_id: int) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self._process(event)
            except Exception as e:
                # 워커가 죽지 않도록 예상치 못한 오류도 실패로 기록
                logger.error(f"[worker-{worker_id}] 예상치 못한 오류: {e}", exc_info=True)
                self._record_failure(event, 1, e)
            finally:
                self.queue.task_done()

    async def _process(self, event: ChangeEvent) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.wait_for(self._handle(event), timeout=self.job_timeout_seconds)
                self.stats["processed"] += 1
                return
            except RETRYABLE_ERRORS as e:
                if attempt >= self.max_attempts:
                    self._record_failure(event, attempt, e)
                    return
                delay = self.backoff_delay(attempt)
                self.stats["retried"] += 1
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"인덱싱 재시도 예정: {e!r}",
                    product_id=event.product_id,
                    attempt=attempt,
                    delay=delay,
                )
                await asyncio.sleep(delay)
            except ProductSearchError as e:
                # 재시도해도 결과가 같은 오류
                self._record_failure(event, attempt, e)
                return

    async def _handle(self, event: ChangeEvent) -> None:
        if event.change_kind == ChangeKind.DELETED:
            await self.synchronizer.remove_from_index(event.product_id)
        else:
            await self.synchronizer.index_product(event.product_id)

    def _record_failure(self, event: ChangeEvent, attempts: int, error: Exception) -> None:
        self.stats["failed"] += 1
        self.failures.append(
            IndexingFailure(event=event, attempts=attempts, error=repr(error))
        )
        log_with_context(
            logger,
            logging.ERROR,
            "인덱싱 영구 실패",
            product_id=event.product_id,
            change_kind=event.change_kind.value,
            attempts=attempts,
            error=repr(error),
        )
