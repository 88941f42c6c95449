"""인덱싱 모듈.

카탈로그 변경을 검색 인덱스에 반영하는 동기화기, 재색인 코디네이터,
워커 풀을 제공합니다.
"""

from .coordinator import BulkIndexReport, ReindexCoordinator, ReindexState, ReindexStatus
from .documents import SearchDocument, build_search_document
from .shadow import ShadowWriteTracker
from .synchronizer import IndexOutcome, IndexSynchronizer
from .worker_pool import ChangeEvent, ChangeKind, IndexingFailure, IndexingWorkerPool

__all__ = [
    "SearchDocument",
    "build_search_document",
    "IndexSynchronizer",
    "IndexOutcome",
    "ShadowWriteTracker",
    "ReindexCoordinator",
    "ReindexState",
    "ReindexStatus",
    "BulkIndexReport",
    "ChangeEvent",
    "ChangeKind",
    "IndexingFailure",
    "IndexingWorkerPool",
]
