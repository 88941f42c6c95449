"""커스텀 예외 클래스 정의.

검색 인덱스 동기화와 검색 쿼리 처리 전반에서 사용되는 예외 계층 구조를 제공합니다.
"""

from typing import Any


class ProductSearchError(Exception):
    """상품 검색 서브시스템의 모든 예외의 베이스 클래스."""

    pass


class ConfigError(ProductSearchError):
    """설정 관련 예외.

    환경 변수 누락, 잘못된 설정값 등의 경우 발생합니다.
    """

    pass


class CatalogError(ProductSearchError):
    """카탈로그(원본 DB) 조회 관련 예외."""

    pass


class EngineError(ProductSearchError):
    """검색 엔진 연동 관련 예외."""

    pass


class EngineUnavailableError(EngineError):
    """검색 엔진에 일시적으로 접근할 수 없는 경우.

    네트워크 장애, 타임아웃, 5xx 응답 등. 백오프 후 재시도 대상입니다.
    """

    pass


class IndexNotFoundError(EngineError):
    """대상 인덱스(세대)가 존재하지 않는 경우.

    재색인이 끝나 이전 세대가 삭제된 뒤 그 세대를 읽거나 쓰면 발생합니다.
    """

    pass


class VersionConflictError(EngineError):
    """이미 더 새로운 sourceVersion 문서가 인덱스에 있는 경우.

    오래된 쓰기가 거부된 것이므로 호출 측에서는 DEBUG 로그만 남기고 버립니다.
    """

    def __init__(self, product_id: str, incoming: int, existing: int):
        self.product_id = product_id
        self.incoming = incoming
        self.existing = existing
        super().__init__(
            f"stale write rejected: id={product_id}, incoming={incoming}, existing={existing}"
        )


class QueryCompilationError(ProductSearchError):
    """검색 쿼리 검증 실패.

    가격 범위 min > max 등 잘못된 필터 조합. 엔진으로 전달되지 않습니다.
    """

    pass


class SearchUnavailableError(ProductSearchError):
    """검색 엔진에 접근할 수 없어 검색을 수행하지 못한 경우.

    "결과 없음"과 구분하기 위해 빈 결과 대신 이 예외를 발생시킵니다.
    """

    pass


class RebuildFailureError(ProductSearchError):
    """전체 재색인 중 대량 조회/쓰기 실패.

    진행 중이던 세대는 폐기되고 기존 라이브 인덱스는 그대로 유지됩니다.
    """

    pass


class ReindexInProgressError(ProductSearchError):
    """이미 재색인이 진행 중일 때 새 재색인 요청이 들어온 경우."""

    pass


class ReindexCancelledError(ProductSearchError):
    """재색인이 협조적으로 취소된 경우."""

    pass


class BulkIndexError(ProductSearchError):
    """대량 인덱싱 실패율이 임계값을 초과한 경우.

    Attributes:
        report: 실패 건수 등이 담긴 BulkIndexReport
    """

    def __init__(self, message: str, report: Any = None):
        self.report = report
        super().__init__(message)


class IndexingQueueFullError(ProductSearchError):
    """인덱싱 작업 큐가 가득 차 변경 이벤트를 받을 수 없는 경우."""

    pass
