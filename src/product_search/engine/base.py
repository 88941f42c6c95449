"""검색 엔진 능력(capability) 인터페이스.

동기화/재색인/검색 계층은 이 인터페이스에만 의존합니다.
구체 엔진(Azure AI Search, 인메모리 등)은 이를 구현합니다.
"""

from abc import ABC, abstractmethod
from typing import Any

from .query import CompiledQuery, EngineResult, FacetRequest, WriteResult


class SearchEngine(ABC):
    """검색 엔진 베이스 클래스.

    인덱스는 여러 "세대(generation)"로 존재할 수 있으며, 라이브 별칭이
    가리키는 세대만 검색에 사용됩니다. ``generation=None`` 은 라이브 세대를
    의미하며 호출 시점에 해석됩니다.
    """

    @abstractmethod
    async def ensure_ready(self) -> str:
        """라이브 세대가 없으면 만들고 별칭을 연결합니다.

        Returns:
            라이브 세대 이름
        """

    @abstractmethod
    async def upsert_if_newer(
        self,
        document: dict[str, Any],
        version: int,
        generation: str | None = None,
    ) -> None:
        """기존 문서보다 버전이 같거나 새로운 경우에만 저장합니다.

        Raises:
            VersionConflictError: 기존 문서의 버전이 더 새로운 경우
            EngineUnavailableError: 엔진에 접근할 수 없는 경우
        """

    @abstractmethod
    async def upsert_many(
        self,
        documents: list[dict[str, Any]],
        generation: str | None = None,
    ) -> list[WriteResult]:
        """문서를 버전 조건부로 일괄 저장합니다. 실패는 문서 단위로 격리됩니다.

        각 문서의 ``source_version`` 보다 새로운 문서가 이미 있으면 STALE로 보고합니다.
        """

    @abstractmethod
    async def delete(self, document_id: str, generation: str | None = None) -> None:
        """문서를 삭제합니다. 없는 문서는 오류가 아닙니다."""

    @abstractmethod
    async def query(
        self,
        compiled: CompiledQuery,
        facets: list[FacetRequest],
        page: int,
        limit: int,
    ) -> EngineResult:
        """라이브 세대에서 쿼리를 실행합니다.

        한 번의 호출은 하나의 세대만 관찰합니다.
        """

    @abstractmethod
    async def suggest(self, text: str, limit: int = 5) -> list[str]:
        """오타를 허용하는 근사 매칭으로 검색 제안을 반환합니다."""

    @abstractmethod
    async def iter_document_ids(self, generation: str | None = None) -> list[str]:
        """세대에 저장된 모든 문서 ID를 반환합니다."""

    @abstractmethod
    async def create_generation(self) -> str:
        """비어 있는 새 세대를 만들고 이름을 반환합니다."""

    @abstractmethod
    async def swap_alias(self, generation: str) -> None:
        """라이브 별칭을 원자적으로 새 세대로 전환합니다."""

    @abstractmethod
    async def drop_generation(self, generation: str) -> None:
        """세대를 삭제합니다. 라이브 세대는 삭제할 수 없습니다."""

    @abstractmethod
    async def live_generation(self) -> str | None:
        """현재 라이브 세대 이름을 반환합니다."""

    @abstractmethod
    async def ping(self) -> bool:
        """엔진 응답 여부를 반환합니다."""
