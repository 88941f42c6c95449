"""Azure AI Search 엔진 어댑터

세대 = Azure 인덱스 (``{alias}-v{n}``), 라이브 = 인덱스 별칭입니다.
Azure AI Search는 조건부(버전 비교) 업로드를 지원하지 않으므로
문서 ID 단위 락 + 읽기-비교-쓰기로 ``upsert_if_newer`` 를 구현합니다.
대량 쓰기는 배치마다 기존 버전을 한 번의 검색으로 조회합니다.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

from azure.core.exceptions import (
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.search.documents.indexes.models import SearchAlias

from ..utils.errors import (
    EngineError,
    EngineUnavailableError,
    IndexNotFoundError,
    VersionConflictError,
)
from ..utils.logger import get_logger
from .base import SearchEngine
from .client import SearchClientManager
from .odata import render_filter, render_order_by, render_search_in
from .query import (
    CompiledQuery,
    EngineHit,
    EngineResult,
    FacetCount,
    FacetRequest,
    WriteOutcome,
    WriteResult,
)
from .schema import create_index_schema

logger = get_logger(__name__)

# simple 쿼리 구문의 연산자 문자
SIMPLE_SYNTAX_OPERATORS = re.compile(r"([+\-&|!(){}\[\]^\"~*?:\\/])")


def escape_search_text(text: str | None) -> str:
    """자유 텍스트를 simple 쿼리 구문에서 리터럴로 취급되도록 이스케이프합니다."""
    if not text:
        return "*"
    return SIMPLE_SYNTAX_OPERATORS.sub(r"\\\1", text)


class KeyedLock:
    """키 단위 asyncio 락. 사용 중인 키만 메모리에 유지합니다."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold_many(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """여러 키를 정렬된 순서로 잡습니다."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.hold(key))
            yield


class AzureSearchEngine(SearchEngine):
    """Azure AI Search 기반 검색 엔진.

    모든 SDK 호출은 스레드에서 실행되며 ``timeout`` 초를 넘기면
    EngineUnavailableError로 변환됩니다.

    Examples:
        >>> manager = SearchClientManager.from_settings()
        >>> engine = AzureSearchEngine(manager, alias="products")
        >>> await engine.ensure_ready()
        'products-v1'
    """

    def __init__(
        self,
        clients: SearchClientManager,
        alias: str = "products",
        suggester_name: str = "product-suggester",
        timeout: float = 10.0,
        batch_size: int = 100,
    ):
        """AzureSearchEngine을 초기화합니다.

        Args:
            clients: SearchClientManager
            alias: 라이브 별칭 이름
            suggester_name: Suggester 이름
            timeout: 엔진 호출 타임아웃 (초)
            batch_size: 일괄 업로드 배치 크기
        """
        self.clients = clients
        self.alias = alias
        self.suggester_name = suggester_name
        self.timeout = timeout
        self.batch_size = batch_size
        self._document_locks = KeyedLock()
        self._generation_pattern = re.compile(rf"^{re.escape(alias)}-v(\d+)$")

        logger.info(f"AzureSearchEngine 초기화 완료 (alias={alias}, timeout={timeout}s)")

    async def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """SDK 호출을 타임아웃과 함께 실행하고 일시 장애를 변환합니다."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise EngineUnavailableError(f"엔진 호출 시간 초과 ({self.timeout}초)") from e
        except (ServiceRequestError, ServiceResponseError) as e:
            raise EngineUnavailableError(f"엔진 연결 실패: {e}") from e
        except ResourceNotFoundError as e:
            raise IndexNotFoundError(f"인덱스를 찾을 수 없음: {e}") from e
        except HttpResponseError as e:
            if e.status_code is None or e.status_code >= 500 or e.status_code == 429:
                raise EngineUnavailableError(f"엔진 일시 오류: {e}") from e
            raise EngineError(f"엔진 요청 실패: {e}") from e

    def _target(self, generation: str | None) -> str:
        return generation or self.alias

    # ------------------------------------------------------------------
    # 세대 관리
    # ------------------------------------------------------------------

    async def ensure_ready(self) -> str:
        live = await self.live_generation()
        if live is not None:
            return live

        generation = await self.create_generation()
        index_client = self.clients.index_client
        await self._call(
            index_client.create_or_update_alias,
            SearchAlias(name=self.alias, indexes=[generation]),
        )
        logger.info(f"라이브 별칭 생성: {self.alias} -> {generation}")
        return generation

    async def create_generation(self) -> str:
        index_client = self.clients.index_client
        names = await self._call(lambda: list(index_client.list_index_names()))
        numbers = [
            int(match.group(1))
            for match in (self._generation_pattern.match(name) for name in names)
            if match
        ]
        generation = f"{self.alias}-v{max(numbers, default=0) + 1}"

        await self._call(
            index_client.create_index,
            create_index_schema(generation, self.suggester_name),
        )
        logger.info(f"인덱스 세대 생성 완료: {generation}")
        return generation

    async def swap_alias(self, generation: str) -> None:
        await self._call(
            self.clients.index_client.create_or_update_alias,
            SearchAlias(name=self.alias, indexes=[generation]),
        )
        logger.info(f"별칭 전환 완료: {self.alias} -> {generation}")

    async def drop_generation(self, generation: str) -> None:
        if generation == await self.live_generation():
            raise EngineError(f"라이브 세대는 삭제할 수 없습니다: {generation}")
        index_client = self.clients.index_client

        def delete() -> bool:
            try:
                index_client.delete_index(generation)
            except ResourceNotFoundError:
                return False
            return True

        if not await self._call(delete):
            logger.warning(f"삭제할 세대가 이미 없음: {generation}")
        self.clients.forget(generation)
        logger.info(f"인덱스 세대 삭제 완료: {generation}")

    async def live_generation(self) -> str | None:
        index_client = self.clients.index_client

        def fetch() -> Any:
            try:
                return index_client.get_alias(self.alias)
            except ResourceNotFoundError:
                return None

        alias = await self._call(fetch)
        if alias is None or not alias.indexes:
            return None
        return alias.indexes[0]

    async def ping(self) -> bool:
        try:
            await self._call(self.clients.index_client.get_service_statistics)
            return True
        except EngineError as e:
            logger.warning(f"엔진 상태 확인 실패: {e}")
            return False

    # ------------------------------------------------------------------
    # 쓰기
    # ------------------------------------------------------------------

    async def upsert_if_newer(
        self,
        document: dict[str, Any],
        version: int,
        generation: str | None = None,
    ) -> None:
        target = self._target(generation)
        client = self.clients.get_client(target)
        document_id = str(document["id"])

        def fetch() -> dict[str, Any] | None:
            try:
                return client.get_document(key=document_id, selected_fields=["id", "source_version"])
            except ResourceNotFoundError:
                return None

        async with self._document_locks.hold(f"{target}:{document_id}"):
            existing = await self._call(fetch)

            existing_version = (existing or {}).get("source_version")
            if existing_version is not None and existing_version > version:
                raise VersionConflictError(document_id, version, existing_version)

            payload = dict(document)
            payload["source_version"] = version
            results = await self._call(client.merge_or_upload_documents, documents=[payload])

        for result in results:
            if not result.succeeded:
                raise EngineError(f"문서 업로드 실패 - ID: {result.key}, 오류: {result.error_message}")

    async def upsert_many(
        self,
        documents: list[dict[str, Any]],
        generation: str | None = None,
    ) -> list[WriteResult]:
        """배치마다 기존 버전을 한 번에 조회한 뒤 새 버전만 업로드합니다."""
        target = self._target(generation)
        client = self.clients.get_client(target)
        results: list[WriteResult] = []

        for i in range(0, len(documents), self.batch_size):
            batch = documents[i:i + self.batch_size]
            batch_results = await self._upsert_batch(client, target, batch)
            results.extend(batch_results)

            failed = sum(1 for r in batch_results if r.outcome == WriteOutcome.FAILED)
            logger.info(
                f"문서 업로드 완료: {i + len(batch)}/{len(documents)} "
                f"(성공: {len(batch) - failed}, 실패: {failed})"
            )
        return results

    async def _upsert_batch(
        self, client: Any, target: str, batch: list[dict[str, Any]]
    ) -> list[WriteResult]:
        ids = [str(document["id"]) for document in batch]
        outcomes: dict[str, WriteResult] = {}

        def fetch_versions() -> dict[str, Any]:
            found = client.search(
                search_text="*",
                filter=render_search_in("id", ids),
                select=["id", "source_version"],
                top=len(ids),
            )
            return {doc["id"]: doc.get("source_version") for doc in found}

        async with self._document_locks.hold_many(f"{target}:{i}" for i in ids):
            try:
                existing = await self._call(fetch_versions)
            except EngineError as e:
                logger.error(f"기존 버전 조회 실패 ({len(ids)}건): {e}")
                return [WriteResult(id=i, outcome=WriteOutcome.FAILED, error=str(e)) for i in ids]

            payloads = []
            for document_id, document in zip(ids, batch):
                version = int(document.get("source_version", 0))
                current = existing.get(document_id)
                if current is not None and current > version:
                    logger.debug(f"오래된 쓰기 무시: {document_id} ({version} < {current})")
                    outcomes[document_id] = WriteResult(id=document_id, outcome=WriteOutcome.STALE)
                    continue
                payload = dict(document)
                payload["source_version"] = version
                payloads.append(payload)

            if payloads:
                try:
                    uploaded = await self._call(client.merge_or_upload_documents, documents=payloads)
                except EngineError as e:
                    logger.error(f"배치 업로드 실패 ({len(payloads)}건): {e}")
                    for payload in payloads:
                        outcomes[payload["id"]] = WriteResult(
                            id=payload["id"], outcome=WriteOutcome.FAILED, error=str(e)
                        )
                else:
                    for r in uploaded:
                        if r.succeeded:
                            outcomes[r.key] = WriteResult(id=r.key, outcome=WriteOutcome.APPLIED)
                        else:
                            logger.error(f"업로드 실패 - ID: {r.key}, 오류: {r.error_message}")
                            outcomes[r.key] = WriteResult(
                                id=r.key, outcome=WriteOutcome.FAILED, error=r.error_message
                            )

        return [
            outcomes.get(i, WriteResult(id=i, outcome=WriteOutcome.FAILED, error="업로드 결과 없음"))
            for i in ids
        ]

    async def delete(self, document_id: str, generation: str | None = None) -> None:
        client = self.clients.get_client(self._target(generation))
        # 존재하지 않는 키 삭제도 성공으로 응답됨
        await self._call(client.delete_documents, documents=[{"id": document_id}])

    async def iter_document_ids(self, generation: str | None = None) -> list[str]:
        client = self.clients.get_client(self._target(generation))

        def collect() -> list[str]:
            return [doc["id"] for doc in client.search(search_text="*", select=["id"])]

        return await self._call(collect)

    # ------------------------------------------------------------------
    # 검색
    # ------------------------------------------------------------------

    async def query(
        self,
        compiled: CompiledQuery,
        facets: list[FacetRequest],
        page: int,
        limit: int,
    ) -> EngineResult:
        # 별칭을 한 번만 해석하여 모든 하위 요청이 같은 세대를 보도록 함
        generation = await self.live_generation() or self.alias
        try:
            return await self._query_generation(generation, compiled, facets, page, limit)
        except IndexNotFoundError:
            current = await self.live_generation() or self.alias
            if current == generation:
                raise
            logger.warning(f"검색 중 세대가 교체됨, 재시도: {generation} -> {current}")
            return await self._query_generation(current, compiled, facets, page, limit)

    async def _query_generation(
        self,
        generation: str,
        compiled: CompiledQuery,
        facets: list[FacetRequest],
        page: int,
        limit: int,
    ) -> EngineResult:
        client = self.clients.get_client(generation)
        search_text = escape_search_text(compiled.text)

        def run_main() -> tuple[list[EngineHit], int]:
            results = client.search(
                search_text=search_text,
                search_fields=compiled.search_fields or None,
                search_mode="all",
                filter=render_filter(compiled.filters, compiled.match_none),
                order_by=render_order_by(compiled.sort),
                skip=(page - 1) * limit,
                top=limit,
                include_total_count=True,
                highlight_fields=",".join(compiled.highlight_fields) if compiled.text else None,
                highlight_pre_tag="<em>",
                highlight_post_tag="</em>",
            )
            hits = []
            for result in results:
                document = {k: v for k, v in result.items() if not k.startswith("@search.")}
                hits.append(
                    EngineHit(
                        document=document,
                        score=result.get("@search.score") if compiled.text else None,
                        highlights=result.get("@search.highlights"),
                    )
                )
            return hits, results.get_count() or 0

        def run_facet(request: FacetRequest) -> list[FacetCount]:
            results = client.search(
                search_text=search_text,
                search_fields=compiled.search_fields or None,
                search_mode="all",
                filter=render_filter(request.filters, compiled.match_none),
                facets=[f"{request.field},count:{request.limit}"],
                top=0,
            )
            buckets = (results.get_facets() or {}).get(request.field, [])
            return [FacetCount(value=b["value"], count=b["count"]) for b in buckets]

        (hits, total), *facet_lists = await asyncio.gather(
            self._call(run_main),
            *(self._call(run_facet, request) for request in facets),
        )

        return EngineResult(
            hits=hits,
            total=total,
            facets={request.name: counts for request, counts in zip(facets, facet_lists)},
            generation=generation,
        )

    async def suggest(self, text: str, limit: int = 5) -> list[str]:
        text = text.strip()[:100]
        if not text or limit <= 0:
            return []
        client = self.clients.get_client(self.alias)

        def run() -> list[str]:
            results = client.suggest(
                search_text=text,
                suggester_name=self.suggester_name,
                use_fuzzy_matching=True,
                top=limit,
                select=["name"],
            )
            names: list[str] = []
            for result in results:
                name = result.get("name") or result.get("@search.text")
                if name and name not in names:
                    names.append(name)
            return names

        return await self._call(run)
