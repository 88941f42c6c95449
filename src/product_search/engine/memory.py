"""인메모리 검색 엔진.

외부 검색 서비스 없이 동작하는 내장형 엔진입니다. 로컬 개발, 데모,
테스트에 사용하며 Azure AI Search 어댑터와 동일한 인터페이스를 제공합니다.

- 세대(generation)는 ``{id: document}`` 딕셔너리입니다.
- 라이브 별칭은 락 안에서 교체되는 포인터입니다.
- 쿼리는 시작 시점의 세대 스냅샷 하나만 관찰합니다.
"""

from __future__ import annotations

import math
import re
import threading
from collections import Counter
from typing import Any

from ..utils.errors import EngineError, VersionConflictError
from ..utils.logger import get_logger
from .base import SearchEngine
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

TOKEN_PATTERN = re.compile(r"\w+")

# BM25 파라미터
K1 = 1.2


def tokenize(text: Any) -> list[str]:
    """소문자 단어 토큰 목록을 반환합니다. 리스트는 이어 붙입니다."""
    if text is None:
        return []
    if isinstance(text, list):
        return [token for item in text for token in tokenize(item)]
    return TOKEN_PATTERN.findall(str(text).lower())


def edit_distance(a: str, b: str) -> int:
    """레벤슈타인 거리."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


class InMemorySearchEngine(SearchEngine):
    """내장형 검색 엔진.

    Examples:
        >>> engine = InMemorySearchEngine(alias="products")
        >>> await engine.ensure_ready()
        'products-v1'
        >>> await engine.upsert_if_newer({"id": "p1", "name": "..."}, version=1)
    """

    def __init__(self, alias: str = "products", suggest_fields: list[str] | None = None):
        """InMemorySearchEngine을 초기화합니다.

        Args:
            alias: 라이브 별칭 이름 (세대 이름의 접두사)
            suggest_fields: 검색 제안 어휘를 만들 필드
        """
        self.alias = alias
        self.suggest_fields = suggest_fields or ["name", "brand"]
        self._generations: dict[str, dict[str, dict[str, Any]]] = {}
        self._live: str | None = None
        self._counter = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # 세대 관리
    # ------------------------------------------------------------------

    async def ensure_ready(self) -> str:
        with self._lock:
            if self._live is None:
                self._live = self._new_generation_locked()
                logger.info(f"라이브 세대 생성: {self._live}")
            return self._live

    async def create_generation(self) -> str:
        with self._lock:
            generation = self._new_generation_locked()
        logger.info(f"새 세대 생성: {generation}")
        return generation

    def _new_generation_locked(self) -> str:
        self._counter += 1
        generation = f"{self.alias}-v{self._counter}"
        self._generations[generation] = {}
        return generation

    async def swap_alias(self, generation: str) -> None:
        with self._lock:
            if generation not in self._generations:
                raise EngineError(f"존재하지 않는 세대: {generation}")
            previous, self._live = self._live, generation
        logger.info(f"별칭 전환: {self.alias} {previous} -> {generation}")

    async def drop_generation(self, generation: str) -> None:
        with self._lock:
            if generation == self._live:
                raise EngineError(f"라이브 세대는 삭제할 수 없습니다: {generation}")
            self._generations.pop(generation, None)
        logger.info(f"세대 삭제: {generation}")

    async def live_generation(self) -> str | None:
        return self._live

    async def ping(self) -> bool:
        return True

    def generations(self) -> list[str]:
        """존재하는 세대 이름 목록을 반환합니다."""
        with self._lock:
            return list(self._generations)

    def _resolve_locked(self, generation: str | None) -> dict[str, dict[str, Any]]:
        name = generation or self._live
        if name is None:
            raise EngineError("라이브 세대가 없습니다. ensure_ready()를 먼저 호출하세요.")
        try:
            return self._generations[name]
        except KeyError as e:
            raise EngineError(f"존재하지 않는 세대: {name}") from e

    # ------------------------------------------------------------------
    # 쓰기
    # ------------------------------------------------------------------

    async def upsert_if_newer(
        self,
        document: dict[str, Any],
        version: int,
        generation: str | None = None,
    ) -> None:
        document_id = str(document["id"])
        with self._lock:
            store = self._resolve_locked(generation)
            existing = store.get(document_id)
            if existing is not None and existing.get("source_version", 0) > version:
                raise VersionConflictError(document_id, version, existing["source_version"])
            stored = dict(document)
            stored["source_version"] = version
            store[document_id] = stored

    async def upsert_many(
        self,
        documents: list[dict[str, Any]],
        generation: str | None = None,
    ) -> list[WriteResult]:
        results = []
        for document in documents:
            document_id = str(document["id"])
            version = int(document.get("source_version", 0))
            try:
                await self.upsert_if_newer(document, version, generation)
                results.append(WriteResult(id=document_id, outcome=WriteOutcome.APPLIED))
            except VersionConflictError:
                results.append(WriteResult(id=document_id, outcome=WriteOutcome.STALE))
        return results

    async def delete(self, document_id: str, generation: str | None = None) -> None:
        with self._lock:
            self._resolve_locked(generation).pop(document_id, None)

    async def iter_document_ids(self, generation: str | None = None) -> list[str]:
        with self._lock:
            return list(self._resolve_locked(generation))

    async def get_document(
        self, document_id: str, generation: str | None = None
    ) -> dict[str, Any] | None:
        """저장된 문서 사본을 반환합니다."""
        with self._lock:
            document = self._resolve_locked(generation).get(document_id)
        return dict(document) if document is not None else None

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
        with self._lock:
            generation = self._live
            documents = list(self._resolve_locked(None).values())

        terms = tokenize(compiled.text) if compiled.text else []
        scored = self._match(documents, terms, compiled.search_fields)

        matched = [] if compiled.match_none else [
            (doc, score) for doc, score in scored if self._passes(doc, compiled.filters)
        ]
        ordered = self._sort(matched, compiled.sort)

        offset = (page - 1) * limit
        hits = [
            EngineHit(
                document=dict(doc),
                score=score if terms else None,
                match_positions=self._positions(doc, terms, compiled.highlight_fields),
            )
            for doc, score in ordered[offset:offset + limit]
        ]

        facet_counts = {}
        for request in facets:
            candidates = [] if compiled.match_none else [
                doc for doc, _ in scored if self._passes(doc, request.filters)
            ]
            facet_counts[request.name] = self._count(candidates, request)

        return EngineResult(
            hits=hits,
            total=len(ordered),
            facets=facet_counts,
            generation=generation,
        )

    def _match(
        self,
        documents: list[dict[str, Any]],
        terms: list[str],
        search_fields: list[str],
    ) -> list[tuple[dict[str, Any], float]]:
        """모든 검색어를 포함하는 문서와 BM25 유사 점수를 반환합니다."""
        if not terms:
            return [(doc, 0.0) for doc in documents]

        token_counts = [
            Counter(tokenize([doc.get(field) for field in search_fields]))
            for doc in documents
        ]
        total_docs = len(documents) or 1
        unique_terms = set(terms)
        doc_freq = {
            term: sum(1 for counts in token_counts if term in counts)
            for term in unique_terms
        }

        results = []
        for doc, counts in zip(documents, token_counts):
            if not all(term in counts for term in unique_terms):
                continue
            score = 0.0
            for term in unique_terms:
                df = doc_freq[term]
                idf = math.log(1.0 + (total_docs - df + 0.5) / (df + 0.5))
                tf = counts[term]
                score += idf * (tf * (K1 + 1)) / (tf + K1)
            results.append((doc, score))
        return results

    @staticmethod
    def _passes(doc: dict[str, Any], filters: list[FilterClause]) -> bool:
        for clause in filters:
            value = doc.get(clause.field)
            if isinstance(clause, TermsFilter):
                if isinstance(value, list):
                    if not any(v in clause.values for v in value):
                        return False
                elif value not in clause.values:
                    return False
            elif isinstance(clause, RangeFilter):
                if value is None:
                    return False
                if clause.gte is not None and value < clause.gte:
                    return False
                if clause.gt is not None and value <= clause.gt:
                    return False
                if clause.lte is not None and value > clause.lte:
                    return False
        return True

    @staticmethod
    def _sort(
        items: list[tuple[dict[str, Any], float]],
        sort: list[SortKey],
    ) -> list[tuple[dict[str, Any], float]]:
        """안정 정렬을 덜 중요한 키부터 적용합니다. 값이 없는 문서는 뒤로."""
        ordered = list(items)
        for key in reversed(sort):
            if key.field == SCORE_FIELD:
                ordered.sort(key=lambda item: item[1], reverse=key.descending)
                continue
            present = [item for item in ordered if item[0].get(key.field) is not None]
            missing = [item for item in ordered if item[0].get(key.field) is None]
            present.sort(key=lambda item: item[0][key.field], reverse=key.descending)
            ordered = present + missing
        return ordered

    @staticmethod
    def _positions(
        doc: dict[str, Any],
        terms: list[str],
        fields: list[str],
    ) -> dict[str, list[tuple[int, int]]] | None:
        if not terms or not fields:
            return None
        wanted = set(terms)
        positions = {}
        for field in fields:
            value = doc.get(field)
            if not isinstance(value, str):
                continue
            spans = [
                (m.start(), m.end())
                for m in TOKEN_PATTERN.finditer(value)
                if m.group().lower() in wanted
            ]
            if spans:
                positions[field] = spans
        return positions or None

    @staticmethod
    def _count(documents: list[dict[str, Any]], request: FacetRequest) -> list[FacetCount]:
        counter: Counter = Counter()
        for doc in documents:
            value = doc.get(request.field)
            if value is None:
                continue
            if isinstance(value, list):
                counter.update(set(value))
            else:
                counter[value] += 1
        ranked = sorted(counter.items(), key=lambda item: (-item[1], str(item[0])))
        return [FacetCount(value=value, count=count) for value, count in ranked[:request.limit]]

    async def suggest(self, text: str, limit: int = 5) -> list[str]:
        terms = tokenize(text)
        if not terms or limit <= 0:
            return []

        with self._lock:
            documents = list(self._resolve_locked(None).values())

        candidates: dict[str, tuple[int, int]] = {}
        for doc in documents:
            name = doc.get("name")
            if not name:
                continue
            vocabulary = set(tokenize([doc.get(field) for field in self.suggest_fields]))
            best: int | None = None
            for term in terms:
                max_distance = 1 if len(term) <= 4 else 2
                for token in vocabulary:
                    if abs(len(token) - len(term)) > max_distance:
                        continue
                    distance = edit_distance(term, token)
                    if distance <= max_distance and (best is None or distance < best):
                        best = distance
            if best is None:
                continue
            rank = (best, -int(doc.get("view_count") or 0))
            if name not in candidates or rank < candidates[name]:
                candidates[name] = rank

        ranked = sorted(candidates.items(), key=lambda item: (item[1], item[0]))
        return [name for name, _ in ranked[:limit]]
