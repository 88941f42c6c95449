"""엔진 중립 쿼리 표현.

QueryCompiler가 만들고 각 엔진 어댑터가 자신의 형식으로 변환합니다.
(Azure AI Search는 OData, 인메모리 엔진은 직접 평가)
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

SCORE_FIELD = "_score"

# 자유 텍스트 검색 대상 필드
SEARCH_FIELDS = ["searchable_text"]

# 하이라이트 대상 필드
HIGHLIGHT_FIELDS = ["name", "description", "brand"]


class TermsFilter(BaseModel):
    """필드 값이 values 중 하나와 일치 (패밀리 내부 OR).

    컬렉션 필드(tags)는 원소 하나라도 일치하면 통과합니다.
    """

    kind: Literal["terms"] = "terms"
    dimension: str = Field(..., description="필터 패밀리 이름 (패싯 제외 계산에 사용)")
    field: str
    values: list[Any]
    collection: bool = False


class RangeFilter(BaseModel):
    """숫자 범위 필터. 지정된 경계만 적용됩니다."""

    kind: Literal["range"] = "range"
    dimension: str
    field: str
    gte: float | None = None
    lte: float | None = None
    gt: float | None = None


FilterClause = TermsFilter | RangeFilter


class SortKey(BaseModel):
    """정렬 키. field가 ``_score`` 이면 엔진 점수."""

    field: str
    descending: bool = False


class CompiledQuery(BaseModel):
    """엔진에 전달되는 검색 쿼리.

    filters는 패밀리 간 AND로 결합됩니다.
    """

    text: str | None = Field(default=None, description="정제된 자유 텍스트 (None이면 전체)")
    search_fields: list[str] = Field(default_factory=list)
    filters: list[FilterClause] = Field(default_factory=list)
    sort: list[SortKey] = Field(default_factory=list)
    highlight_fields: list[str] = Field(default_factory=list)
    match_none: bool = Field(default=False, description="결과가 반드시 비어야 하는 쿼리")


class FacetRequest(BaseModel):
    """패싯 요청.

    filters는 현재 필터에서 이 패싯 자신의 차원을 제외한 것입니다.
    """

    name: str
    field: str
    filters: list[FilterClause] = Field(default_factory=list)
    limit: int = 10


class FacetCount(BaseModel):
    value: Any
    count: int


class EngineHit(BaseModel):
    """엔진 검색 결과 한 건.

    highlights는 엔진이 직접 만든 스니펫, match_positions는
    필드별 (start, end) 문자 위치입니다. 둘 중 하나만 채워질 수 있습니다.
    """

    document: dict[str, Any]
    score: float | None = None
    highlights: dict[str, list[str]] | None = None
    match_positions: dict[str, list[tuple[int, int]]] | None = None


class EngineResult(BaseModel):
    """엔진 검색 결과."""

    hits: list[EngineHit] = Field(default_factory=list)
    total: int = 0
    facets: dict[str, list[FacetCount]] = Field(default_factory=dict)
    generation: str | None = Field(default=None, description="결과를 만든 인덱스 세대")


class WriteOutcome(str, Enum):
    APPLIED = "applied"
    STALE = "stale"
    FAILED = "failed"


class WriteResult(BaseModel):
    """문서 단위 쓰기 결과."""

    id: str
    outcome: WriteOutcome
    error: str | None = None
