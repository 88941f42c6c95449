"""엔진 중립 쿼리를 Azure AI Search OData 표현식으로 변환합니다."""

from typing import Any

from .query import SCORE_FIELD, FilterClause, RangeFilter, SortKey, TermsFilter


def quote(value: Any) -> str:
    """OData 리터럴로 변환합니다. 문자열의 작은따옴표는 두 번 씁니다."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def render_clause(clause: FilterClause) -> str:
    if isinstance(clause, TermsFilter):
        if clause.collection:
            parts = [f"{clause.field}/any(t: t eq {quote(v)})" for v in clause.values]
        else:
            parts = [f"{clause.field} eq {quote(v)}" for v in clause.values]
        if len(parts) == 1:
            return parts[0]
        return "(" + " or ".join(parts) + ")"

    if isinstance(clause, RangeFilter):
        parts = []
        if clause.gte is not None:
            parts.append(f"{clause.field} ge {quote(clause.gte)}")
        if clause.gt is not None:
            parts.append(f"{clause.field} gt {quote(clause.gt)}")
        if clause.lte is not None:
            parts.append(f"{clause.field} le {quote(clause.lte)}")
        return " and ".join(parts)

    raise TypeError(f"unsupported filter clause: {clause!r}")


def render_filter(filters: list[FilterClause], match_none: bool = False) -> str | None:
    """필터 목록을 AND로 결합한 OData 필터 문자열을 반환합니다.

    Examples:
        >>> render_filter([TermsFilter(dimension="brand", field="brand", values=["A", "B"])])
        "(brand eq 'A' or brand eq 'B')"
    """
    if match_none:
        return "false"
    rendered = [part for part in (render_clause(c) for c in filters) if part]
    if not rendered:
        return None
    return " and ".join(rendered)


def render_order_by(sort: list[SortKey]) -> list[str] | None:
    """정렬 키 목록을 ``$orderby`` 항목 리스트로 변환합니다."""
    if not sort:
        return None
    order_by = []
    for key in sort:
        field = "search.score()" if key.field == SCORE_FIELD else key.field
        order_by.append(f"{field} {'desc' if key.descending else 'asc'}")
    return order_by


def render_search_in(field: str, values: list[str], delimiter: str = "|") -> str:
    """``search.in`` 필터를 만듭니다. 값 목록이 긴 ID 조회에 사용합니다.

    Examples:
        >>> render_search_in("id", ["p1", "p2"])
        "search.in(id, 'p1|p2', '|')"
    """
    return f"search.in({field}, {quote(delimiter.join(values))}, {quote(delimiter)})"
