"""카테고리 검색

카테고리는 수가 적으므로 검색 인덱스 대신 카테고리 캐시에서 직접 검색합니다.
"""

from __future__ import annotations

from ..catalog.categories import CategoryLookup
from ..catalog.models import Category
from ..utils.logger import get_logger
from .assembler import mark_spans
from .models import SearchCategoryHit

logger = get_logger(__name__)

# 검색어 일치 순위
RANK_EXACT_NAME = 100
RANK_NAME_PREFIX = 90
RANK_DESCRIPTION = 50
RANK_NAME_CONTAINS = 10


def rank_category(category: Category, text: str) -> int | None:
    """카테고리의 검색어 일치 순위. 일치하지 않으면 None."""
    needle = text.lower()
    name = category.name.lower()
    description = (category.description or "").lower()

    if name == needle:
        return RANK_EXACT_NAME
    if name.startswith(needle):
        return RANK_NAME_PREFIX
    if needle in description:
        return RANK_DESCRIPTION
    if needle in name:
        return RANK_NAME_CONTAINS
    return None


def _highlight(value: str | None, text: str) -> list[str] | None:
    if not value:
        return None
    start = value.lower().find(text.lower())
    if start < 0:
        return None
    return [mark_spans(value, [(start, start + len(text))])]


class CategorySearcher:
    """활성 카테고리 검색기.

    Examples:
        >>> searcher = CategorySearcher(CategoryLookup(store))
        >>> hits, total = await searcher.search("カメラ", page=1, limit=20)
    """

    def __init__(self, categories: CategoryLookup):
        self.categories = categories

    async def search(
        self, text: str | None, page: int, limit: int
    ) -> tuple[list[SearchCategoryHit], int]:
        """카테고리를 검색합니다.

        검색어가 있으면 순위 내림차순, 없으면 sort_order 오름차순입니다.

        Returns:
            (현재 페이지 결과, 전체 건수)
        """
        categories = await self.categories.all()

        if text:
            ranked = [
                (rank, category)
                for category in categories
                if (rank := rank_category(category, text)) is not None
            ]
            ranked.sort(key=lambda item: (-item[0], item[1].sort_order, item[1].name))
        else:
            ranked = [(None, category) for category in categories]
            ranked.sort(key=lambda item: (item[1].sort_order, item[1].name))

        offset = (page - 1) * limit
        hits = []
        for rank, category in ranked[offset:offset + limit]:
            highlights = None
            if text:
                highlights = {
                    field: snippets
                    for field, snippets in (
                        ("name", _highlight(category.name, text)),
                        ("description", _highlight(category.description, text)),
                    )
                    if snippets
                } or None
            hits.append(
                SearchCategoryHit(
                    id=category.id,
                    name=category.name,
                    slug=category.slug,
                    description=category.description,
                    image_url=category.image_url,
                    search_score=float(rank) if rank is not None else None,
                    highlights=highlights,
                )
            )

        logger.debug(f"카테고리 검색: text={text!r}, total={len(ranked)}")
        return hits, len(ranked)
