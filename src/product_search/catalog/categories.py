"""카테고리 조회 캐시.

카테고리 이름은 인덱싱 시점뿐 아니라 검색 시점에도 조인합니다.
카테고리 이름이 바뀌어도 전체 재색인 없이 검색 결과에 반영됩니다.
"""

import time

from ..utils.logger import get_logger
from .models import Category
from .store import CatalogStore

logger = get_logger(__name__)


class CategoryLookup:
    """TTL 기반 카테고리 캐시.

    만료된 경우에만 카탈로그를 다시 조회합니다. 동시에 여러 요청이
    만료를 감지하면 각자 조회하고 마지막 결과로 교체합니다 (락 없음).
    """

    def __init__(self, store: CatalogStore, ttl_seconds: float = 300.0):
        """CategoryLookup을 초기화합니다.

        Args:
            store: 카탈로그 저장소
            ttl_seconds: 캐시 유효 시간 (초)
        """
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._categories: dict[str, Category] = {}
        self._loaded_at: float | None = None

    def _is_expired(self) -> bool:
        if self._loaded_at is None:
            return True
        return time.monotonic() - self._loaded_at > self.ttl_seconds

    async def refresh(self) -> None:
        """카탈로그에서 카테고리를 다시 읽어옵니다."""
        categories = await self.store.list_categories()
        self._categories = {category.id: category for category in categories}
        self._loaded_at = time.monotonic()
        logger.debug(f"카테고리 캐시 갱신: {len(categories)}개")

    def invalidate(self) -> None:
        """캐시를 무효화합니다. 다음 조회 시 다시 읽습니다."""
        self._loaded_at = None

    async def all(self) -> list[Category]:
        """활성 카테고리 전체를 반환합니다."""
        if self._is_expired():
            await self.refresh()
        return list(self._categories.values())

    async def get_names(self) -> dict[str, str]:
        """{category_id: name} 매핑을 반환합니다."""
        if self._is_expired():
            await self.refresh()
        return {cid: category.name for cid, category in self._categories.items()}

    async def get_name(self, category_id: str | None) -> str | None:
        """카테고리 이름을 반환합니다. 없으면 None."""
        if category_id is None:
            return None
        names = await self.get_names()
        return names.get(category_id)
