"""재색인 중 그림자 세대 쓰기 추적."""

from __future__ import annotations


class ShadowWriteTracker:
    """재색인 중인 그림자 세대와 그 동안 개별 변경된 상품 ID를 추적합니다.

    - 페이지를 읽을 때 이미 개별 변경된 ID는 재색인이 건너뜁니다.
    - 페이지를 쓰는 도중 삭제/비활성화된 ID는 삭제 표시로 남아,
      재색인이 페이지를 쓴 뒤 그림자 세대에서 다시 삭제합니다.
    """

    def __init__(self) -> None:
        self._generation: str | None = None
        self._touched: set[str] = set()
        self._removed: set[str] = set()

    @property
    def generation(self) -> str | None:
        """진행 중인 그림자 세대 이름 (없으면 None)."""
        return self._generation

    def begin(self, generation: str) -> None:
        self._generation = generation
        self._touched = set()
        self._removed = set()

    def end(self) -> None:
        self._generation = None
        self._touched = set()
        self._removed = set()

    def mark(self, product_id: str, removed: bool = False) -> None:
        """개별 변경을 기록합니다. 이후 다시 인덱싱되면 삭제 표시는 지워집니다."""
        if self._generation is None:
            return
        self._touched.add(product_id)
        if removed:
            self._removed.add(product_id)
        else:
            self._removed.discard(product_id)

    def was_touched(self, product_id: str) -> bool:
        return product_id in self._touched

    def was_removed(self, product_id: str) -> bool:
        return product_id in self._removed
