"""카탈로그 데이터 모델.

관계형 카탈로그가 소유하는 상품/카테고리 레코드입니다.
이 서브시스템에서는 읽기 전용으로만 사용합니다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProductStatus(str, Enum):
    """상품 상태."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"


class ProductCondition(str, Enum):
    """상품 컨디션."""

    NEW = "new"
    LIKE_NEW = "like_new"
    VERY_GOOD = "very_good"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"


class CatalogProduct(BaseModel):
    """카탈로그 상품 레코드.

    ``status == active`` 인 상품만 인덱싱 대상입니다.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="상품 ID")
    name: str = Field(..., description="상품명")
    description: str | None = Field(default=None, description="상품 설명")
    sku: str | None = Field(default=None, description="SKU")
    brand: str | None = Field(default=None, description="브랜드")
    model: str | None = Field(default=None, description="모델명")
    category_id: str | None = Field(default=None, description="카테고리 ID")

    wholesale_price: float = Field(default=0.0, ge=0, description="도매가")
    retail_price: float | None = Field(default=None, ge=0, description="소매가")
    market_price: float | None = Field(default=None, ge=0, description="시장가")
    currency: str = Field(default="JPY", description="통화")

    condition: ProductCondition = Field(default=ProductCondition.NEW, description="컨디션")
    status: ProductStatus = Field(default=ProductStatus.ACTIVE, description="상태")
    supplier: str | None = Field(default=None, description="공급업체")
    stock_quantity: int = Field(default=0, description="재고 수량")

    images: list[str] = Field(default_factory=list, description="이미지 URL 목록")
    primary_image_url: str | None = Field(default=None, description="대표 이미지 URL")
    specifications: dict[str, Any] = Field(default_factory=dict, description="사양 정보")
    tags: list[str] = Field(default_factory=list, description="태그")

    view_count: int = Field(default=0, description="조회수")
    average_rating: float = Field(default=0.0, ge=0, le=5, description="평균 평점")
    review_count: int = Field(default=0, description="리뷰 수")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="생성 시각"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="수정 시각"
    )
    version: int | None = Field(
        default=None, description="명시적 버전 카운터 (없으면 updated_at 사용)"
    )

    @property
    def is_active(self) -> bool:
        """인덱싱 대상 여부."""
        return self.status == ProductStatus.ACTIVE.value

    @property
    def source_version(self) -> int:
        """순서가 뒤바뀐 쓰기를 거부하기 위한 단조 증가 버전.

        명시적 버전 카운터가 있으면 그 값을, 없으면 updated_at의
        epoch 밀리초를 사용합니다.
        """
        if self.version is not None:
            return self.version
        return int(as_utc(self.updated_at).timestamp() * 1000)

    @property
    def effective_price(self) -> float:
        """정렬과 필터가 공통으로 사용하는 표시 가격.

        소매가 > 시장가 > 도매가 순으로 선택합니다.
        """
        if self.retail_price is not None:
            return self.retail_price
        if self.market_price is not None:
            return self.market_price
        return self.wholesale_price


class Category(BaseModel):
    """카탈로그 카테고리 레코드."""

    id: str = Field(..., description="카테고리 ID")
    name: str = Field(..., description="카테고리 이름")
    slug: str = Field(..., description="슬러그")
    description: str | None = Field(default=None, description="설명")
    image_url: str | None = Field(default=None, description="이미지 URL")
    sort_order: int = Field(default=0, description="정렬 순서")
    is_active: bool = Field(default=True, description="활성 여부")
    parent_id: str | None = Field(default=None, description="상위 카테고리 ID")


class CatalogPage(BaseModel):
    """커서 기반 상품 페이지."""

    items: list[CatalogProduct] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, description="다음 페이지 커서 (없으면 마지막)")


def as_utc(value: datetime) -> datetime:
    """naive datetime은 UTC로 간주하여 aware datetime으로 변환합니다."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
