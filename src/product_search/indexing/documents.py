"""검색 문서(SearchDocument) 모델.

CatalogProduct를 검색 인덱스에 저장할 평탄화된 형태로 변환합니다.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..catalog.models import CatalogProduct, as_utc

# 인덱스의 DateTimeOffset 필드 형식 (문자열 정렬 = 시간 정렬)
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class SearchDocument(BaseModel):
    """검색 인덱스 문서.

    카탈로그 상품의 비정규화 투영에 category_name, searchable_text,
    effective_price, source_version을 더한 것입니다.
    """

    id: str
    name: str
    description: str | None = None
    sku: str | None = None
    brand: str | None = None
    model: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    searchable_text: str = ""

    effective_price: float
    wholesale_price: float
    retail_price: float | None = None
    market_price: float | None = None
    currency: str = "JPY"

    condition: str
    status: str
    supplier: str | None = None
    stock_quantity: int = 0

    primary_image_url: str | None = None
    images: list[str] = Field(default_factory=list)
    specifications: str = Field(default="{}", description="JSON 문자열로 직렬화된 사양 정보")
    tags: list[str] = Field(default_factory=list)

    view_count: int = 0
    average_rating: float = 0.0
    review_count: int = 0

    created_at: str
    updated_at: str
    source_version: int

    def to_index_dict(self) -> dict[str, Any]:
        """인덱스 업로드용 딕셔너리로 변환합니다."""
        return self.model_dump()


def format_datetime(value: datetime) -> str:
    """UTC 고정 형식 문자열로 변환합니다."""
    return as_utc(value).strftime(DATETIME_FORMAT)


def build_searchable_text(product: CatalogProduct, category_name: str | None) -> str:
    """자유 텍스트 검색 대상 문자열을 만듭니다."""
    parts = [
        product.name,
        product.description,
        product.brand,
        product.model,
        product.sku,
        *product.tags,
        category_name,
    ]
    return " ".join(part for part in parts if part)


def build_search_document(
    product: CatalogProduct, category_name: str | None = None
) -> SearchDocument:
    """카탈로그 상품으로 검색 문서를 생성합니다.

    Args:
        product: 카탈로그 상품 (활성 상태여야 함)
        category_name: 인덱싱 시점의 카테고리 이름

    Returns:
        SearchDocument

    Example:
        >>> doc = build_search_document(product, category_name="カメラ")
        >>> doc.effective_price
        2000.0
    """
    return SearchDocument(
        id=product.id,
        name=product.name,
        description=product.description,
        sku=product.sku,
        brand=product.brand,
        model=product.model,
        category_id=product.category_id,
        category_name=category_name,
        searchable_text=build_searchable_text(product, category_name),
        effective_price=product.effective_price,
        wholesale_price=product.wholesale_price,
        retail_price=product.retail_price,
        market_price=product.market_price,
        currency=product.currency,
        condition=product.condition,
        status=product.status,
        supplier=product.supplier,
        stock_quantity=product.stock_quantity,
        primary_image_url=product.primary_image_url,
        images=list(product.images),
        specifications=json.dumps(product.specifications, ensure_ascii=False, sort_keys=True),
        tags=list(product.tags),
        view_count=product.view_count,
        average_rating=product.average_rating,
        review_count=product.review_count,
        created_at=format_datetime(product.created_at),
        updated_at=format_datetime(product.updated_at),
        source_version=product.source_version,
    )
