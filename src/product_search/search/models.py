"""검색 요청/응답 모델.

필드는 snake_case이며 ``model_dump(by_alias=True)`` 로 camelCase 응답을 만듭니다.
요청은 두 형식 모두 받습니다.
"""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..catalog.models import ProductCondition, ProductStatus


class SearchSortBy(str, Enum):
    """정렬 기준."""

    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    NEWEST = "newest"
    POPULARITY = "popularity"
    RATING = "rating"


class SearchType(str, Enum):
    """검색 대상."""

    PRODUCTS = "products"
    CATEGORIES = "categories"
    ALL = "all"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PriceRange(_CamelModel):
    """가격 범위 (effective_price 기준, 경계 포함)."""

    min: float | None = Field(default=None, ge=0, description="최저 가격")
    max: float | None = Field(default=None, ge=0, description="최고 가격")


class SearchQuery(_CamelModel):
    """검색 요청.

    page/limit 범위는 여기서 검증하지 않습니다. QueryCompiler가 설정된
    정책(clamp | reject)에 따라 처리합니다.

    Examples:
        >>> SearchQuery(q="camera", brands="Canon", price_range={"min": 1000})
        >>> SearchQuery.model_validate({"q": "camera", "sortBy": "price_asc"})
    """

    q: str | None = Field(default=None, description="검색 키워드 (비어 있으면 전체)")
    type: SearchType = Field(default=SearchType.PRODUCTS, description="검색 대상")
    category_id: str | None = Field(default=None, description="카테고리 ID")
    brands: list[str] | None = Field(default=None, description="브랜드 (OR)")
    condition: ProductCondition | None = Field(default=None, description="상품 상태")
    status: ProductStatus | None = Field(default=None, description="상품 스테이터스")
    price_range: PriceRange | None = Field(default=None, description="가격 범위")
    tags: list[str] | None = Field(default=None, description="태그 (OR)")
    in_stock_only: bool = Field(default=False, description="재고 있는 상품만")
    min_rating: float | None = Field(default=None, ge=0, le=5, description="최저 평점")
    sort_by: SearchSortBy = Field(default=SearchSortBy.RELEVANCE, description="정렬 기준")
    page: int = Field(default=1, description="페이지 번호 (1부터)")
    limit: int | None = Field(default=None, description="페이지 크기 (None이면 기본값)")
    include_facets: bool = Field(default=False, description="패싯 포함 여부")

    @field_validator("brands", "tags", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        """단일 값도 리스트로 받습니다."""
        if isinstance(value, str):
            return [value]
        return value


class SearchProductHit(_CamelModel):
    """상품 검색 결과 한 건."""

    id: str
    name: str
    description: str | None = None
    sku: str | None = None
    brand: str | None = None
    model: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    effective_price: float
    wholesale_price: float
    retail_price: float | None = None
    market_price: float | None = None
    currency: str
    condition: str
    status: str
    supplier: str | None = None
    stock_quantity: int | None = None
    primary_image_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    average_rating: float = 0.0
    review_count: int = 0
    search_score: float | None = None
    highlights: dict[str, list[str]] | None = None


class SearchCategoryHit(_CamelModel):
    """카테고리 검색 결과 한 건."""

    id: str
    name: str
    slug: str
    description: str | None = None
    image_url: str | None = None
    search_score: float | None = None
    highlights: dict[str, list[str]] | None = None


class FacetValue(_CamelModel):
    value: Any
    count: int
    selected: bool = False
    label: str | None = Field(default=None, description="표시 이름 (카테고리 패싯)")


class Facet(_CamelModel):
    name: str
    label: str
    values: list[FacetValue] = Field(default_factory=list)


class Pagination(_CamelModel):
    """페이지 정보."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_counts(cls, page: int, limit: int, total: int) -> "Pagination":
        """page/limit/total로 페이지 정보를 계산합니다.

        Example:
            >>> Pagination.from_counts(page=2, limit=20, total=45).total_pages
            3
        """
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_next=page * limit < total,
            has_prev=page > 1,
        )


class SearchResult(_CamelModel):
    """검색 응답."""

    products: list[SearchProductHit] = Field(default_factory=list)
    categories: list[SearchCategoryHit] = Field(default_factory=list)
    total: int = 0
    pagination: Pagination
    facets: list[Facet] | None = None
    search_time: float = Field(default=0.0, description="검색 소요 시간 (밀리초)")
    query: str = ""
    suggestions: list[str] | None = None
