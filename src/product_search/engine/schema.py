"""상품 검색 인덱스 스키마 정의

모든 세대는 이 스키마로 생성됩니다.
"""

from azure.search.documents.indexes.models import (
    SearchableField,
    SearchFieldDataType,
    SearchIndex,
    SearchSuggester,
    SimpleField,
)


def create_index_schema(name: str, suggester_name: str = "product-suggester") -> SearchIndex:
    """상품 검색 인덱스 스키마를 생성합니다.

    Args:
        name: 인덱스(세대) 이름
        suggester_name: 검색 제안용 Suggester 이름

    Returns:
        SearchIndex: 인덱스 스키마 정의
    """
    fields = [
        # === 식별 정보 ===
        SimpleField(
            name="id",
            type=SearchFieldDataType.String,
            key=True,
            filterable=True,
            sortable=True,
        ),
        SearchableField(
            name="sku",
            type=SearchFieldDataType.String,
            filterable=True,
        ),

        # === 상품 기본 정보 ===
        SearchableField(
            name="name",
            type=SearchFieldDataType.String,
            sortable=True,
            analyzer_name="ja.microsoft",
        ),
        SearchableField(
            name="description",
            type=SearchFieldDataType.String,
            analyzer_name="ja.microsoft",
        ),
        SearchableField(
            name="brand",
            type=SearchFieldDataType.String,
            filterable=True,
            facetable=True,
        ),
        SearchableField(
            name="model",
            type=SearchFieldDataType.String,
        ),
        SearchableField(
            name="searchable_text",
            type=SearchFieldDataType.String,
            analyzer_name="ja.microsoft",
        ),

        # === 카테고리 ===
        SimpleField(
            name="category_id",
            type=SearchFieldDataType.String,
            filterable=True,
            facetable=True,
        ),
        SearchableField(
            name="category_name",
            type=SearchFieldDataType.String,
        ),

        # === 가격 ===
        SimpleField(
            name="effective_price",
            type=SearchFieldDataType.Double,
            filterable=True,
            sortable=True,
        ),
        SimpleField(
            name="wholesale_price",
            type=SearchFieldDataType.Double,
            filterable=True,
            sortable=True,
        ),
        SimpleField(
            name="retail_price",
            type=SearchFieldDataType.Double,
            filterable=True,
            sortable=True,
        ),
        SimpleField(name="market_price", type=SearchFieldDataType.Double),
        SimpleField(name="currency", type=SearchFieldDataType.String),

        # === 상태 및 재고 ===
        SimpleField(
            name="condition",
            type=SearchFieldDataType.String,
            filterable=True,
            facetable=True,
        ),
        SimpleField(
            name="status",
            type=SearchFieldDataType.String,
            filterable=True,
        ),
        SimpleField(name="supplier", type=SearchFieldDataType.String),
        SimpleField(
            name="stock_quantity",
            type=SearchFieldDataType.Int32,
            filterable=True,
        ),

        # === 미디어 ===
        SimpleField(name="primary_image_url", type=SearchFieldDataType.String),
        SimpleField(
            name="images",
            type=SearchFieldDataType.Collection(SearchFieldDataType.String),
        ),
        SimpleField(name="specifications", type=SearchFieldDataType.String),

        # === 태그 (Collection) ===
        SearchableField(
            name="tags",
            collection=True,
            filterable=True,
            facetable=True,
        ),

        # === 참여 지표 ===
        SimpleField(
            name="view_count",
            type=SearchFieldDataType.Int32,
            sortable=True,
        ),
        SimpleField(
            name="average_rating",
            type=SearchFieldDataType.Double,
            filterable=True,
            sortable=True,
        ),
        SimpleField(
            name="review_count",
            type=SearchFieldDataType.Int32,
            sortable=True,
        ),

        # === 시각 및 버전 ===
        SimpleField(
            name="created_at",
            type=SearchFieldDataType.DateTimeOffset,
            filterable=True,
            sortable=True,
        ),
        SimpleField(
            name="updated_at",
            type=SearchFieldDataType.DateTimeOffset,
            sortable=True,
        ),
        SimpleField(
            name="source_version",
            type=SearchFieldDataType.Int64,
            filterable=True,
        ),
    ]

    return SearchIndex(
        name=name,
        fields=fields,
        suggesters=[SearchSuggester(name=suggester_name, source_fields=["name", "brand"])],
    )
