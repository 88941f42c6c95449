"""카탈로그 모듈.

원본 관계형 카탈로그의 읽기 전용 어댑터와 데이터 모델을 제공합니다.
"""

from .categories import CategoryLookup
from .models import CatalogPage, CatalogProduct, Category, ProductCondition, ProductStatus
from .store import CatalogStore, SqlCatalogStore

__all__ = [
    "CatalogProduct",
    "CatalogPage",
    "Category",
    "ProductCondition",
    "ProductStatus",
    "CatalogStore",
    "SqlCatalogStore",
    "CategoryLookup",
]
