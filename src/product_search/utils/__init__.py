"""공통 유틸리티 모듈.

로깅, 설정, 에러 처리 등 공통 기능을 제공합니다.
"""

from .config import get_config
from .errors import (
    ConfigError,
    EngineUnavailableError,
    ProductSearchError,
    QueryCompilationError,
    SearchUnavailableError,
)
from .logger import get_logger

__all__ = [
    "get_logger",
    "get_config",
    "ProductSearchError",
    "ConfigError",
    "EngineUnavailableError",
    "QueryCompilationError",
    "SearchUnavailableError",
]
