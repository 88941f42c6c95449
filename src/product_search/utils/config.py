"""애플리케이션 설정 관리.

환경 변수를 로드하고 Azure 자격 증명을 제공합니다.
"""

from typing import Literal

from azure.identity import DefaultAzureCredential
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .logger import get_logger

logger = get_logger(__name__)

# .env 파일 로드
load_dotenv()


class AzureSearchSettings(BaseSettings):
    """Azure AI Search 설정."""

    model_config = SettingsConfigDict(env_prefix="AZURE_SEARCH_")

    endpoint: str = Field(default="", description="Azure AI Search 엔드포인트")
    api_key: str | None = Field(default=None, description="Azure AI Search API 키")
    index_alias: str = Field(
        default="products", description="라이브 인덱스를 가리키는 별칭 이름"
    )
    suggester_name: str = Field(default="product-suggester", description="Suggester 이름")


class CatalogSettings(BaseSettings):
    """카탈로그 DB 설정."""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    database_url: str = Field(
        default="sqlite:///catalog.db", description="SQLAlchemy 접속 URL"
    )
    page_size: int = Field(default=500, ge=1, description="커서 페이지 크기")
    category_cache_ttl_seconds: float = Field(
        default=300.0, ge=0, description="카테고리 이름 캐시 유효 시간 (초)"
    )


class IndexingSettings(BaseSettings):
    """인덱스 동기화 설정."""

    model_config = SettingsConfigDict(env_prefix="INDEXING_")

    engine_backend: Literal["azure", "memory"] = Field(
        default="azure", description="검색 엔진 구현 (azure | memory)"
    )
    worker_count: int = Field(default=4, ge=1, description="인덱싱 워커 수")
    queue_capacity: int = Field(default=1000, ge=1, description="작업 큐 최대 크기")
    max_attempts: int = Field(default=5, ge=1, description="최대 재시도 횟수")
    backoff_base_seconds: float = Field(default=0.5, ge=0, description="백오프 기본 지연 (초)")
    backoff_max_seconds: float = Field(default=30.0, ge=0, description="백오프 최대 지연 (초)")
    engine_timeout_seconds: float = Field(default=10.0, gt=0, description="엔진 호출 타임아웃 (초)")
    failure_rate_threshold: float = Field(
        default=0.05, ge=0.0, le=1.0, description="대량 인덱싱 허용 실패율"
    )
    batch_size: int = Field(default=100, ge=1, le=1000, description="대량 업로드 배치 크기")


class SearchSettings(BaseSettings):
    """검색 쿼리 설정."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    default_limit: int = Field(default=20, ge=1, le=100, description="기본 페이지 크기")
    max_limit: int = Field(default=100, ge=1, le=100, description="최대 페이지 크기")
    page_policy: Literal["clamp", "reject"] = Field(
        default="clamp", description="범위를 벗어난 page/limit 처리 방식"
    )
    suggestion_limit: int = Field(default=5, ge=0, description="검색 제안 최대 개수")
    facet_value_limit: int = Field(default=10, ge=1, description="패싯별 최대 값 개수")
    timeout_seconds: float = Field(default=5.0, gt=0, description="검색 타임아웃 (초)")


class AppConfig(BaseSettings):
    """애플리케이션 전체 설정."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # 알 수 없는 환경변수 무시
    )

    # 하위 설정
    azure_search: AzureSearchSettings = Field(
        default_factory=lambda: AzureSearchSettings()
    )
    catalog: CatalogSettings = Field(default_factory=lambda: CatalogSettings())
    indexing: IndexingSettings = Field(default_factory=lambda: IndexingSettings())
    search: SearchSettings = Field(default_factory=lambda: SearchSettings())

    # 기타 설정
    debug: bool = Field(default=False, description="디버그 모드")
    log_level: str = Field(default="INFO", description="로그 레벨")


# 전역 설정 인스턴스
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """애플리케이션 설정을 반환합니다.

    싱글톤 패턴으로 설정 인스턴스를 관리합니다.

    Returns:
        AppConfig 인스턴스

    Raises:
        ConfigError: 설정값 검증에 실패한 경우

    Example:
        >>> config = get_config()
        >>> print(config.azure_search.index_alias)
    """
    global _config

    if _config is None:
        try:
            _config = AppConfig()
            logger.info("애플리케이션 설정 로드 완료")
        except Exception as e:
            raise ConfigError(f"설정 로드 실패: {e}") from e

    return _config


def reset_config() -> None:
    """캐시된 설정을 제거합니다. (테스트용)"""
    global _config
    _config = None


def get_azure_credential() -> DefaultAzureCredential:
    """Azure 인증 자격 증명을 반환합니다.

    API 키가 설정되지 않은 경우 사용됩니다:
    - 로컬: Azure CLI 인증
    - Azure: Managed Identity

    Returns:
        DefaultAzureCredential 인스턴스
    """
    return DefaultAzureCredential()
