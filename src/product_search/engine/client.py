"""Azure AI Search 클라이언트 관리

인덱스 관리 클라이언트와 세대별 SearchClient의 생명주기를 관리합니다.
세대(인덱스)마다 하나의 SearchClient를 재사용합니다.
"""

from __future__ import annotations

from typing import Any

from azure.core.credentials import AzureKeyCredential
from azure.search.documents import SearchClient
from azure.search.documents.indexes import SearchIndexClient

from ..utils.config import AzureSearchSettings, get_azure_credential, get_config
from ..utils.errors import ConfigError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SearchClientManager:
    """Azure AI Search 클라이언트 관리자

    - SearchIndexClient: 인덱스 생성/삭제, 별칭 관리
    - SearchClient: 인덱스(세대) 또는 별칭 단위의 문서 쓰기/검색

    Examples:
        >>> manager = SearchClientManager.from_settings()
        >>> client = manager.get_client("products")  # 별칭으로 검색
        >>> shadow = manager.get_client("products-v3")  # 세대에 직접 쓰기
    """

    def __init__(self, endpoint: str, credential: Any):
        """SearchClientManager를 초기화합니다.

        Args:
            endpoint: Azure AI Search 엔드포인트
            credential: AzureKeyCredential 또는 TokenCredential
        """
        if not endpoint:
            raise ConfigError(
                "Azure AI Search 설정이 필요합니다. 환경변수 AZURE_SEARCH_ENDPOINT를 설정하세요."
            )
        self.endpoint = endpoint
        self.credential = credential
        self._clients: dict[str, Any] = {}  # SearchClient 또는 Mock 가능
        self._index_client: Any = None

    @classmethod
    def from_settings(cls, settings: AzureSearchSettings | None = None) -> SearchClientManager:
        """설정으로 관리자를 생성합니다.

        API 키가 없으면 DefaultAzureCredential을 사용합니다.
        """
        settings = settings or get_config().azure_search
        if settings.api_key:
            credential: Any = AzureKeyCredential(settings.api_key)
            logger.info("Azure AI Search 인증: API 키")
        else:
            credential = get_azure_credential()
            logger.info("Azure AI Search 인증: DefaultAzureCredential")
        return cls(endpoint=settings.endpoint, credential=credential)

    @property
    def index_client(self) -> Any:
        """SearchIndexClient를 반환합니다 (지연 생성)."""
        if self._index_client is None:
            self._index_client = SearchIndexClient(
                endpoint=self.endpoint,
                credential=self.credential,
            )
        return self._index_client

    def get_client(self, index_name: str) -> Any:
        """인덱스(또는 별칭) 이름으로 SearchClient를 가져옵니다.

        Args:
            index_name: 인덱스 또는 별칭 이름

        Returns:
            SearchClient
        """
        client = self._clients.get(index_name)
        if client is None:
            client = SearchClient(
                endpoint=self.endpoint,
                index_name=index_name,
                credential=self.credential,
            )
            self._clients[index_name] = client
        return client

    def forget(self, index_name: str) -> None:
        """삭제된 세대의 클라이언트를 캐시에서 제거합니다.

        진행 중인 요청이 같은 클라이언트를 쓰고 있을 수 있으므로 닫지 않습니다.
        """
        self._clients.pop(index_name, None)
