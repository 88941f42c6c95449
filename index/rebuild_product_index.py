"""
상품 검색 인덱스 재구축 스크립트

카탈로그 DB의 활성 상품 전체로 새 인덱스 세대를 만들고
라이브 별칭을 원자적으로 전환합니다.

실행 방법:
    python index/rebuild_product_index.py            # 전체 재색인 (새 세대 + 별칭 전환)
    python index/rebuild_product_index.py --sync     # 라이브 세대에 증분 upsert
    python index/rebuild_product_index.py --sync --prune

필요 환경 변수:
    - CATALOG_DATABASE_URL
    - AZURE_SEARCH_ENDPOINT
    - AZURE_SEARCH_API_KEY (없으면 DefaultAzureCredential)
    - AZURE_SEARCH_INDEX_ALIAS (기본값: products)
"""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from product_search import CatalogSearchOrchestrator
from product_search.utils.errors import ProductSearchError
from product_search.utils.logger import get_logger

# .env 파일 로드
load_dotenv()

logger = get_logger("product_search.scripts.rebuild")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="상품 검색 인덱스 재구축")
    parser.add_argument(
        "--sync",
        action="store_true",
        help="새 세대를 만들지 않고 라이브 세대에 upsert",
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        help="--sync와 함께 사용: 카탈로그에 없는 문서 삭제",
    )
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    orchestrator = CatalogSearchOrchestrator.create_default()
    live = await orchestrator.engine.ensure_ready()
    logger.info(f"현재 라이브 세대: {live}")

    try:
        if args.sync:
            report = await orchestrator.index_all_products(prune=args.prune)
            logger.info(f"증분 동기화 결과: {report.model_dump()}")
        else:
            status = await orchestrator.reindex_products()
            logger.info(
                f"재색인 완료: live={status.live_generation}, "
                f"processed={status.processed}, failed={status.failed}"
            )
    except ProductSearchError as e:
        logger.error(f"인덱스 재구축 실패: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
