"""
core/region/resolver.py - 계정별 활성 리전 조회

EC2.describe_regions()로 세션(계정)에서 활성화된 리전 목록을 조회합니다.
결과는 공유 TTLCache에 계정별로 캐시됩니다 (TTL 0이면 매번 조회).

Usage:
    resolver = RegionResolver(cache, ttl_seconds=3600)
    regions = resolver.list_regions(session, account_id="111111111111")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.cache.keys import region_key
from core.exceptions import translate_client_error
from core.parallel.client import get_client

if TYPE_CHECKING:
    import boto3

    from core.cache.ttl import TTLCache

logger = logging.getLogger(__name__)

# 리전 목록은 자주 변경되지 않음
DEFAULT_CACHE_TTL = 3600


class RegionResolver:
    """계정별 활성 리전 조회기

    Attributes:
        cache: 공유 TTL 캐시
        ttl_seconds: 리전 목록 캐시 TTL (0 이하이면 캐시하지 않음)
    """

    def __init__(self, cache: TTLCache, ttl_seconds: float = DEFAULT_CACHE_TTL):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def list_regions(self, session: boto3.Session, account_id: str = "") -> list[str]:
        """세션에서 활성화된 리전 코드 목록

        Args:
            session: 대상 계정 세션
            account_id: 캐시 키용 계정 ID (빈 문자열이면 마스터)

        Returns:
            정렬된 리전 코드 리스트

        Raises:
            APICallError: describe_regions 실패
        """
        key = region_key(account_id)
        if self.ttl_seconds > 0:
            cached = self.cache.get(key, list, str)
            if cached is not None:
                return cached

        ec2 = get_client(session, "ec2")
        with translate_client_error("ec2", "describe_regions"):
            response = ec2.describe_regions()

        regions = sorted(r["RegionName"] for r in response.get("Regions", []) if r.get("RegionName"))
        logger.debug(f"활성 리전 조회 [{account_id or 'master'}]: {len(regions)}개")

        if self.ttl_seconds > 0:
            self.cache.set(key, regions, self.ttl_seconds)
        return regions
