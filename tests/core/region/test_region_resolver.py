"""
tests/core/region/test_region_resolver.py - RegionResolver 테스트
"""

from unittest.mock import MagicMock

import pytest

from core.cache.ttl import TTLCache
from core.exceptions import AccessDeniedError
from core.region.data import REGION_NAMES, SNAPSHOT_REGIONS
from core.region.resolver import RegionResolver


@pytest.fixture
def session():
    ec2 = MagicMock()
    ec2.describe_regions.return_value = {
        "Regions": [{"RegionName": "us-west-2"}, {"RegionName": "eu-west-1"}, {"RegionName": "us-east-1"}]
    }
    session = MagicMock()
    session.client.return_value = ec2
    return session


class TestRegionResolver:
    """list_regions() 테스트"""

    def test_sorted_regions(self, session):
        resolver = RegionResolver(TTLCache())

        assert resolver.list_regions(session, "111") == ["eu-west-1", "us-east-1", "us-west-2"]

    def test_cached_per_account(self, session):
        """같은 계정은 TTL 동안 다시 조회하지 않음"""
        cache = TTLCache()
        resolver = RegionResolver(cache, ttl_seconds=3600)

        resolver.list_regions(session, "111")
        resolver.list_regions(session, "111")
        resolver.list_regions(session, "222")

        assert session.client.return_value.describe_regions.call_count == 2
        assert "regions:111" in cache

    def test_zero_ttl_disables_cache(self, session):
        cache = TTLCache()
        resolver = RegionResolver(cache, ttl_seconds=0)

        resolver.list_regions(session, "111")
        resolver.list_regions(session, "111")

        assert session.client.return_value.describe_regions.call_count == 2
        assert cache.keys() == []

    def test_error_translated(self, session, client_error):
        session.client.return_value.describe_regions.side_effect = client_error("UnauthorizedOperation")

        with pytest.raises(AccessDeniedError):
            RegionResolver(TTLCache()).list_regions(session, "111")


class TestRegionData:
    """정적 리전 데이터 테스트"""

    def test_snapshot_regions_subset(self):
        assert len(SNAPSHOT_REGIONS) == 16
        assert set(SNAPSHOT_REGIONS) <= set(REGION_NAMES)

    def test_names(self):
        assert "us-east-1" in REGION_NAMES
