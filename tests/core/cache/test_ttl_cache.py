"""
tests/core/cache/test_ttl_cache.py - core/cache/ttl.py 테스트
"""

import threading
from unittest.mock import patch

import pytest

from core.cache.ttl import TTLCache


@pytest.fixture
def clock():
    """time.monotonic 제어용 가짜 시계"""
    now = [1000.0]
    with patch("core.cache.ttl.time.monotonic", side_effect=lambda: now[0]):
        yield now


class TestTTLCache:
    """TTLCache 기본 동작 테스트"""

    def test_set_and_get(self):
        cache = TTLCache()
        cache.set("k", [1, 2])

        assert cache.get("k") == [1, 2]

    def test_missing_key(self):
        assert TTLCache().get("missing") is None

    def test_overwrite_last_write_wins(self):
        cache = TTLCache()
        cache.set("k", "a")
        cache.set("k", "b")

        assert cache.get("k") == "b"

    def test_none_value_rejected(self):
        with pytest.raises(ValueError):
            TTLCache().set("k", None)

    def test_delete_missing_is_noop(self):
        cache = TTLCache()
        cache.delete("missing")

        assert len(cache) == 0


class TestExpiry:
    """TTL 만료 테스트"""

    def test_hit_before_expiry(self, clock):
        cache = TTLCache()
        cache.set("k", "v", ttl=10)
        clock[0] += 10

        assert cache.get("k") == "v"

    def test_miss_after_expiry_and_removed(self, clock):
        """만료 후 조회하면 미스이며 항목이 제거됨"""
        cache = TTLCache()
        cache.set("k", "v", ttl=10)
        clock[0] += 10.5

        assert cache.get("k") is None
        assert "k" not in cache._entries

    def test_default_ttl(self, clock):
        cache = TTLCache(default_ttl=5)
        cache.set("k", "v")
        clock[0] += 6

        assert cache.get("k") is None

    def test_keys_excludes_expired(self, clock):
        cache = TTLCache()
        cache.set("short", 1, ttl=1)
        cache.set("long", 2, ttl=100)
        clock[0] += 2

        assert cache.keys() == ["long"]


class TestTypeChecks:
    """타입 불일치 → 캐시 미스 테스트"""

    def test_expected_type_mismatch(self):
        cache = TTLCache()
        cache.set("k", "not-a-list")

        assert cache.get("k", list) is None
        assert cache.get("k", str) == "not-a-list"

    def test_item_type_mismatch(self):
        cache = TTLCache()
        cache.set("k", [1, "two"])

        assert cache.get("k", list, int) is None

    def test_empty_list_matches_any_item_type(self):
        cache = TTLCache()
        cache.set("k", [])

        assert cache.get("k", list, int) == []


class TestDeletePattern:
    """접두사 삭제 테스트"""

    def test_prefix_scope(self):
        """접두사는 문자 그대로 비교 ("vpcs-"는 "all-vpcs"와 무관)"""
        cache = TTLCache()
        for key in ("vpcs-111", "vpcs-222", "all-vpcs", "users:111"):
            cache.set(key, [])

        deleted = cache.delete_pattern("vpcs-")

        assert deleted == 2
        assert sorted(cache.keys()) == ["all-vpcs", "users:111"]

    def test_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()

        assert cache.keys() == []


class TestConcurrency:
    """동시 접근 테스트"""

    def test_concurrent_writes(self):
        cache = TTLCache()

        def writer(n):
            for i in range(200):
                cache.set(f"k{n}-{i}", i)
                cache.get(f"k{n}-{i}")
            cache.delete_pattern(f"k{n}-1")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # 각 스레드: 200개 중 "k{n}-1"로 시작하는 111개 삭제
        assert len(cache) == 8 * (200 - 111)
