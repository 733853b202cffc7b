"""
tests/core/services/test_cache_admin.py - 캐시 관리 서비스 테스트
"""

import pytest

A = "111111111111"
B = "222222222222"


@pytest.fixture
def filled(app_context):
    cache = app_context.cache
    for key in [
        "accounts",
        f"regions:{A}",
        f"regions:{B}",
        f"users:{A}",
        f"users:{B}",
        f"user:{A}:alice",
        "all-users",
        f"vpcs-{A}",
        "all-vpcs",
        f"security-groups:{A}",
        f"security-group:{A}:us-east-1:sg-1",
        "security-groups",
        "public-ips",
        f"snapshots:{B}",
    ]:
        cache.set(key, [])
    return cache


class TestCacheAdminService:
    """CacheAdminService 테스트"""

    def test_clear(self, app_context, filled):
        app_context.cache_admin.clear()

        assert filled.keys() == []

    def test_invalidate_account_scope(self, app_context, filled):
        app_context.cache_admin.invalidate_account(A)

        remaining = set(filled.keys())
        assert remaining == {f"regions:{B}", f"users:{B}", f"snapshots:{B}"}

    def test_invalidate_user(self, app_context, filled):
        app_context.cache_admin.invalidate_user(A, "alice")

        remaining = set(filled.keys())
        assert not {f"user:{A}:alice", f"users:{A}", "all-users", "accounts"} & remaining
        assert f"users:{B}" in remaining

    def test_invalidate_security_groups_for_account(self, app_context, filled):
        app_context.cache_admin.invalidate_security_groups(A)

        remaining = set(filled.keys())
        assert not {f"security-groups:{A}", f"security-group:{A}:us-east-1:sg-1", "security-groups"} & remaining
        assert f"users:{A}" in remaining

    def test_invalidate_vpcs_family(self, app_context, filled):
        app_context.cache_admin.invalidate_vpcs()

        remaining = set(filled.keys())
        assert not {f"vpcs-{A}", "all-vpcs"} & remaining
        assert "public-ips" in remaining

    def test_invalidate_public_ips(self, app_context, filled):
        app_context.cache_admin.invalidate_public_ips()

        assert "public-ips" not in filled
