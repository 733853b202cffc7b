"""
tests/core/cache/test_cache_keys.py - core/cache/keys.py 테스트
"""

import pytest

from core.cache.keys import (
    ACCOUNTS,
    AZURE_VMS,
    EC2_INSTANCES,
    FAMILIES,
    NAT_GATEWAYS,
    PUBLIC_IPS,
    SECURITY_GROUPS,
    USERS,
    VPCS,
    Invalidation,
    azure_rm_clear,
    region_key,
    sso_group_invalidation,
    sso_key,
    sso_users_invalidation,
)
from core.cache.ttl import TTLCache

A = "111111111111"
B = "222222222222"


def _seed(cache, *keys):
    for key in keys:
        cache.set(key, [])


class TestKeyFormats:
    """키 형식 테스트"""

    def test_user_keys(self):
        assert USERS.aggregate == "all-users"
        assert USERS.account_key(A) == f"users:{A}"
        assert USERS.entity_key(A, "alice") == f"user:{A}:alice"

    def test_hyphen_families(self):
        assert VPCS.account_key(A) == f"vpcs-{A}"
        assert NAT_GATEWAYS.account_key(A) == f"nat-gateways-{A}"

    def test_multi_part_entity(self):
        assert SECURITY_GROUPS.entity_key(A, "us-east-1", "sg-1") == f"security-group:{A}:us-east-1:sg-1"

    def test_missing_account_format(self):
        with pytest.raises(ValueError):
            PUBLIC_IPS.account_key(A)

    def test_region_key(self):
        assert region_key(A) == f"regions:{A}"
        assert region_key("") == "regions:master"

    def test_families_registry(self):
        assert FAMILIES["users"] is USERS
        assert FAMILIES["accounts"] is ACCOUNTS


class TestInvalidation:
    """무효화 집합 테스트"""

    def test_user_write_cascade(self):
        """사용자 쓰기 → 사용자 키, 계정 목록, 집계, accounts 삭제 (다른 계정은 유지)"""
        cache = TTLCache()
        _seed(cache, f"user:{A}:alice", f"user:{A}:bob", f"users:{A}", f"users:{B}", "all-users", "accounts")

        USERS.for_entity_write(A, "alice").apply(cache)

        assert sorted(cache.keys()) == [f"user:{A}:bob", f"users:{B}"]

    def test_account_scope(self):
        cache = TTLCache()
        _seed(cache, f"user:{A}:alice", f"user:{B}:carol", f"users:{A}", "all-users")

        USERS.for_account(A).apply(cache)

        assert cache.keys() == [f"user:{B}:carol"]

    def test_family_scope(self):
        cache = TTLCache()
        _seed(cache, f"vpcs-{A}", f"vpcs-{B}", "all-vpcs", f"users:{A}")

        VPCS.for_family().apply(cache)

        assert cache.keys() == [f"users:{A}"]

    def test_cascade_to_public_ips(self):
        inv = EC2_INSTANCES.for_entity_write(A)

        assert "public-ips" in inv.keys
        assert f"ec2-instances:{A}" in inv.keys

    def test_related_family(self):
        """NAT 쓰기는 같은 계정의 VPC 목록도 무효화"""
        inv = NAT_GATEWAYS.for_entity_write(A)

        assert f"vpcs-{A}" in inv.keys
        assert "all-vpcs" in inv.keys
        assert f"vpcs-{B}" not in inv.keys

    def test_union(self):
        merged = Invalidation(keys=frozenset({"a"})) | Invalidation(prefixes=frozenset({"b-"}))

        assert merged.keys == frozenset({"a"})
        assert merged.prefixes == frozenset({"b-"})


class TestSSOKeys:
    """SSO 키 테스트"""

    def test_key_format(self):
        assert sso_key("user", "u-1") == "sso-user:u-1"
        assert sso_key("account-assignments", A) == f"sso-account-assignments:{A}"

    def test_users_keep_assignment_keys(self):
        """사용자 무효화 접두사("sso-user:")는 주체 할당 키와 겹치지 않음"""
        cache = TTLCache()
        _seed(cache, "sso-users", "sso-user:u-1", "sso-user-assignments:u-1", "sso-all-user-assignments")

        sso_users_invalidation().apply(cache)

        assert cache.keys() == ["sso-user-assignments:u-1"]

    def test_group_drops_members(self):
        cache = TTLCache()
        _seed(cache, "sso-group:g-1", "sso-group-members:g-1", "sso-group-members:g-2", "sso-groups")

        sso_group_invalidation("g-1").apply(cache)

        assert cache.keys() == ["sso-group-members:g-2"]

    def test_not_in_aws_families(self):
        assert not any(name.startswith("sso") for name in FAMILIES)


class TestAzureKeys:
    """Azure 키 테스트"""

    def test_vm_keys(self):
        assert AZURE_VMS.account_key("sub-1") == "azure-vms-sub-1"
        assert AZURE_VMS.entity_key("sub-1", "rg", "vm-1") == "azure-vm:sub-1:rg:vm-1"

    def test_rm_clear_keeps_enterprise_apps(self):
        cache = TTLCache()
        _seed(
            cache,
            "azure-subscriptions",
            "azure-vms-all",
            "azure-vms-sub-1",
            "azure-vm:sub-1:rg:vm-1",
            "azure-storage-accounts-all",
            "azure-storage-account:sub-1:rg:logs",
            "azure-enterprise-apps",
            "all-vpcs",
        )

        azure_rm_clear().apply(cache)

        assert sorted(cache.keys()) == ["all-vpcs", "azure-enterprise-apps"]
