"""
core/cache/keys.py - 리소스 패밀리별 캐시 키 빌더

리소스 패밀리마다 키 형식(집계 키, 계정별 목록 키, 개별 엔티티 키)과
쓰기 작업 시 삭제해야 할 키 집합(Invalidation)을 한곳에서 정의합니다.

키 형식은 외부와 공유되는 규약이므로 그대로 유지합니다.
일부는 콜론 구분("users:<id>"), 일부는 하이픈 구분("vpcs-<id>")입니다.

Example:
    from core.cache.keys import USERS

    cache.set(USERS.account_key("111111111111"), users)
    USERS.for_entity_write("111111111111", "alice").apply(cache)
    # → user:111111111111:alice, users:111111111111, all-users, accounts 삭제
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ttl import TTLCache


@dataclass(frozen=True)
class Invalidation:
    """삭제할 캐시 키/접두사 집합

    Attributes:
        keys: 정확히 삭제할 키
        prefixes: 접두사 삭제 대상
    """

    keys: frozenset[str] = field(default_factory=frozenset)
    prefixes: frozenset[str] = field(default_factory=frozenset)

    def __or__(self, other: Invalidation) -> Invalidation:
        return Invalidation(keys=self.keys | other.keys, prefixes=self.prefixes | other.prefixes)

    def apply(self, cache: TTLCache) -> None:
        """캐시에 적용"""
        for key in sorted(self.keys):
            cache.delete(key)
        for prefix in sorted(self.prefixes):
            cache.delete_pattern(prefix)


@dataclass(frozen=True)
class KeyFamily:
    """리소스 패밀리 캐시 키 정의

    Attributes:
        name: 패밀리 이름
        aggregate: 전체 계정 집계 키 (예: "all-users")
        account_format: 계정별 목록 키 형식 (예: "users:{account_id}")
        entity_format: 개별 엔티티 키 형식 (예: "user:{account_id}:{entity}")
        cascade_keys: 쓰기 시 함께 삭제할 다른 패밀리의 키
        related: 쓰기 시 같은 계정 범위로 함께 무효화할 패밀리 이름
    """

    name: str
    aggregate: str
    account_format: str | None = None
    entity_format: str | None = None
    cascade_keys: tuple[str, ...] = ()
    related: tuple[str, ...] = ()

    # ---------------------------------------------------------------------
    # 키 생성
    # ---------------------------------------------------------------------

    def account_key(self, account_id: str) -> str:
        if self.account_format is None:
            raise ValueError(f"{self.name} 패밀리는 계정별 키가 없습니다")
        return self.account_format.format(account_id=account_id)

    @property
    def account_prefix(self) -> str | None:
        """모든 계정별 목록 키의 공통 접두사 (예: "vpcs-")"""
        if self.account_format is None:
            return None
        return self.account_format.split("{account_id}")[0]

    def entity_key(self, account_id: str, *parts: str) -> str:
        if self.entity_format is None:
            raise ValueError(f"{self.name} 패밀리는 엔티티 키가 없습니다")
        return self.entity_format.format(account_id=account_id, entity=":".join(parts))

    def entity_prefix(self, account_id: str | None = None) -> str | None:
        """엔티티 키 접두사

        account_id가 없으면 패밀리 전체 ("user:"), 있으면 계정 범위 ("user:<id>:")
        """
        if self.entity_format is None:
            return None
        if account_id is None:
            return self.entity_format.split("{account_id}")[0]
        return self.entity_format.split("{entity}")[0].format(account_id=account_id)

    # ---------------------------------------------------------------------
    # 무효화 집합
    # ---------------------------------------------------------------------

    def for_entity_write(self, account_id: str, *parts: str) -> Invalidation:
        """개별 엔티티 쓰기: 엔티티 키 + 계정 목록 키 + 집계 키 + 연쇄 대상"""
        keys = {self.aggregate, *self.cascade_keys}
        if self.account_format is not None:
            keys.add(self.account_key(account_id))
        if self.entity_format is not None and parts:
            keys.add(self.entity_key(account_id, *parts))
        return Invalidation(keys=frozenset(keys)) | self._related(account_id)

    def for_account(self, account_id: str) -> Invalidation:
        """한 계정 범위 전체: 계정 목록 키 + 계정의 엔티티 키 + 집계 키 + 연쇄 대상"""
        keys = {self.aggregate, *self.cascade_keys}
        prefixes = set()
        if self.account_format is not None:
            keys.add(self.account_key(account_id))
        entity_prefix = self.entity_prefix(account_id)
        if entity_prefix is not None:
            prefixes.add(entity_prefix)
        return Invalidation(keys=frozenset(keys), prefixes=frozenset(prefixes)) | self._related(account_id)

    def for_family(self) -> Invalidation:
        """패밀리 전체: 집계 키 + 모든 계정 목록 키 + 모든 엔티티 키"""
        prefixes = {p for p in (self.account_prefix, self.entity_prefix()) if p is not None}
        return Invalidation(keys=frozenset({self.aggregate, *self.cascade_keys}), prefixes=frozenset(prefixes))

    def _related(self, account_id: str) -> Invalidation:
        result = Invalidation()
        for name in self.related:
            result = result | FAMILIES[name].for_account(account_id)
        return result


# =============================================================================
# 리소스 패밀리
# =============================================================================

ACCOUNTS = KeyFamily("accounts", aggregate="accounts")

USERS = KeyFamily(
    "users",
    aggregate="all-users",
    account_format="users:{account_id}",
    entity_format="user:{account_id}:{entity}",
    cascade_keys=("accounts",),
)

ROLES = KeyFamily(
    "roles",
    aggregate="all-roles",
    account_format="roles:{account_id}",
    entity_format="role:{account_id}:{entity}",
)

VPCS = KeyFamily("vpcs", aggregate="all-vpcs", account_format="vpcs-{account_id}")

PUBLIC_IPS = KeyFamily("public-ips", aggregate="public-ips")

NAT_GATEWAYS = KeyFamily(
    "nat-gateways",
    aggregate="all-nat-gateways",
    account_format="nat-gateways-{account_id}",
    cascade_keys=(PUBLIC_IPS.aggregate,),
    related=("vpcs",),
)

SECURITY_GROUPS = KeyFamily(
    "security-groups",
    aggregate="security-groups",
    account_format="security-groups:{account_id}",
    entity_format="security-group:{account_id}:{entity}",
)

SNAPSHOTS = KeyFamily("snapshots", aggregate="snapshots", account_format="snapshots:{account_id}")

LOAD_BALANCERS = KeyFamily(
    "load-balancers",
    aggregate="load-balancers",
    account_format="load-balancers:{account_id}",
    cascade_keys=(PUBLIC_IPS.aggregate,),
)

EC2_INSTANCES = KeyFamily(
    "ec2-instances",
    aggregate="ec2-instances",
    account_format="ec2-instances:{account_id}",
    cascade_keys=(PUBLIC_IPS.aggregate,),
)

EBS_VOLUMES = KeyFamily("ebs-volumes", aggregate="ebs-volumes", account_format="ebs-volumes:{account_id}")

S3_BUCKETS = KeyFamily("s3-buckets", aggregate="s3-buckets", account_format="s3-buckets:{account_id}")

FAMILIES: dict[str, KeyFamily] = {
    family.name: family
    for family in (
        ACCOUNTS,
        USERS,
        ROLES,
        VPCS,
        PUBLIC_IPS,
        NAT_GATEWAYS,
        SECURITY_GROUPS,
        SNAPSHOTS,
        LOAD_BALANCERS,
        EC2_INSTANCES,
        EBS_VOLUMES,
        S3_BUCKETS,
    )
}


def region_key(account_id: str) -> str:
    """계정별 활성 리전 목록 키 (마스터 계정은 "master")"""
    return f"regions:{account_id or 'master'}"


# =============================================================================
# IAM Identity Center (SSO)
# =============================================================================
# 관리 계정 한 곳의 Identity Center를 조회하므로 계정별 목록 키가 없습니다.

SSO_PREFIX = "sso-"
SSO_INSTANCE = "sso-instance"
SSO_USERS = "sso-users"
SSO_GROUPS = "sso-groups"
SSO_PERMISSION_SETS = "sso-permission-sets"
SSO_ALL_USER_ASSIGNMENTS = "sso-all-user-assignments"
SSO_ALL_GROUP_ASSIGNMENTS = "sso-all-group-assignments"
SSO_ALL_ACCOUNT_ASSIGNMENTS = "sso-all-account-assignments"


def sso_key(kind: str, identifier: str) -> str:
    """SSO 개별 키

    Example:
        sso_key("user", "u-1")                     # "sso-user:u-1"
        sso_key("account-assignments", "111111111111")
    """
    return f"{SSO_PREFIX}{kind}:{identifier}"


def sso_users_invalidation() -> Invalidation:
    """SSO 사용자 전체: 사용자 목록 + 사용자 집계 + 모든 개별 사용자"""
    return Invalidation(
        keys=frozenset({SSO_USERS, SSO_ALL_USER_ASSIGNMENTS}),
        prefixes=frozenset({sso_key("user", "")}),
    )


def sso_groups_invalidation() -> Invalidation:
    """SSO 그룹 전체: 그룹 목록 + 그룹 집계 + 모든 개별 그룹/멤버 목록"""
    return Invalidation(
        keys=frozenset({SSO_GROUPS, SSO_ALL_GROUP_ASSIGNMENTS}),
        prefixes=frozenset({sso_key("group", ""), sso_key("group-members", "")}),
    )


def sso_user_invalidation(user_id: str) -> Invalidation:
    return Invalidation(
        keys=frozenset(
            {
                sso_key("user", user_id),
                sso_key("user-assignments", user_id),
                SSO_USERS,
                SSO_ALL_USER_ASSIGNMENTS,
            }
        )
    )


def sso_group_invalidation(group_id: str) -> Invalidation:
    return Invalidation(
        keys=frozenset(
            {
                sso_key("group", group_id),
                sso_key("group-assignments", group_id),
                sso_key("group-members", group_id),
                SSO_GROUPS,
                SSO_ALL_GROUP_ASSIGNMENTS,
            }
        )
    )


def sso_account_assignments_invalidation(account_id: str) -> Invalidation:
    """계정 할당 변경: 계정 할당 + 모든 주체별 할당 + 세 집계 키"""
    return Invalidation(
        keys=frozenset(
            {
                sso_key("account-assignments", account_id),
                SSO_ALL_USER_ASSIGNMENTS,
                SSO_ALL_GROUP_ASSIGNMENTS,
                SSO_ALL_ACCOUNT_ASSIGNMENTS,
            }
        ),
        prefixes=frozenset({sso_key("user-assignments", ""), sso_key("group-assignments", "")}),
    )


# =============================================================================
# Azure
# =============================================================================
# 구독 ID가 계정 ID 자리를 차지합니다. AWS 계정 무효화(FAMILIES)에는 포함하지 않습니다.

AZURE_SUBSCRIPTIONS = "azure-subscriptions"
AZURE_ENTERPRISE_APPS = "azure-enterprise-apps"

AZURE_VMS = KeyFamily(
    "azure-vms",
    aggregate="azure-vms-all",
    account_format="azure-vms-{account_id}",
    entity_format="azure-vm:{account_id}:{entity}",
)

AZURE_STORAGE_ACCOUNTS = KeyFamily(
    "azure-storage-accounts",
    aggregate="azure-storage-accounts-all",
    account_format="azure-storage-accounts-{account_id}",
    entity_format="azure-storage-account:{account_id}:{entity}",
)


def azure_app_key(app_id: str) -> str:
    return f"azure-enterprise-app:{app_id}"


def azure_apps_invalidation(app_id: str | None = None) -> Invalidation:
    """엔터프라이즈 앱 목록 (app_id가 있으면 해당 앱 키도)"""
    keys = {AZURE_ENTERPRISE_APPS}
    if app_id is not None:
        keys.add(azure_app_key(app_id))
    return Invalidation(keys=frozenset(keys))


def azure_apps_clear() -> Invalidation:
    """엔터프라이즈 앱 목록 + 모든 개별 앱"""
    return Invalidation(keys=frozenset({AZURE_ENTERPRISE_APPS}), prefixes=frozenset({azure_app_key("")}))


def azure_rm_clear() -> Invalidation:
    """구독 목록 + 모든 VM/스토리지 계정 키"""
    return (
        Invalidation(keys=frozenset({AZURE_SUBSCRIPTIONS}))
        | AZURE_VMS.for_family()
        | AZURE_STORAGE_ACCOUNTS.for_family()
    )
