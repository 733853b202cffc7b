"""
core/services/cache_admin.py - 캐시 관리

수동 캐시 초기화/무효화 작업입니다. 각 작업은 KeyFamily가 정의한 무효화 집합을 적용합니다.
"""

from __future__ import annotations

import logging

from core.cache.keys import (
    ACCOUNTS,
    EBS_VOLUMES,
    EC2_INSTANCES,
    FAMILIES,
    LOAD_BALANCERS,
    NAT_GATEWAYS,
    PUBLIC_IPS,
    ROLES,
    S3_BUCKETS,
    SECURITY_GROUPS,
    SNAPSHOTS,
    USERS,
    VPCS,
    Invalidation,
    KeyFamily,
    region_key,
)

from .base import BaseService

logger = logging.getLogger(__name__)


class CacheAdminService(BaseService):
    """캐시 관리 서비스"""

    def clear(self) -> None:
        self.ctx.cache.clear()
        logger.info("캐시 전체 초기화")

    def invalidate_account(self, account_id: str) -> None:
        """한 계정의 모든 리소스 캐시 + 계정 목록 + 리전 목록 무효화"""
        invalidation = Invalidation(keys=frozenset({ACCOUNTS.aggregate, region_key(account_id)}))
        for family in FAMILIES.values():
            if family.account_format is not None:
                invalidation = invalidation | family.for_account(account_id)
        self._invalidate(invalidation)
        logger.info(f"계정 캐시 무효화 [{account_id}]")

    def invalidate_user(self, account_id: str, username: str) -> None:
        self._invalidate(USERS.for_entity_write(account_id, username))

    def invalidate_family(self, family: KeyFamily, account_id: str | None = None) -> None:
        """패밀리 전체 또는 한 계정 범위 무효화"""
        if account_id is None:
            self._invalidate(family.for_family())
        else:
            self._invalidate(family.for_account(account_id))
        logger.info(f"{family.name} 캐시 무효화 [{account_id or 'all'}]")

    def invalidate_public_ips(self) -> None:
        self.invalidate_family(PUBLIC_IPS)

    def invalidate_security_groups(self, account_id: str | None = None) -> None:
        self.invalidate_family(SECURITY_GROUPS, account_id)

    def invalidate_ec2_instances(self) -> None:
        self.invalidate_family(EC2_INSTANCES)

    def invalidate_ebs_volumes(self) -> None:
        self.invalidate_family(EBS_VOLUMES)

    def invalidate_s3_buckets(self) -> None:
        self.invalidate_family(S3_BUCKETS)

    def invalidate_roles(self, account_id: str | None = None) -> None:
        self.invalidate_family(ROLES, account_id)

    def invalidate_load_balancers(self, account_id: str | None = None) -> None:
        self.invalidate_family(LOAD_BALANCERS, account_id)

    def invalidate_vpcs(self) -> None:
        self.invalidate_family(VPCS)

    def invalidate_nat_gateways(self) -> None:
        self.invalidate_family(NAT_GATEWAYS)

    def invalidate_snapshots(self) -> None:
        self.invalidate_family(SNAPSHOTS)
