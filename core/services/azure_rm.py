"""
core/services/azure_rm.py - Azure Resource Manager 리소스

구독, 가상 머신, 스토리지 계정을 조회/관리합니다.
구독별 조회는 공유 Azure 클라이언트로 병렬 실행하며, 실패한 구독은 경고 후 건너뜁니다.

구독 목록을 얻을 수 없거나 비어 있으면 AZURE_SUBSCRIPTION_ID(설정된 경우)를 기본 구독으로 사용합니다.

캐시 키:
    - azure-subscriptions                          구독 목록
    - azure-vms-all / azure-vms-<sub>              VM 목록 (전체 / 구독별)
    - azure-vm:<sub>:<rg>:<name>                   VM 상세
    - azure-storage-accounts-all / -<sub>          스토리지 계정 목록
    - azure-storage-account:<sub>:<rg>:<name>      스토리지 계정 상세
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from core.azure.client import MANAGEMENT_SCOPE, MANAGEMENT_URL
from core.cache.keys import (
    AZURE_STORAGE_ACCOUNTS,
    AZURE_SUBSCRIPTIONS,
    AZURE_VMS,
    KeyFamily,
    azure_rm_clear,
)
from core.exceptions import APICallError

from .base import BaseService
from .types import AzureStorageAccount, AzureSubscription, AzureVM, resource_group_from_id

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_API_VERSION = "2020-01-01"
COMPUTE_API_VERSION = "2023-09-01"
STORAGE_API_VERSION = "2023-01-01"

POWER_STATE_PREFIX = "PowerState/"
ENDPOINT_KINDS = ("blob", "file", "queue", "table")


def power_state(instance_view: dict[str, Any] | None) -> str:
    """instanceView.statuses의 PowerState/<state> → <state> (없으면 빈 문자열)"""
    for status in (instance_view or {}).get("statuses") or []:
        code = status.get("code") or ""
        if code.startswith(POWER_STATE_PREFIX):
            return code[len(POWER_STATE_PREFIX) :]
    return ""


def _build_vm(raw: dict[str, Any], subscription_id: str) -> AzureVM:
    props = raw.get("properties") or {}
    os_disk = (props.get("storageProfile") or {}).get("osDisk") or {}
    return AzureVM(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        resource_group=resource_group_from_id(raw.get("id", "")),
        subscription_id=subscription_id,
        location=raw.get("location") or "",
        vm_size=(props.get("hardwareProfile") or {}).get("vmSize") or "",
        provisioning_state=props.get("provisioningState") or "",
        os_type=os_disk.get("osType") or "",
        status=power_state(props.get("instanceView")),
        created_time=props.get("timeCreated") or "",
    )


def _build_storage_account(raw: dict[str, Any], subscription_id: str) -> AzureStorageAccount:
    props = raw.get("properties") or {}
    endpoints = props.get("primaryEndpoints") or {}
    return AzureStorageAccount(
        id=raw.get("id", ""),
        name=raw.get("name", ""),
        resource_group=resource_group_from_id(raw.get("id", "")),
        subscription_id=subscription_id,
        location=raw.get("location") or "",
        kind=raw.get("kind") or "",
        sku=(raw.get("sku") or {}).get("name") or "",
        created_time=props.get("creationTime") or "",
        primary_endpoints={kind: endpoints[kind] for kind in ENDPOINT_KINDS if endpoints.get(kind)},
    )


def _vm_url(subscription_id: str, resource_group: str, name: str) -> str:
    return (
        f"{MANAGEMENT_URL}/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Compute/virtualMachines/{name}"
    )


def _storage_url(subscription_id: str, resource_group: str, name: str) -> str:
    return (
        f"{MANAGEMENT_URL}/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Storage/storageAccounts/{name}"
    )


class AzureRMService(BaseService):
    """Azure 구독/VM/스토리지 계정 서비스"""

    # =========================================================================
    # 구독
    # =========================================================================

    def list_subscriptions(self) -> list[AzureSubscription]:
        """접근 가능한 구독 목록

        Raises:
            ConfigError: Azure 자격증명 미설정
            APICallError: 구독 목록 조회 실패
        """
        cached = self._cached(AZURE_SUBSCRIPTIONS, AzureSubscription)
        if cached is not None:
            return cached

        raw_subs = self.ctx.azure.paginate(
            MANAGEMENT_SCOPE,
            f"{MANAGEMENT_URL}/subscriptions",
            {"api-version": SUBSCRIPTIONS_API_VERSION},
        )
        subscriptions = []
        for raw in raw_subs:
            if not raw.get("subscriptionId"):
                logger.warning(f"subscriptionId 없는 구독 건너뜀: {raw.get('id', '')}")
                continue
            subscriptions.append(
                AzureSubscription(
                    subscription_id=raw["subscriptionId"],
                    display_name=raw.get("displayName") or "",
                    state=raw.get("state") or "",
                    tenant_id=raw.get("tenantId") or "",
                    id=raw.get("id") or "",
                )
            )

        if not subscriptions:
            fallback = self._default_subscription()
            if fallback is not None:
                logger.info(f"조회된 구독 없음, 기본 구독 사용: {fallback.subscription_id}")
                subscriptions = [fallback]

        logger.info(f"Azure 구독 {len(subscriptions)}개 조회")
        return self._store(AZURE_SUBSCRIPTIONS, subscriptions)

    def _default_subscription(self) -> AzureSubscription | None:
        subscription_id = self.ctx.settings.AZURE_SUBSCRIPTION_ID
        if not subscription_id:
            return None
        return AzureSubscription(
            subscription_id=subscription_id,
            display_name="Default Subscription",
            state="Enabled",
        )

    def _target_subscriptions(self) -> list[tuple[str, str]]:
        """팬아웃 대상 (구독 ID, 이름) 목록

        Raises:
            APICallError: 구독 목록 조회 실패 + 기본 구독 미설정
        """
        try:
            subscriptions = self.list_subscriptions()
        except APICallError as e:
            fallback = self._default_subscription()
            if fallback is None:
                raise
            logger.warning(f"구독 목록 조회 실패, 기본 구독 사용 [{fallback.subscription_id}]: {e}")
            subscriptions = [fallback]
        return [(s.subscription_id, s.display_name or s.subscription_id) for s in subscriptions]

    # =========================================================================
    # 구독별 목록 (공통)
    # =========================================================================

    def _list_subscription_resources(
        self,
        family: KeyFamily,
        item_type: type,
        subscription_id: str | None,
        fetch: Callable[[str], list[Any]],
        operation: str,
    ) -> list[Any]:
        """구독 하나(계정 키) 또는 전체 구독(집계 키) 리소스 목록

        전체 조회 시 구독별 결과도 구독 키로 캐시합니다.
        """
        if subscription_id is not None:
            key = family.account_key(subscription_id)
            cached = self._cached(key, item_type)
            if cached is not None:
                return cached
            return self._store(key, fetch(subscription_id))

        cached = self._cached(family.aggregate, item_type)
        if cached is not None:
            return cached

        def collect(client, sub_id, sub_name, region):
            return self._list_subscription_resources(family, item_type, sub_id, fetch, operation)

        items = self._fan_out_shared(self._target_subscriptions(), self.ctx.azure, collect, operation, service="arm")
        return self._store(family.aggregate, items)

    # =========================================================================
    # 가상 머신
    # =========================================================================

    def list_vms(self, subscription_id: str | None = None) -> list[AzureVM]:
        """VM 목록 (subscription_id가 없으면 전체 구독)

        목록 API는 전원 상태를 돌려주지 않으므로 status는 get_vm()에서만 채워집니다.
        """

        def fetch(sub_id: str) -> list[AzureVM]:
            raw_vms = self.ctx.azure.paginate(
                MANAGEMENT_SCOPE,
                f"{MANAGEMENT_URL}/subscriptions/{sub_id}/providers/Microsoft.Compute/virtualMachines",
                {"api-version": COMPUTE_API_VERSION},
            )
            return [_build_vm(raw, sub_id) for raw in raw_vms]

        return self._list_subscription_resources(AZURE_VMS, AzureVM, subscription_id, fetch, "list_azure_vms")

    def get_vm(self, subscription_id: str, resource_group: str, name: str) -> AzureVM:
        """VM 상세 (인스턴스 뷰 포함)

        Raises:
            NotFoundError: VM 없음
        """
        key = AZURE_VMS.entity_key(subscription_id, resource_group, name)
        cached = self._cached_value(key, AzureVM)
        if cached is not None:
            return cached

        raw = self.ctx.azure.get(
            MANAGEMENT_SCOPE,
            _vm_url(subscription_id, resource_group, name),
            {"api-version": COMPUTE_API_VERSION, "$expand": "instanceView"},
        )
        return self._store(key, _build_vm(raw, subscription_id))

    def start_vm(self, subscription_id: str, resource_group: str, name: str) -> None:
        self._vm_action(subscription_id, resource_group, name, "POST", "/start")
        logger.info(f"VM 시작 요청 [{subscription_id}/{resource_group}/{name}]")

    def stop_vm(self, subscription_id: str, resource_group: str, name: str) -> None:
        """VM 중지 (할당 해제하여 컴퓨팅 과금 중단)"""
        self._vm_action(subscription_id, resource_group, name, "POST", "/deallocate")
        logger.info(f"VM 중지 요청 [{subscription_id}/{resource_group}/{name}]")

    def delete_vm(self, subscription_id: str, resource_group: str, name: str) -> None:
        self._vm_action(subscription_id, resource_group, name, "DELETE", "")
        logger.info(f"VM 삭제 요청 [{subscription_id}/{resource_group}/{name}]")

    def _vm_action(self, subscription_id: str, resource_group: str, name: str, method: str, suffix: str) -> None:
        """장기 실행 작업을 시작만 하고 완료는 기다리지 않음"""
        try:
            self.ctx.azure.request(
                MANAGEMENT_SCOPE,
                method,
                _vm_url(subscription_id, resource_group, name) + suffix,
                params={"api-version": COMPUTE_API_VERSION},
            )
        finally:
            self._invalidate(AZURE_VMS.for_entity_write(subscription_id, resource_group, name))

    # =========================================================================
    # 스토리지 계정
    # =========================================================================

    def list_storage_accounts(self, subscription_id: str | None = None) -> list[AzureStorageAccount]:
        def fetch(sub_id: str) -> list[AzureStorageAccount]:
            raw_accounts = self.ctx.azure.paginate(
                MANAGEMENT_SCOPE,
                f"{MANAGEMENT_URL}/subscriptions/{sub_id}/providers/Microsoft.Storage/storageAccounts",
                {"api-version": STORAGE_API_VERSION},
            )
            return [_build_storage_account(raw, sub_id) for raw in raw_accounts]

        return self._list_subscription_resources(
            AZURE_STORAGE_ACCOUNTS, AzureStorageAccount, subscription_id, fetch, "list_azure_storage_accounts"
        )

    def get_storage_account(self, subscription_id: str, resource_group: str, name: str) -> AzureStorageAccount:
        """스토리지 계정 상세

        Raises:
            NotFoundError: 스토리지 계정 없음
        """
        key = AZURE_STORAGE_ACCOUNTS.entity_key(subscription_id, resource_group, name)
        cached = self._cached_value(key, AzureStorageAccount)
        if cached is not None:
            return cached

        raw = self.ctx.azure.get(
            MANAGEMENT_SCOPE,
            _storage_url(subscription_id, resource_group, name),
            {"api-version": STORAGE_API_VERSION},
        )
        return self._store(key, _build_storage_account(raw, subscription_id))

    def delete_storage_account(self, subscription_id: str, resource_group: str, name: str) -> None:
        try:
            self.ctx.azure.request(
                MANAGEMENT_SCOPE,
                "DELETE",
                _storage_url(subscription_id, resource_group, name),
                params={"api-version": STORAGE_API_VERSION},
            )
        finally:
            self._invalidate(AZURE_STORAGE_ACCOUNTS.for_entity_write(subscription_id, resource_group, name))
        logger.info(f"스토리지 계정 삭제 [{subscription_id}/{resource_group}/{name}]")

    # =========================================================================
    # 캐시
    # =========================================================================

    def clear_cache(self) -> None:
        """구독/VM/스토리지 계정 캐시 전체 삭제"""
        self._invalidate(azure_rm_clear())

    def invalidate_vms(self) -> None:
        self._invalidate(AZURE_VMS.for_family())

    def invalidate_storage(self) -> None:
        self._invalidate(AZURE_STORAGE_ACCOUNTS.for_family())
