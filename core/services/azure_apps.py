"""
core/services/azure_apps.py - Azure 엔터프라이즈 애플리케이션

Microsoft Graph의 서비스 주체(엔터프라이즈 앱)를 조회/삭제합니다.
서비스 주체에는 생성 시각이 없으므로 애플리케이션 객체의 createdDateTime을 appId로 붙입니다.

캐시 키:
    - azure-enterprise-apps        앱 목록
    - azure-enterprise-app:<id>    개별 앱
"""

from __future__ import annotations

import logging
from typing import Any

from core.azure.client import GRAPH_SCOPE, GRAPH_URL
from core.cache.keys import AZURE_ENTERPRISE_APPS, azure_app_key, azure_apps_clear, azure_apps_invalidation
from core.exceptions import APICallError

from .base import BaseService
from .types import AzureEnterpriseApplication

logger = logging.getLogger(__name__)

# Graph 페이지 크기 상한
PAGE_SIZE = 999

SERVICE_PRINCIPAL_FIELDS = ",".join(
    [
        "id",
        "appId",
        "displayName",
        "accountEnabled",
        "appOwnerOrganizationId",
        "appRoleAssignmentRequired",
        "servicePrincipalType",
        "tags",
        "homepage",
        "replyUrls",
    ]
)


def _build_app(raw: dict[str, Any], created: str = "") -> AzureEnterpriseApplication:
    return AzureEnterpriseApplication(
        id=raw.get("id", ""),
        app_id=raw.get("appId", ""),
        display_name=raw.get("displayName") or "",
        created_datetime=created,
        account_enabled=bool(raw.get("accountEnabled")),
        app_owner_org_id=raw.get("appOwnerOrganizationId") or "",
        app_role_assignment_required=bool(raw.get("appRoleAssignmentRequired")),
        service_principal_type=raw.get("servicePrincipalType") or "",
        tags=raw.get("tags") or [],
        homepage=raw.get("homepage") or "",
        reply_urls=raw.get("replyUrls") or [],
    )


class AzureAppService(BaseService):
    """Azure 엔터프라이즈 앱 서비스"""

    def list_enterprise_apps(self) -> list[AzureEnterpriseApplication]:
        """테넌트의 모든 서비스 주체

        Raises:
            ConfigError: Azure 자격증명 미설정
            APICallError: 서비스 주체 목록 조회 실패
        """
        cached = self._cached(AZURE_ENTERPRISE_APPS, AzureEnterpriseApplication)
        if cached is not None:
            return cached

        client = self.ctx.azure
        created = self._creation_dates()
        raw_apps = client.paginate(
            GRAPH_SCOPE,
            f"{GRAPH_URL}/servicePrincipals",
            {"$select": SERVICE_PRINCIPAL_FIELDS, "$top": PAGE_SIZE},
        )
        apps = [_build_app(raw, created.get(raw.get("appId", ""), "")) for raw in raw_apps]
        logger.info(f"엔터프라이즈 앱 {len(apps)}개 조회")
        return self._store(AZURE_ENTERPRISE_APPS, apps)

    def get_enterprise_app(self, object_id: str) -> AzureEnterpriseApplication:
        """서비스 주체 상세

        Raises:
            NotFoundError: 서비스 주체 없음
        """
        key = azure_app_key(object_id)
        cached = self._cached_value(key, AzureEnterpriseApplication)
        if cached is not None:
            return cached

        client = self.ctx.azure
        raw = client.get(
            GRAPH_SCOPE,
            f"{GRAPH_URL}/servicePrincipals/{object_id}",
            {"$select": SERVICE_PRINCIPAL_FIELDS},
        )

        created = ""
        app_id = raw.get("appId", "")
        if app_id:
            try:
                matches = client.get(
                    GRAPH_SCOPE,
                    f"{GRAPH_URL}/applications",
                    {"$filter": f"appId eq '{app_id}'", "$select": "createdDateTime"},
                ).get("value", [])
                if matches:
                    created = matches[0].get("createdDateTime") or ""
            except APICallError as e:
                logger.debug(f"애플리케이션 생성 시각 조회 실패 [{app_id}]: {e}")

        return self._store(key, _build_app(raw, created))

    def delete_enterprise_app(self, object_id: str) -> None:
        self.ctx.azure.request(GRAPH_SCOPE, "DELETE", f"{GRAPH_URL}/servicePrincipals/{object_id}")
        self._invalidate(azure_apps_invalidation(object_id))
        logger.info(f"엔터프라이즈 앱 삭제 [{object_id}]")

    def invalidate(self, object_id: str | None = None) -> None:
        """앱 목록 (object_id가 있으면 해당 앱도) 무효화"""
        self._invalidate(azure_apps_invalidation(object_id))

    def clear_cache(self) -> None:
        self._invalidate(azure_apps_clear())

    def _creation_dates(self) -> dict[str, str]:
        """appId → createdDateTime (조회 실패 시 빈 매핑)"""
        try:
            raw_apps = self.ctx.azure.paginate(
                GRAPH_SCOPE,
                f"{GRAPH_URL}/applications",
                {"$select": "id,appId,createdDateTime", "$top": PAGE_SIZE},
            )
        except APICallError as e:
            logger.warning(f"애플리케이션 생성 시각 조회 실패, 생략: {e}")
            return {}
        return {raw["appId"]: raw.get("createdDateTime") or "" for raw in raw_apps if raw.get("appId")}
