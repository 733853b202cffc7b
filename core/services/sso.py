"""
core/services/sso.py - IAM Identity Center (SSO)

관리 계정의 Identity Center 인스턴스에서 사용자/그룹/그룹 멤버와
계정 할당(주체 × 권한 세트 × 계정)을 조회합니다.
모든 호출은 SSO_REGION 리전의 관리 계정 세션으로 이루어집니다.

캐시 키:
    - sso-instance                            인스턴스 (ARN, Identity Store ID)
    - sso-users / sso-groups                  사용자/그룹 목록
    - sso-user:<id> / sso-group:<id>          개별 사용자/그룹
    - sso-group-members:<group_id>            그룹 멤버 (USER만)
    - sso-permission-sets                     권한 세트 ARN 목록
    - sso-ps-name:<arn>                       권한 세트 이름
    - sso-account-assignments:<account_id>    계정별 할당
    - sso-user-assignments:<id>               사용자 주체 할당
    - sso-group-assignments:<id>              그룹 주체 할당
    - sso-all-{user,group,account}-assignments  집계
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import (
    SSO_ALL_ACCOUNT_ASSIGNMENTS,
    SSO_ALL_GROUP_ASSIGNMENTS,
    SSO_ALL_USER_ASSIGNMENTS,
    SSO_GROUPS,
    SSO_INSTANCE,
    SSO_PERMISSION_SETS,
    SSO_PREFIX,
    SSO_USERS,
    sso_account_assignments_invalidation,
    sso_group_invalidation,
    sso_groups_invalidation,
    sso_key,
    sso_user_invalidation,
    sso_users_invalidation,
)
from core.exceptions import APICallError, NotFoundError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import (
    SSOAccountAssignment,
    SSOAccountWithAssignments,
    SSOGroup,
    SSOGroupMember,
    SSOGroupWithAssignments,
    SSOInstance,
    SSOUser,
    SSOUserWithAssignments,
)

logger = logging.getLogger(__name__)

PRINCIPAL_USER = "USER"
PRINCIPAL_GROUP = "GROUP"


def permission_set_name_from_arn(arn: str) -> str:
    """권한 세트 ARN의 마지막 구간 (arn:aws:sso:::permissionSet/ssoins-x/ps-x → ps-x)"""
    parts = [p for p in arn.replace(":", "/").split("/") if p]
    return parts[-1] if len(parts) >= 2 else arn


def _build_user(raw: dict[str, Any]) -> SSOUser:
    return SSOUser(
        user_id=raw.get("UserId", ""),
        user_name=raw.get("UserName", ""),
        display_name=raw.get("DisplayName", ""),
        emails=[e["Value"] for e in raw.get("Emails") or [] if e.get("Value")],
    )


def _build_group(raw: dict[str, Any]) -> SSOGroup:
    return SSOGroup(
        group_id=raw.get("GroupId", ""),
        display_name=raw.get("DisplayName", ""),
        description=raw.get("Description", ""),
    )


class SSOService(BaseService):
    """IAM Identity Center 서비스"""

    # =========================================================================
    # 클라이언트 / 인스턴스
    # =========================================================================

    def _sso_client(self, service: str) -> Any:
        return get_client(self.ctx.master_session, service, region_name=self.ctx.settings.SSO_REGION)

    def get_instance(self) -> SSOInstance:
        """Identity Center 인스턴스 (리전당 하나, 첫 번째 사용)

        Raises:
            NotFoundError: SSO_REGION에 인스턴스가 없음
        """
        cached = self._cached_value(SSO_INSTANCE, SSOInstance)
        if cached is not None:
            return cached

        instances = paginate(self._sso_client("sso-admin"), "list_instances", "Instances")
        if not instances:
            raise NotFoundError(
                "sso-admin",
                "list_instances",
                error_message=f"{self.ctx.settings.SSO_REGION} 리전에 Identity Center 인스턴스가 없습니다",
            )

        raw = instances[0]
        instance = SSOInstance(instance_arn=raw["InstanceArn"], identity_store_id=raw["IdentityStoreId"])
        logger.info(f"Identity Center 인스턴스: {instance.instance_arn}")
        return self._store(SSO_INSTANCE, instance)

    # =========================================================================
    # 사용자 / 그룹
    # =========================================================================

    def list_users(self) -> list[SSOUser]:
        cached = self._cached(SSO_USERS, SSOUser)
        if cached is not None:
            return cached

        store_id = self.get_instance().identity_store_id
        raw_users = paginate(self._sso_client("identitystore"), "list_users", "Users", IdentityStoreId=store_id)
        return self._store(SSO_USERS, [_build_user(raw) for raw in raw_users])

    def list_groups(self) -> list[SSOGroup]:
        cached = self._cached(SSO_GROUPS, SSOGroup)
        if cached is not None:
            return cached

        store_id = self.get_instance().identity_store_id
        raw_groups = paginate(self._sso_client("identitystore"), "list_groups", "Groups", IdentityStoreId=store_id)
        return self._store(SSO_GROUPS, [_build_group(raw) for raw in raw_groups])

    def get_user(self, user_id: str) -> SSOUser:
        """사용자 상세

        Raises:
            NotFoundError: 사용자 없음
        """
        key = sso_key("user", user_id)
        cached = self._cached_value(key, SSOUser)
        if cached is not None:
            return cached

        store_id = self.get_instance().identity_store_id
        raw = call(self._sso_client("identitystore"), "describe_user", IdentityStoreId=store_id, UserId=user_id)
        return self._store(key, _build_user(raw))

    def get_group(self, group_id: str) -> SSOGroup:
        key = sso_key("group", group_id)
        cached = self._cached_value(key, SSOGroup)
        if cached is not None:
            return cached

        store_id = self.get_instance().identity_store_id
        raw = call(self._sso_client("identitystore"), "describe_group", IdentityStoreId=store_id, GroupId=group_id)
        return self._store(key, _build_group(raw))

    def list_group_members(self, group_id: str) -> list[SSOGroupMember]:
        """그룹의 사용자 멤버 (사용자 이름/표시 이름 포함)

        사용자 상세 조회에 실패한 멤버는 이름 없이 포함합니다.
        """
        key = sso_key("group-members", group_id)
        cached = self._cached(key, SSOGroupMember)
        if cached is not None:
            return cached

        store_id = self.get_instance().identity_store_id
        memberships = paginate(
            self._sso_client("identitystore"),
            "list_group_memberships",
            "GroupMemberships",
            IdentityStoreId=store_id,
            GroupId=group_id,
        )

        members = []
        for membership in memberships:
            user_id = (membership.get("MemberId") or {}).get("UserId")
            if not user_id:
                continue
            member = SSOGroupMember(member_id=user_id, member_type=PRINCIPAL_USER)
            try:
                user = self.get_user(user_id)
                member.user_name = user.user_name
                member.display_name = user.display_name
            except APICallError as e:
                logger.debug(f"그룹 멤버 상세 조회 실패 [{group_id}/{user_id}]: {e}")
            members.append(member)

        return self._store(key, members)

    # =========================================================================
    # 계정 할당
    # =========================================================================

    def list_account_assignments(self, account_id: str) -> list[SSOAccountAssignment]:
        """한 계정의 할당 (권한 세트마다 조회, 실패한 권한 세트는 건너뜀)"""
        key = sso_key("account-assignments", account_id)
        cached = self._cached(key, SSOAccountAssignment)
        if cached is not None:
            return cached

        instance_arn = self.get_instance().instance_arn
        admin = self._sso_client("sso-admin")
        account_name = self._account_name(account_id)

        assignments = []
        for ps_arn in self._list_permission_sets():
            try:
                raw_assignments = paginate(
                    admin,
                    "list_account_assignments",
                    "AccountAssignments",
                    InstanceArn=instance_arn,
                    AccountId=account_id,
                    PermissionSetArn=ps_arn,
                )
            except APICallError as e:
                logger.warning(f"권한 세트 할당 조회 실패, 건너뜀 [{account_id}/{ps_arn}]: {e}")
                continue

            for raw in raw_assignments:
                principal_id = raw.get("PrincipalId", "")
                principal_type = raw.get("PrincipalType", "")
                assignments.append(
                    SSOAccountAssignment(
                        account_id=account_id,
                        account_name=account_name,
                        principal_id=principal_id,
                        principal_type=principal_type,
                        principal_name=self._principal_name(principal_id, principal_type),
                        permission_set_arn=ps_arn,
                        permission_set_name=self._permission_set_name(ps_arn),
                    )
                )

        return self._store(key, assignments)

    def list_user_assignments(self, user_id: str) -> list[SSOAccountAssignment]:
        return self._list_principal_assignments(user_id, PRINCIPAL_USER)

    def list_group_assignments(self, group_id: str) -> list[SSOAccountAssignment]:
        return self._list_principal_assignments(group_id, PRINCIPAL_GROUP)

    def list_all_user_assignments(self) -> list[SSOUserWithAssignments]:
        """모든 사용자 + 계정 할당 + 소속 그룹 ID

        사용자별 할당 조회 실패는 빈 할당으로 대체합니다.
        """
        cached = self._cached(SSO_ALL_USER_ASSIGNMENTS, SSOUserWithAssignments)
        if cached is not None:
            return cached

        memberships = self._user_group_memberships()
        result = []
        for user in self.list_users():
            try:
                assignments = self.list_user_assignments(user.user_id)
            except APICallError as e:
                logger.warning(f"사용자 할당 조회 실패 [{user.user_id}]: {e}")
                assignments = []
            result.append(
                SSOUserWithAssignments(
                    user_id=user.user_id,
                    user_name=user.user_name,
                    display_name=user.display_name,
                    emails=user.emails,
                    active=user.active,
                    account_assignments=assignments,
                    group_memberships=memberships.get(user.user_id, []),
                )
            )

        return self._store(SSO_ALL_USER_ASSIGNMENTS, result)

    def list_all_group_assignments(self) -> list[SSOGroupWithAssignments]:
        """모든 그룹 + 계정 할당 + 멤버"""
        cached = self._cached(SSO_ALL_GROUP_ASSIGNMENTS, SSOGroupWithAssignments)
        if cached is not None:
            return cached

        result = []
        for group in self.list_groups():
            try:
                assignments = self.list_group_assignments(group.group_id)
            except APICallError as e:
                logger.warning(f"그룹 할당 조회 실패 [{group.group_id}]: {e}")
                assignments = []
            try:
                members = self.list_group_members(group.group_id)
            except APICallError as e:
                logger.warning(f"그룹 멤버 조회 실패 [{group.group_id}]: {e}")
                members = []
            result.append(
                SSOGroupWithAssignments(
                    group_id=group.group_id,
                    display_name=group.display_name,
                    description=group.description,
                    account_assignments=assignments,
                    member_count=len(members),
                    members=members,
                )
            )

        return self._store(SSO_ALL_GROUP_ASSIGNMENTS, result)

    def list_all_account_assignments(self) -> list[SSOAccountWithAssignments]:
        """조직의 모든 계정 + 계정별 할당

        할당은 관리 계정에서 조회하므로 역할 위임이 안 되는 계정도 포함합니다.
        계정별 조회는 병렬로 실행하며, 실패한 계정은 빈 할당으로 표시합니다.
        결과는 조직 계정 순서를 따릅니다.
        """
        cached = self._cached(SSO_ALL_ACCOUNT_ASSIGNMENTS, SSOAccountWithAssignments)
        if cached is not None:
            return cached

        accounts = self.ctx.accounts.list_accounts()
        # 인스턴스와 권한 세트를 먼저 캐시해 작업 단위마다 다시 조회하지 않음
        self._list_permission_sets()

        def collect(session, account_id, account_name, region):
            return [SSOAccountWithAssignments(account_id, account_name, self.list_account_assignments(account_id))]

        collected = self._fan_out_shared(
            [(a.id, a.name) for a in accounts],
            self.ctx.master_session,
            collect,
            "list_all_account_assignments",
            service="sso-admin",
        )
        by_id = {item.account_id: item for item in collected}
        result = [by_id.get(a.id) or SSOAccountWithAssignments(a.id, a.name) for a in accounts]
        return self._store(SSO_ALL_ACCOUNT_ASSIGNMENTS, result)

    # =========================================================================
    # 캐시 무효화
    # =========================================================================

    def clear_cache(self) -> None:
        """SSO 키 전체 삭제 (AWS/Azure 리소스 캐시는 유지)"""
        self.ctx.cache.delete_pattern(SSO_PREFIX)
        logger.info("SSO 캐시 초기화")

    def invalidate_users(self) -> None:
        self._invalidate(sso_users_invalidation())

    def invalidate_groups(self) -> None:
        self._invalidate(sso_groups_invalidation())

    def invalidate_user(self, user_id: str) -> None:
        self._invalidate(sso_user_invalidation(user_id))

    def invalidate_group(self, group_id: str) -> None:
        self._invalidate(sso_group_invalidation(group_id))

    def invalidate_account_assignments(self, account_id: str) -> None:
        self._invalidate(sso_account_assignments_invalidation(account_id))

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    def _list_principal_assignments(self, principal_id: str, principal_type: str) -> list[SSOAccountAssignment]:
        kind = "user-assignments" if principal_type == PRINCIPAL_USER else "group-assignments"
        key = sso_key(kind, principal_id)
        cached = self._cached(key, SSOAccountAssignment)
        if cached is not None:
            return cached

        raw_assignments = paginate(
            self._sso_client("sso-admin"),
            "list_account_assignments_for_principal",
            "AccountAssignments",
            InstanceArn=self.get_instance().instance_arn,
            PrincipalId=principal_id,
            PrincipalType=principal_type,
        )

        principal_name = self._principal_name(principal_id, principal_type)
        assignments = [
            SSOAccountAssignment(
                account_id=raw.get("AccountId", ""),
                account_name=self._account_name(raw.get("AccountId", "")),
                principal_id=principal_id,
                principal_type=principal_type,
                principal_name=principal_name,
                permission_set_arn=raw.get("PermissionSetArn", ""),
                permission_set_name=self._permission_set_name(raw.get("PermissionSetArn", "")),
            )
            for raw in raw_assignments
        ]
        return self._store(key, assignments)

    def _list_permission_sets(self) -> list[str]:
        cached = self._cached(SSO_PERMISSION_SETS, str)
        if cached is not None:
            return cached

        permission_sets = paginate(
            self._sso_client("sso-admin"),
            "list_permission_sets",
            "PermissionSets",
            InstanceArn=self.get_instance().instance_arn,
        )
        return self._store(SSO_PERMISSION_SETS, permission_sets)

    def _permission_set_name(self, arn: str) -> str:
        """권한 세트 이름 (조회 실패 시 ARN 마지막 구간, 캐시하지 않음)"""
        key = sso_key("ps-name", arn)
        cached = self._cached_value(key, str)
        if cached is not None:
            return cached

        try:
            response = call(
                self._sso_client("sso-admin"),
                "describe_permission_set",
                InstanceArn=self.get_instance().instance_arn,
                PermissionSetArn=arn,
            )
        except APICallError as e:
            logger.debug(f"권한 세트 이름 조회 실패 [{arn}]: {e}")
            return permission_set_name_from_arn(arn)

        name = response.get("PermissionSet", {}).get("Name") or permission_set_name_from_arn(arn)
        return self._store(key, name)

    def _principal_name(self, principal_id: str, principal_type: str) -> str:
        """주체 표시 이름 (조회 실패 시 주체 ID)"""
        try:
            if principal_type == PRINCIPAL_USER:
                return self.get_user(principal_id).principal_name or principal_id
            if principal_type == PRINCIPAL_GROUP:
                return self.get_group(principal_id).display_name or principal_id
        except APICallError as e:
            logger.debug(f"주체 이름 조회 실패 [{principal_type}/{principal_id}]: {e}")
        return principal_id

    def _user_group_memberships(self) -> dict[str, list[str]]:
        """사용자 ID → 소속 그룹 ID 목록 (그룹 조회 실패 시 빈 매핑)"""
        try:
            groups = self.list_groups()
        except APICallError as e:
            logger.warning(f"SSO 그룹 목록 조회 실패, 그룹 소속 생략: {e}")
            return {}

        memberships: dict[str, list[str]] = {}
        for group in groups:
            try:
                members = self.list_group_members(group.group_id)
            except APICallError as e:
                logger.debug(f"그룹 멤버 조회 실패 [{group.group_id}]: {e}")
                continue
            for member in members:
                memberships.setdefault(member.member_id, []).append(group.group_id)
        return memberships
