"""
core/services/roles.py - IAM 역할 관리

계정별 IAM 역할과 상세 정보(관리형/인라인 정책, 인스턴스 프로파일, 태그,
마지막 사용 정보)를 조회하고 역할을 삭제합니다.

캐시 키:
    - roles:<account_id>             계정별 역할 목록
    - role:<account_id>:<role_name>  개별 역할
    - all-roles                      전체 계정 집계
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import ROLES
from core.exceptions import APICallError, SessionError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import AttachedPolicy, InlinePolicy, Role, parse_tags

logger = logging.getLogger(__name__)


def _build_role(iam: Any, raw: dict[str, Any], account_id: str, account_name: str) -> Role:
    """역할 상세 조회

    부가 정보(정책/프로파일/태그/마지막 사용) 조회 실패는 해당 항목만 비워 둡니다.
    """
    role_name = raw["RoleName"]
    role = Role(
        role_name=role_name,
        role_id=raw.get("RoleId", ""),
        arn=raw.get("Arn", ""),
        account_id=account_id,
        account_name=account_name,
        create_date=raw.get("CreateDate"),
        path=raw.get("Path", "/"),
        description=raw.get("Description", ""),
        max_session_duration=raw.get("MaxSessionDuration"),
        assume_role_policy_document=raw.get("AssumeRolePolicyDocument", ""),
    )

    try:
        role.attached_managed_policies = [
            AttachedPolicy(policy_arn=p["PolicyArn"], policy_name=p.get("PolicyName", ""))
            for p in paginate(iam, "list_attached_role_policies", "AttachedPolicies", RoleName=role_name)
        ]
    except APICallError as e:
        logger.debug(f"관리형 정책 조회 실패 [{role_name}]: {e}")

    try:
        for policy_name in paginate(iam, "list_role_policies", "PolicyNames", RoleName=role_name):
            document = call(iam, "get_role_policy", RoleName=role_name, PolicyName=policy_name)
            role.inline_policies.append(
                InlinePolicy(policy_name=policy_name, policy_document=document.get("PolicyDocument", ""))
            )
    except APICallError as e:
        logger.debug(f"인라인 정책 조회 실패 [{role_name}]: {e}")

    try:
        role.instance_profiles = [
            p["InstanceProfileName"]
            for p in paginate(iam, "list_instance_profiles_for_role", "InstanceProfiles", RoleName=role_name)
        ]
    except APICallError as e:
        logger.debug(f"인스턴스 프로파일 조회 실패 [{role_name}]: {e}")

    try:
        role.tags = parse_tags(call(iam, "list_role_tags", RoleName=role_name).get("Tags"))
    except APICallError as e:
        logger.debug(f"태그 조회 실패 [{role_name}]: {e}")

    # list_roles 응답에는 RoleLastUsed가 없음
    last_used = raw.get("RoleLastUsed")
    if last_used is None:
        try:
            last_used = call(iam, "get_role", RoleName=role_name)["Role"].get("RoleLastUsed")
        except APICallError as e:
            logger.debug(f"마지막 사용 정보 조회 실패 [{role_name}]: {e}")
    if last_used:
        role.last_used_date = last_used.get("LastUsedDate")
        role.last_used_region = last_used.get("Region", "")

    return role


class RoleService(BaseService):
    """IAM 역할 서비스"""

    def list_roles(self, account_id: str) -> list[Role]:
        """계정의 IAM 역할 목록 (접근 불가 계정은 경고 후 빈 리스트)"""
        key = ROLES.account_key(account_id)
        cached = self._cached(key, Role)
        if cached is not None:
            return cached

        try:
            session = self._session(account_id)
        except SessionError as e:
            logger.warning(f"계정 {account_id} 접근 불가, 역할 조회 건너뜀: {e}")
            return []

        return self._store(key, self._fetch_roles(session, account_id, self._account_name(account_id)))

    def list_all_roles(self) -> list[Role]:
        cached = self._cached(ROLES.aggregate, Role)
        if cached is not None:
            return cached

        def collect(session, account_id, account_name, region):
            key = ROLES.account_key(account_id)
            roles = self._cached(key, Role)
            if roles is None:
                roles = self._store(key, self._fetch_roles(session, account_id, account_name))
            return roles

        roles = self._fan_out_accounts(collect, "list_all_roles", service="iam")
        return self._store(ROLES.aggregate, roles)

    def get_role(self, account_id: str, role_name: str) -> Role:
        """역할 상세

        Raises:
            SessionError: 계정 접근 불가
            NotFoundError: 역할 없음
        """
        key = ROLES.entity_key(account_id, role_name)
        cached = self._cached_value(key, Role)
        if cached is not None:
            return cached

        iam = get_client(self._session(account_id), "iam")
        raw = call(iam, "get_role", RoleName=role_name)["Role"]
        return self._store(key, _build_role(iam, raw, account_id, self._account_name(account_id)))

    def delete_role(self, account_id: str, role_name: str) -> None:
        """역할 삭제

        관리형 정책 분리 → 인라인 정책 삭제 → 인스턴스 프로파일에서 제거 → 역할 삭제
        """
        iam = get_client(self._session(account_id), "iam")

        for policy in paginate(iam, "list_attached_role_policies", "AttachedPolicies", RoleName=role_name):
            call(iam, "detach_role_policy", RoleName=role_name, PolicyArn=policy["PolicyArn"])

        for policy_name in paginate(iam, "list_role_policies", "PolicyNames", RoleName=role_name):
            call(iam, "delete_role_policy", RoleName=role_name, PolicyName=policy_name)

        for profile in paginate(iam, "list_instance_profiles_for_role", "InstanceProfiles", RoleName=role_name):
            call(
                iam,
                "remove_role_from_instance_profile",
                InstanceProfileName=profile["InstanceProfileName"],
                RoleName=role_name,
            )

        call(iam, "delete_role", RoleName=role_name)
        self._invalidate(ROLES.for_entity_write(account_id, role_name))
        logger.info(f"역할 삭제 [{account_id}/{role_name}]")

    def _fetch_roles(self, session, account_id: str, account_name: str) -> list[Role]:
        iam = get_client(session, "iam")
        roles = []
        for raw in paginate(iam, "list_roles", "Roles"):
            try:
                roles.append(_build_role(iam, raw, account_id, account_name))
            except APICallError as e:
                logger.warning(f"역할 상세 조회 실패, 건너뜀 [{account_id}/{raw.get('RoleName')}]: {e}")
        return roles
