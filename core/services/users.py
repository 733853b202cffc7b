"""
core/services/users.py - IAM 사용자 관리

계정별 IAM 사용자 조회와 액세스 키/콘솔 비밀번호 관리, 사용자 삭제를 제공합니다.

캐시 키:
    - users:<account_id>            계정별 사용자 목록
    - user:<account_id>:<username>  개별 사용자
    - all-users                     전체 계정 집계

쓰기 작업은 사용자 키, 계정 목록 키, 집계 키, accounts 키를 삭제합니다.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from core.auth.types import CLEANUP
from core.cache.keys import USERS
from core.exceptions import APICallError, NotFoundError, SessionError, ValidationError, is_not_found
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import AccessKey, CreatedAccessKey, PasswordRotation, User, UserCleanupResult, UserWithAccount

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

# 콘솔 비밀번호 생성 규칙 (대/소문자, 숫자, 기호 각 1자 이상)
PASSWORD_LENGTH = 16
_UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
_DIGITS = "0123456789"
_SYMBOLS = "!@#$%^&*"
_PASSWORD_CLASSES = (_UPPERCASE, _LOWERCASE, _DIGITS, _SYMBOLS)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """IAM 비밀번호 정책을 만족하는 임의 비밀번호 생성"""
    if length < len(_PASSWORD_CLASSES):
        raise ValueError(f"비밀번호 길이는 {len(_PASSWORD_CLASSES)} 이상이어야 합니다")

    rng = secrets.SystemRandom()
    chars = [rng.choice(charset) for charset in _PASSWORD_CLASSES]
    all_chars = "".join(_PASSWORD_CLASSES)
    chars.extend(rng.choice(all_chars) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)


def _has_login_profile(iam: Any, username: str) -> bool:
    try:
        call(iam, "get_login_profile", UserName=username)
    except APICallError as e:
        if is_not_found(e):
            return False
        raise
    return True


def _get_access_keys(iam: Any, username: str) -> list[AccessKey]:
    """사용자 액세스 키 + 마지막 사용 정보"""
    keys = []
    for meta in paginate(iam, "list_access_keys", "AccessKeyMetadata", UserName=username):
        key = AccessKey(
            access_key_id=meta["AccessKeyId"],
            status=meta.get("Status", ""),
            create_date=meta.get("CreateDate"),
        )
        try:
            last_used = call(iam, "get_access_key_last_used", AccessKeyId=key.access_key_id)
        except APICallError as e:
            logger.warning(f"액세스 키 마지막 사용 정보 조회 실패 [{key.access_key_id}]: {e}")
        else:
            info = last_used.get("AccessKeyLastUsed", {})
            if info.get("LastUsedDate"):
                key.last_used_date = info["LastUsedDate"]
                key.last_used_service = info.get("ServiceName", "")
                key.last_used_region = info.get("Region", "")
        keys.append(key)
    return keys


def _build_user(iam: Any, raw: dict[str, Any]) -> User:
    username = raw["UserName"]
    try:
        access_keys = _get_access_keys(iam, username)
    except APICallError as e:
        logger.warning(f"액세스 키 조회 실패 [{username}]: {e}")
        access_keys = []

    try:
        password_set = _has_login_profile(iam, username)
    except APICallError as e:
        logger.warning(f"로그인 프로파일 조회 실패 [{username}]: {e}")
        password_set = False

    return User(
        username=username,
        user_id=raw.get("UserId", ""),
        arn=raw.get("Arn", ""),
        create_date=raw.get("CreateDate"),
        password_set=password_set,
        password_last_used=raw.get("PasswordLastUsed"),
        access_keys=access_keys,
    )


def _fetch_users(session: boto3.Session) -> list[User]:
    iam = get_client(session, "iam")
    return [_build_user(iam, raw) for raw in paginate(iam, "list_users", "Users")]


def _last_activity(user: User) -> datetime | None:
    """콘솔 로그인/액세스 키 사용 중 가장 최근 시각"""
    candidates = [user.password_last_used, *(k.last_used_date for k in user.access_keys)]
    used = [c for c in candidates if c is not None]
    return max(used) if used else None


def is_inactive(user: User, cutoff: datetime) -> bool:
    """cutoff 이전에 생성되었고 cutoff 이후 사용 기록이 없는 사용자인지"""
    if user.create_date is None or user.create_date >= cutoff:
        return False
    last = _last_activity(user)
    return last is None or last < cutoff


def delete_user_resources(iam: Any, username: str) -> None:
    """사용자와 모든 종속 리소스 삭제

    삭제 순서: 액세스 키 → 그룹 → 관리형 정책 → 인라인 정책 → MFA →
    SSH 키 → 서명 인증서 → 서비스 자격증명 → 로그인 프로파일 → 사용자

    Raises:
        APICallError: 단계별 호출 실패 (로그인 프로파일 없음은 무시)
    """
    for key in paginate(iam, "list_access_keys", "AccessKeyMetadata", UserName=username):
        call(iam, "delete_access_key", UserName=username, AccessKeyId=key["AccessKeyId"])

    for group in paginate(iam, "list_groups_for_user", "Groups", UserName=username):
        call(iam, "remove_user_from_group", UserName=username, GroupName=group["GroupName"])

    for policy in paginate(iam, "list_attached_user_policies", "AttachedPolicies", UserName=username):
        call(iam, "detach_user_policy", UserName=username, PolicyArn=policy["PolicyArn"])

    for policy_name in paginate(iam, "list_user_policies", "PolicyNames", UserName=username):
        call(iam, "delete_user_policy", UserName=username, PolicyName=policy_name)

    for device in paginate(iam, "list_mfa_devices", "MFADevices", UserName=username):
        serial = device["SerialNumber"]
        call(iam, "deactivate_mfa_device", UserName=username, SerialNumber=serial)
        if ":mfa/" in serial:
            try:
                call(iam, "delete_virtual_mfa_device", SerialNumber=serial)
            except APICallError as e:
                logger.debug(f"가상 MFA 삭제 건너뜀 [{serial}]: {e}")

    ssh_keys = call(iam, "list_ssh_public_keys", UserName=username).get("SSHPublicKeys", [])
    for ssh_key in ssh_keys:
        call(iam, "delete_ssh_public_key", UserName=username, SSHPublicKeyId=ssh_key["SSHPublicKeyId"])

    for cert in paginate(iam, "list_signing_certificates", "Certificates", UserName=username):
        call(iam, "delete_signing_certificate", UserName=username, CertificateId=cert["CertificateId"])

    credentials = call(iam, "list_service_specific_credentials", UserName=username)
    for cred in credentials.get("ServiceSpecificCredentials", []):
        call(
            iam,
            "delete_service_specific_credential",
            UserName=username,
            ServiceSpecificCredentialId=cred["ServiceSpecificCredentialId"],
        )

    try:
        call(iam, "delete_login_profile", UserName=username)
    except APICallError as e:
        if not is_not_found(e):
            raise

    call(iam, "delete_user", UserName=username)


class UserService(BaseService):
    """IAM 사용자 서비스"""

    # =========================================================================
    # 조회
    # =========================================================================

    def list_users(self, account_id: str) -> list[User]:
        """계정의 IAM 사용자 목록

        접근할 수 없는 계정은 경고 후 빈 리스트를 반환합니다.
        """
        key = USERS.account_key(account_id)
        cached = self._cached(key, User)
        if cached is not None:
            return cached

        try:
            session = self._session(account_id)
        except SessionError as e:
            logger.warning(f"계정 {account_id} 접근 불가, 사용자 조회 건너뜀: {e}")
            return []

        return self._store(key, _fetch_users(session))

    def list_all_users(self) -> list[UserWithAccount]:
        """접근 가능한 모든 계정의 사용자 (계정 정보 포함)"""
        cached = self._cached(USERS.aggregate, UserWithAccount)
        if cached is not None:
            return cached

        def collect(session, account_id, account_name, region):
            key = USERS.account_key(account_id)
            users = self._cached(key, User)
            if users is None:
                users = self._store(key, _fetch_users(session))
            return [UserWithAccount.from_user(u, account_id, account_name) for u in users]

        users = self._fan_out_accounts(collect, "list_all_users", service="iam")
        return self._store(USERS.aggregate, users)

    def get_user(self, account_id: str, username: str) -> User:
        """사용자 상세

        Raises:
            SessionError: 계정 접근 불가
            NotFoundError: 사용자 없음
        """
        key = USERS.entity_key(account_id, username)
        cached = self._cached_value(key, User)
        if cached is not None:
            return cached

        iam = get_client(self._session(account_id), "iam")
        raw = call(iam, "get_user", UserName=username)["User"]
        return self._store(key, _build_user(iam, raw))

    # =========================================================================
    # 액세스 키
    # =========================================================================

    def create_access_key(self, account_id: str, username: str) -> CreatedAccessKey:
        iam = get_client(self._session(account_id), "iam")
        key = call(iam, "create_access_key", UserName=username)["AccessKey"]
        self._invalidate(USERS.for_entity_write(account_id, username))
        logger.info(f"액세스 키 생성 [{account_id}/{username}]: {key['AccessKeyId']}")
        return _created_key(username, key)

    def delete_access_key(self, account_id: str, username: str, key_id: str) -> None:
        iam = get_client(self._session(account_id), "iam")
        call(iam, "delete_access_key", UserName=username, AccessKeyId=key_id)
        self._invalidate(USERS.for_entity_write(account_id, username))
        logger.info(f"액세스 키 삭제 [{account_id}/{username}]: {key_id}")

    def rotate_access_key(self, account_id: str, username: str, key_id: str) -> CreatedAccessKey:
        """새 키 생성 후 기존 키 삭제

        기존 키 삭제에 실패하면 새 키를 다시 삭제하고 에러를 올립니다.
        """
        iam = get_client(self._session(account_id), "iam")
        new_key = call(iam, "create_access_key", UserName=username)["AccessKey"]

        try:
            call(iam, "delete_access_key", UserName=username, AccessKeyId=key_id)
        except APICallError:
            try:
                call(iam, "delete_access_key", UserName=username, AccessKeyId=new_key["AccessKeyId"])
            except APICallError as rollback_error:
                logger.error(f"새 액세스 키 롤백 실패 [{username}/{new_key['AccessKeyId']}]: {rollback_error}")
            raise

        self._invalidate(USERS.for_entity_write(account_id, username))
        logger.info(f"액세스 키 교체 [{account_id}/{username}]: {key_id} → {new_key['AccessKeyId']}")
        return _created_key(username, new_key)

    # =========================================================================
    # 사용자/비밀번호
    # =========================================================================

    def delete_user(self, account_id: str, username: str) -> None:
        """사용자와 종속 리소스 전체 삭제

        중간 단계에서 실패해도 이미 삭제된 리소스가 있으므로 캐시는 항상 무효화합니다.
        """
        iam = get_client(self._session(account_id), "iam")
        try:
            delete_user_resources(iam, username)
        finally:
            self._invalidate(USERS.for_entity_write(account_id, username))
        logger.info(f"사용자 삭제 [{account_id}/{username}]")

    def delete_user_password(self, account_id: str, username: str) -> None:
        """콘솔 비밀번호(로그인 프로파일) 삭제

        Raises:
            NotFoundError: 콘솔 비밀번호가 없는 사용자
        """
        iam = get_client(self._session(account_id), "iam")
        try:
            call(iam, "delete_login_profile", UserName=username)
        except NotFoundError as e:
            raise NotFoundError(
                service="iam",
                operation="delete_login_profile",
                error_code=e.error_code,
                error_message=f"사용자 {username}에게 콘솔 비밀번호가 없습니다",
                cause=e,
            ) from e
        self._invalidate(USERS.for_entity_write(account_id, username))

    def rotate_user_password(self, account_id: str, username: str) -> PasswordRotation:
        """콘솔 비밀번호 재설정 (로그인 프로파일이 없으면 생성)"""
        iam = get_client(self._session(account_id), "iam")
        password = generate_password()

        if _has_login_profile(iam, username):
            call(iam, "update_login_profile", UserName=username, Password=password)
        else:
            call(iam, "create_login_profile", UserName=username, Password=password)

        self._invalidate(USERS.for_entity_write(account_id, username))
        logger.info(f"콘솔 비밀번호 재설정 [{account_id}/{username}]")
        return PasswordRotation(username=username, new_password=password)

    def delete_inactive_users(self, account_id: str, days: int | None = None) -> UserCleanupResult:
        """비활성 사용자 일괄 삭제

        생성된 지 days일이 지났고 그 기간 동안 콘솔/액세스 키 사용 기록이 없는
        사용자를 삭제합니다. 정리 전용 세션(900초)을 사용합니다.

        Args:
            account_id: 대상 계정 ID
            days: 비활성 판단 기간 (None이면 설정값)

        Returns:
            삭제된 사용자와 실패한 사용자
        """
        days = self.ctx.settings.INACTIVE_USER_DAYS if days is None else days
        if days < 1:
            raise ValidationError("days", days, ">= 1")

        session = self._session(account_id, CLEANUP)
        iam = get_client(session, "iam")
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)

        result = UserCleanupResult()
        for user in _fetch_users(session):
            if not is_inactive(user, cutoff):
                continue
            try:
                delete_user_resources(iam, user.username)
            except APICallError as e:
                logger.warning(f"비활성 사용자 삭제 실패 [{account_id}/{user.username}]: {e}")
                result.failed[user.username] = str(e)
            else:
                result.deleted.append(user.username)

        if result.deleted or result.failed:
            self._invalidate(USERS.for_account(account_id))
        logger.info(f"비활성 사용자 정리 [{account_id}]: 삭제 {len(result.deleted)}, 실패 {len(result.failed)}")
        return result


def _created_key(username: str, key: dict[str, Any]) -> CreatedAccessKey:
    return CreatedAccessKey(
        username=username,
        access_key_id=key["AccessKeyId"],
        secret_access_key=key["SecretAccessKey"],
        status=key.get("Status", ""),
        create_date=key.get("CreateDate"),
    )
