# core/auth/broker.py
"""
core/auth/broker.py - 교차 계정 세션 브로커

마스터 계정 세션을 신뢰 루트로 삼아 멤버 계정의 교차 계정 역할을 위임(AssumeRole)하고,
임시 자격증명으로 만든 boto3 Session을 반환합니다.

역할/외부 ID 규약:
    RoleArn    = arn:aws:iam::<account_id>:role/<role_name>
    ExternalId = <account_id>-iam-manager

브로커 자체는 재시도하지 않습니다. 호출자가 재시도하거나 해당 작업 단위를 실패로 기록합니다.

사용 예시:
    broker = CredentialBroker(master_session, role_name="IAMManagerCrossAccountRole")

    session = broker.resolve_session("111111111111")
    iam = session.client("iam")

    # 정리 경로 (900초 세션)
    session = broker.resolve_session("111111111111", profile=CLEANUP)
"""

from __future__ import annotations

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import APICallError, SessionError
from core.parallel.client import get_client

from .types import INTERACTIVE, SessionProfile, TemporaryCredentials

logger = logging.getLogger(__name__)

EXTERNAL_ID_SUFFIX = "-iam-manager"


def build_role_arn(account_id: str, role_name: str) -> str:
    """교차 계정 역할 ARN"""
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def build_external_id(account_id: str) -> str:
    """신뢰 정책과 일치해야 하는 외부 ID"""
    return f"{account_id}{EXTERNAL_ID_SUFFIX}"


def create_master_session(region: str, profile_name: str | None = None) -> boto3.Session:
    """마스터 계정 세션 생성

    AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY 환경변수가 있으면 boto3가 그대로 사용하고,
    없으면 프로파일 또는 기본 자격증명 체인을 사용합니다.
    """
    if profile_name:
        return boto3.Session(profile_name=profile_name, region_name=region)
    return boto3.Session(region_name=region)


class CredentialBroker:
    """교차 계정 세션 브로커

    Attributes:
        master_session: 마스터 계정 세션
        role_name: 멤버 계정에 배포된 역할 이름
    """

    def __init__(self, master_session: boto3.Session, role_name: str):
        self.master_session = master_session
        self.role_name = role_name

    def assume(self, account_id: str, profile: SessionProfile = INTERACTIVE) -> TemporaryCredentials:
        """멤버 계정 역할 위임

        Args:
            account_id: 대상 계정 ID
            profile: 세션 이름/유효 시간

        Returns:
            임시 자격증명

        Raises:
            SessionError: AssumeRole 실패 (원인 APICallError 포함)
        """
        sts = get_client(self.master_session, "sts")
        try:
            response = sts.assume_role(
                RoleArn=build_role_arn(account_id, self.role_name),
                RoleSessionName=profile.session_name,
                DurationSeconds=profile.duration_seconds,
                ExternalId=build_external_id(account_id),
            )
        except ClientError as e:
            cause = APICallError.from_client_error("sts", "assume_role", e)
            raise SessionError(account_id, "역할 위임 실패", cause=cause) from e
        except BotoCoreError as e:
            raise SessionError(account_id, "역할 위임 실패", cause=e) from e

        credentials = response["Credentials"]
        return TemporaryCredentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expires_at=credentials.get("Expiration"),
        )

    def resolve_session(self, account_id: str, profile: SessionProfile = INTERACTIVE) -> boto3.Session:
        """계정 세션 획득

        Args:
            account_id: 대상 계정 ID (빈 문자열이면 마스터 세션 그대로 반환)
            profile: 세션 이름/유효 시간

        Returns:
            마스터 세션과 같은 리전의 boto3 Session

        Raises:
            SessionError: AssumeRole 실패
        """
        if not account_id:
            return self.master_session

        credentials = self.assume(account_id, profile)
        return boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
            region_name=self.master_session.region_name,
        )

    def can_access(self, account_id: str) -> bool:
        """역할 위임 가능 여부 확인 (실패는 경고 로그 후 False)"""
        try:
            self.resolve_session(account_id)
        except SessionError as e:
            logger.warning(f"계정 {account_id} 접근 불가: {e}")
            return False
        return True
