"""
core/auth - 교차 계정 인증

- CredentialBroker: 마스터 세션에서 멤버 계정 역할 위임
- Account / TemporaryCredentials / SessionProfile: 인증 타입
- INTERACTIVE / CLEANUP: AssumeRole 프로파일 (3600초 / 900초)
"""

from .broker import CredentialBroker, build_external_id, build_role_arn, create_master_session
from .types import CLEANUP, INTERACTIVE, Account, SessionProfile, TemporaryCredentials

__all__: list[str] = [
    "CredentialBroker",
    "create_master_session",
    "build_role_arn",
    "build_external_id",
    "Account",
    "TemporaryCredentials",
    "SessionProfile",
    "INTERACTIVE",
    "CLEANUP",
]
