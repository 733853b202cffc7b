# core/auth/types.py
"""
core/auth/types.py - 교차 계정 인증 타입 정의

포함 항목:
    - Account: 조직 멤버 계정 (접근 가능 여부 포함)
    - TemporaryCredentials: AssumeRole로 받은 임시 자격증명
    - SessionProfile: AssumeRole 세션 이름/유효 시간 조합
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Account:
    """조직 멤버 계정

    accessible은 계정 목록을 만들 때마다 AssumeRole 시도로 계산됩니다.

    Attributes:
        id: AWS 계정 ID (12자리)
        name: 계정 이름
        accessible: 교차 계정 역할 위임 가능 여부
    """

    id: str
    name: str
    accessible: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "accessible": self.accessible}


@dataclass(frozen=True)
class TemporaryCredentials:
    """AssumeRole 임시 자격증명

    Attributes:
        access_key_id: 임시 액세스 키
        secret_access_key: 임시 시크릿 키
        session_token: 세션 토큰
        expires_at: 만료 시각
    """

    access_key_id: str
    secret_access_key: str
    session_token: str
    expires_at: datetime | None = None

    def __repr__(self) -> str:
        return f"TemporaryCredentials(access_key_id={self.access_key_id!r}, expires_at={self.expires_at!r})"


@dataclass(frozen=True)
class SessionProfile:
    """AssumeRole 호출 프로파일

    Attributes:
        session_name: RoleSessionName
        duration_seconds: DurationSeconds
    """

    session_name: str
    duration_seconds: int


# 대화형 조회 경로
INTERACTIVE = SessionProfile(session_name="IAMManager", duration_seconds=3600)

# 정리(일괄 삭제) 경로
CLEANUP = SessionProfile(session_name="iam-manager-cleanup", duration_seconds=900)
