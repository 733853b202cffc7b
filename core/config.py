"""
core/config.py - 중앙 설정 관리

환경변수 기반의 애플리케이션 설정을 정의합니다.
설정 객체는 불변(frozen)이며, 시작 시점에 한 번 생성되어 AppContext에 주입됩니다.

주요 구성 요소:
- Settings: 애플리케이션 설정 (포트, 리전, 역할 이름, 캐시 TTL, 병렬 처리)
- LogConfig: 로깅 설정
- get_env_bool / get_env_int / get_env_list: 환경변수 변환 헬퍼

Example:
    from core.config import Settings

    settings = Settings.from_env()
    print(settings.PORT, settings.ROLE_NAME)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from core.region.data import SNAPSHOT_REGIONS

logger = logging.getLogger(__name__)

# =============================================================================
# 기본값
# =============================================================================

DEFAULT_REGION = "us-east-1"
DEFAULT_ROLE_NAME = "IAMManagerCrossAccountRole"
DEFAULT_PORT = 8080
DEFAULT_SSO_REGION = "eu-west-2"


# =============================================================================
# 환경변수 헬퍼
# =============================================================================


def get_env_bool(name: str, default: bool = False) -> bool:
    """환경변수를 bool로 변환

    Args:
        name: 환경변수 이름
        default: 값이 없거나 해석할 수 없을 때의 기본값

    Returns:
        변환된 bool 값
    """
    value = os.environ.get(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(name: str, default: int) -> int:
    """환경변수를 int로 변환 (실패 시 기본값)"""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"환경변수 {name} 값이 정수가 아닙니다: {value!r} (기본값 {default} 사용)")
        return default


def get_env_list(name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
    """쉼표 구분 환경변수를 튜플로 변환"""
    value = os.environ.get(name)
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def get_default_region() -> str:
    """기본 리전 반환 (AWS_REGION > AWS_DEFAULT_REGION > us-east-1)"""
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION


def get_default_profile() -> str | None:
    """기본 AWS 프로파일 반환 (AWS_PROFILE > AWS_DEFAULT_PROFILE)"""
    return os.environ.get("AWS_PROFILE") or os.environ.get("AWS_DEFAULT_PROFILE") or None


def get_project_root() -> Path:
    """프로젝트 루트 경로"""
    return Path(__file__).resolve().parent.parent


@lru_cache(maxsize=1)
def get_version() -> str:
    """version.txt에서 버전 문자열 로드"""
    version_file = get_project_root() / "version.txt"
    try:
        return version_file.read_text(encoding="utf-8").strip() or "0.0.0"
    except OSError:
        return "0.0.0"


# =============================================================================
# 설정
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """애플리케이션 설정

    Attributes:
        HOST: HTTP 서버 바인드 주소
        PORT: HTTP 서버 포트
        AWS_REGION: 마스터 세션 리전
        AWS_PROFILE: 마스터 세션 프로파일 (None이면 기본 자격증명 체인)
        ROLE_NAME: 멤버 계정에 배포된 교차 계정 역할 이름
        CACHE_TTL_SECONDS: 리소스 목록 캐시 TTL
        REGION_CACHE_TTL_SECONDS: 리전 목록 캐시 TTL (0이면 캐시 안 함)
        MAX_WORKERS: 계정 단위 병렬 워커 수
        REGION_WORKERS: 계정 내 리전 단위 병렬 워커 수
        UNIT_TIMEOUT_SECONDS: 작업 단위 제한 시간 (0이면 제한 없음)
        INACTIVE_USER_DAYS: 비활성 사용자 판단 기준 일수
        SNAPSHOT_REGIONS: 스냅샷 조회 대상 리전
        SSO_REGION: IAM Identity Center 리전
        AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: Azure 서비스 주체 자격증명
        AZURE_SUBSCRIPTION_ID: 구독 목록이 비었거나 실패할 때 사용할 구독
        DEBUG: Flask 디버그 모드
    """

    HOST: str = "0.0.0.0"
    PORT: int = DEFAULT_PORT
    AWS_REGION: str = DEFAULT_REGION
    AWS_PROFILE: str | None = None
    ROLE_NAME: str = DEFAULT_ROLE_NAME

    CACHE_TTL_SECONDS: int = 300
    REGION_CACHE_TTL_SECONDS: int = 3600

    MAX_WORKERS: int = 20
    REGION_WORKERS: int = 10
    UNIT_TIMEOUT_SECONDS: int = 120

    INACTIVE_USER_DAYS: int = 90
    SNAPSHOT_REGIONS: tuple[str, ...] = SNAPSHOT_REGIONS

    SSO_REGION: str = DEFAULT_SSO_REGION

    AZURE_TENANT_ID: str = ""
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = field(default="", repr=False)
    AZURE_SUBSCRIPTION_ID: str = ""

    DEBUG: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """환경변수에서 설정 로드"""
        return cls(
            HOST=os.environ.get("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", DEFAULT_PORT),
            AWS_REGION=get_default_region(),
            AWS_PROFILE=get_default_profile(),
            ROLE_NAME=os.environ.get("IAM_ORG_ROLE_NAME") or DEFAULT_ROLE_NAME,
            CACHE_TTL_SECONDS=get_env_int("CACHE_TTL_SECONDS", 300),
            REGION_CACHE_TTL_SECONDS=get_env_int("REGION_CACHE_TTL_SECONDS", 3600),
            MAX_WORKERS=get_env_int("FANOUT_MAX_WORKERS", 20),
            REGION_WORKERS=get_env_int("FANOUT_REGION_WORKERS", 10),
            UNIT_TIMEOUT_SECONDS=get_env_int("FANOUT_UNIT_TIMEOUT_SECONDS", 120),
            INACTIVE_USER_DAYS=get_env_int("INACTIVE_USER_DAYS", 90),
            SNAPSHOT_REGIONS=get_env_list("SNAPSHOT_REGIONS", SNAPSHOT_REGIONS),
            SSO_REGION=os.environ.get("AWS_SSO_REGION") or DEFAULT_SSO_REGION,
            AZURE_TENANT_ID=os.environ.get("AZURE_TENANT_ID", ""),
            AZURE_CLIENT_ID=os.environ.get("AZURE_CLIENT_ID", ""),
            AZURE_CLIENT_SECRET=os.environ.get("AZURE_CLIENT_SECRET", ""),
            AZURE_SUBSCRIPTION_ID=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            DEBUG=get_env_bool("DEBUG", False),
        )

    def missing_azure_settings(self) -> list[str]:
        """비어 있는 Azure 필수 설정 이름"""
        required = {
            "AZURE_TENANT_ID": self.AZURE_TENANT_ID,
            "AZURE_CLIENT_ID": self.AZURE_CLIENT_ID,
            "AZURE_CLIENT_SECRET": self.AZURE_CLIENT_SECRET,
        }
        return [name for name, value in required.items() if not value]


@dataclass
class LogConfig:
    """로깅 설정

    Attributes:
        level: 로그 레벨 이름
        format: 로그 포맷 문자열
        date_format: 날짜 포맷
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_env(cls) -> LogConfig:
        """LOG_LEVEL / LOG_FORMAT 환경변수에서 로드"""
        default = cls()
        return cls(
            level=os.environ.get("LOG_LEVEL", default.level).upper(),
            format=os.environ.get("LOG_FORMAT", default.format),
        )

    def apply(self) -> None:
        """루트 로거에 설정 적용"""
        logging.basicConfig(
            level=getattr(logging, self.level, logging.INFO),
            format=self.format,
            datefmt=self.date_format,
        )
