"""
tests/conftest.py - pytest 공통 픽스처

AWS API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(app_context, mock_broker):
        # app_context: MagicMock 마스터 세션 + mock_broker로 만든 AppContext
        # mock_broker: resolve_session/can_access를 제어할 수 있는 브로커
        pass
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

    yield


# =============================================================================
# 설정 / 컨텍스트 픽스처
# =============================================================================


@pytest.fixture
def test_settings():
    """테스트용 설정 (작은 워커 수, 짧은 제한 시간)"""
    from core.config import Settings

    return Settings(
        AWS_REGION="us-east-1",
        MAX_WORKERS=4,
        REGION_WORKERS=2,
        UNIT_TIMEOUT_SECONDS=10,
        SNAPSHOT_REGIONS=("us-east-1",),
    )


@pytest.fixture
def mock_session():
    """boto3.Session 모킹"""
    session = MagicMock()
    session.region_name = "us-east-1"
    session.client.return_value = MagicMock()
    return session


@pytest.fixture
def mock_broker(mock_session):
    """모든 계정에 같은 세션을 돌려주는 브로커"""
    broker = MagicMock()
    broker.resolve_session.return_value = mock_session
    broker.can_access.return_value = True
    return broker


@pytest.fixture
def app_context(test_settings, mock_session, mock_broker):
    """MagicMock 세션/브로커로 만든 AppContext"""
    from core.context import AppContext

    return AppContext(test_settings, mock_session, broker=mock_broker)


@pytest.fixture
def azure_settings(test_settings):
    """Azure 서비스 주체가 설정된 테스트용 설정"""
    from dataclasses import replace

    return replace(
        test_settings,
        AZURE_TENANT_ID="tenant-1",
        AZURE_CLIENT_ID="client-1",
        AZURE_CLIENT_SECRET="secret",
    )


@pytest.fixture
def azure_context(azure_settings, mock_session, mock_broker):
    """Azure 자격증명이 있는 AppContext (HTTP 호출은 httpx_mock으로 모킹)"""
    from core.context import AppContext

    return AppContext(azure_settings, mock_session, broker=mock_broker)


@pytest.fixture
def seed_accounts():
    """계정 목록 캐시를 미리 채우는 헬퍼 (Organizations 호출 생략)"""

    def seed(ctx, *accounts):
        ctx.cache.set("accounts", list(accounts))

    return seed


@pytest.fixture
def client_error():
    """ClientError 생성 헬퍼 픽스처"""
    return create_mock_client_error


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_response(
    data: Dict[str, Any],
    next_token: Optional[str] = None,
) -> Dict[str, Any]:
    """페이지네이션 응답 생성 헬퍼"""
    response = data.copy()
    if next_token:
        response["NextToken"] = next_token
    return response


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation,
    )


# =============================================================================
# moto 통합 (선택적)
# =============================================================================

try:
    import moto

    @pytest.fixture
    def aws_credentials():
        """moto 사용 시 AWS 자격 증명 설정"""
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
        os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

    @pytest.fixture
    def moto_session(aws_credentials):
        """moto를 사용한 boto3 Session"""
        with moto.mock_aws():
            import boto3

            yield boto3.Session(region_name="us-east-1")

    @pytest.fixture
    def moto_context(test_settings, moto_session):
        """moto 세션을 모든 계정 세션으로 사용하는 AppContext"""
        from core.context import AppContext

        broker = MagicMock()
        broker.resolve_session.return_value = moto_session
        broker.can_access.return_value = True
        return AppContext(test_settings, moto_session, broker=broker)

except ImportError:
    # moto가 설치되지 않은 경우 더미 픽스처
    @pytest.fixture
    def moto_session():
        pytest.skip("moto not installed")

    @pytest.fixture
    def moto_context():
        pytest.skip("moto not installed")
