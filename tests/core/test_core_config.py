"""
tests/core/test_core_config.py - core/config.py 테스트
"""

import logging
from unittest.mock import patch

import pytest

from core.config import (
    DEFAULT_ROLE_NAME,
    DEFAULT_SSO_REGION,
    LogConfig,
    Settings,
    get_default_profile,
    get_default_region,
    get_env_bool,
    get_env_int,
    get_env_list,
    get_version,
)
from core.region.data import SNAPSHOT_REGIONS


class TestSettings:
    """Settings 데이터클래스 테스트"""

    def test_settings_is_frozen(self):
        """설정이 불변인지 확인"""
        settings = Settings()
        with pytest.raises(Exception):  # FrozenInstanceError
            settings.PORT = 9000

    def test_default_values(self):
        """기본값 확인"""
        settings = Settings()

        assert settings.PORT == 8080
        assert settings.ROLE_NAME == DEFAULT_ROLE_NAME
        assert settings.CACHE_TTL_SECONDS == 300
        assert settings.REGION_CACHE_TTL_SECONDS == 3600
        assert settings.MAX_WORKERS == 20
        assert settings.INACTIVE_USER_DAYS == 90
        assert settings.SNAPSHOT_REGIONS == SNAPSHOT_REGIONS

    def test_from_env(self):
        """환경변수에서 로드"""
        env = {
            "PORT": "9090",
            "IAM_ORG_ROLE_NAME": "CustomRole",
            "CACHE_TTL_SECONDS": "60",
            "FANOUT_MAX_WORKERS": "8",
            "SNAPSHOT_REGIONS": "us-east-1, eu-west-1",
            "DEBUG": "true",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = Settings.from_env()

        assert settings.PORT == 9090
        assert settings.ROLE_NAME == "CustomRole"
        assert settings.CACHE_TTL_SECONDS == 60
        assert settings.MAX_WORKERS == 8
        assert settings.SNAPSHOT_REGIONS == ("us-east-1", "eu-west-1")
        assert settings.DEBUG is True

    def test_empty_role_name_falls_back(self):
        """빈 역할 이름은 기본값 사용"""
        with patch.dict("os.environ", {"IAM_ORG_ROLE_NAME": ""}, clear=True):
            assert Settings.from_env().ROLE_NAME == DEFAULT_ROLE_NAME

    def test_sso_and_azure_from_env(self):
        """SSO 리전 / Azure 서비스 주체 환경변수"""
        env = {
            "AWS_SSO_REGION": "ap-northeast-2",
            "AZURE_TENANT_ID": "tenant-1",
            "AZURE_CLIENT_ID": "client-1",
            "AZURE_CLIENT_SECRET": "s3cret",
            "AZURE_SUBSCRIPTION_ID": "sub-1",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = Settings.from_env()

        assert settings.SSO_REGION == "ap-northeast-2"
        assert settings.AZURE_SUBSCRIPTION_ID == "sub-1"
        assert settings.missing_azure_settings() == []
        assert "s3cret" not in repr(settings)

    def test_missing_azure_settings(self):
        settings = Settings(AZURE_TENANT_ID="tenant-1")

        assert settings.SSO_REGION == DEFAULT_SSO_REGION
        assert settings.missing_azure_settings() == ["AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET"]


class TestEnvHelpers:
    """환경변수 헬퍼 테스트"""

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("1", True), ("YES", True), ("off", False), ("0", False), ("maybe", False)],
    )
    def test_get_env_bool(self, value, expected):
        with patch.dict("os.environ", {"FLAG": value}):
            assert get_env_bool("FLAG") is expected

    def test_get_env_bool_missing(self):
        with patch.dict("os.environ", {}, clear=True):
            assert get_env_bool("FLAG", True) is True

    def test_get_env_int_invalid_uses_default(self):
        """정수가 아니면 기본값"""
        with patch.dict("os.environ", {"NUM": "abc"}):
            assert get_env_int("NUM", 7) == 7

    def test_get_env_int(self):
        with patch.dict("os.environ", {"NUM": "42"}):
            assert get_env_int("NUM", 7) == 42

    def test_get_env_list(self):
        with patch.dict("os.environ", {"ITEMS": "a, b,,c"}):
            assert get_env_list("ITEMS") == ("a", "b", "c")

    def test_get_env_list_default(self):
        with patch.dict("os.environ", {}, clear=True):
            assert get_env_list("ITEMS", ("x",)) == ("x",)


class TestDefaults:
    """기본 리전/프로파일 테스트"""

    def test_region_priority(self):
        with patch.dict("os.environ", {"AWS_REGION": "eu-west-1", "AWS_DEFAULT_REGION": "us-west-2"}, clear=True):
            assert get_default_region() == "eu-west-1"

    def test_region_fallback(self):
        with patch.dict("os.environ", {}, clear=True):
            assert get_default_region() == "us-east-1"

    def test_profile_none(self):
        with patch.dict("os.environ", {}, clear=True):
            assert get_default_profile() is None


class TestVersionAndLogging:
    """버전/로깅 설정 테스트"""

    def test_get_version(self):
        assert get_version() == "1.0.0"

    def test_log_config_from_env(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}, clear=True):
            config = LogConfig.from_env()

        assert config.level == "DEBUG"
        assert "%(levelname)s" in config.format

    def test_apply_uses_basic_config(self):
        with patch("core.config.logging.basicConfig") as basic_config:
            LogConfig(level="WARNING").apply()

        assert basic_config.call_args.kwargs["level"] == logging.WARNING
