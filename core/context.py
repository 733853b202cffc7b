"""
core/context.py - 애플리케이션 컨텍스트

캐시, 자격증명 브로커, 리전 조회기, 병렬 실행기, 설정을 한 객체로 묶어
서비스와 HTTP/CLI 표면에 명시적으로 전달합니다. 전역 상태는 없습니다.

Example:
    from core.context import AppContext

    ctx = AppContext.create()
    users = ctx.users.list_all_users()
"""

from __future__ import annotations

import logging
from functools import cached_property

import boto3

from core.auth.broker import CredentialBroker, create_master_session
from core.azure import AzureClient, AzureCredentials
from core.cache.ttl import TTLCache
from core.config import Settings
from core.parallel.executor import ParallelConfig, ParallelSessionExecutor, scaled_timeout
from core.region.data import REGION_NAMES
from core.region.resolver import RegionResolver
from core.services import (
    AccountService,
    AzureAppService,
    AzureRMService,
    CacheAdminService,
    EBSVolumeService,
    EC2InstanceService,
    LoadBalancerService,
    NATGatewayService,
    PublicIPService,
    RoleService,
    S3BucketService,
    SecurityGroupService,
    SnapshotService,
    SSOService,
    UserService,
    VPCService,
)

logger = logging.getLogger(__name__)


class AppContext:
    """애플리케이션 컨텍스트

    Attributes:
        settings: 애플리케이션 설정
        master_session: 관리 계정 세션
        cache: 공유 TTL 캐시
        broker: 교차 계정 자격증명 브로커
        regions: 계정별 활성 리전 조회기
        executor: 계정 단위 팬아웃 실행기
        region_executor: 계정 내 리전 단위 팬아웃 실행기
        nested_executor: 리전 팬아웃을 포함하는 계정 단위 실행기 (제한 시간을 리전 수만큼 확장)
        azure: Azure REST 클라이언트 (첫 사용 시 생성, 자격증명 미설정이면 ConfigError)
    """

    def __init__(
        self,
        settings: Settings,
        master_session: boto3.Session,
        cache: TTLCache | None = None,
        broker: CredentialBroker | None = None,
    ):
        self.settings = settings
        self.master_session = master_session
        self.cache = cache if cache is not None else TTLCache(settings.CACHE_TTL_SECONDS)
        self.broker = broker if broker is not None else CredentialBroker(master_session, settings.ROLE_NAME)
        self.regions = RegionResolver(self.cache, settings.REGION_CACHE_TTL_SECONDS)

        unit_timeout = settings.UNIT_TIMEOUT_SECONDS or None
        self.executor = ParallelSessionExecutor(ParallelConfig(settings.MAX_WORKERS, unit_timeout))
        self.region_executor = ParallelSessionExecutor(ParallelConfig(settings.REGION_WORKERS, unit_timeout))
        nested_timeout = scaled_timeout(unit_timeout, len(REGION_NAMES), settings.REGION_WORKERS)
        self.nested_executor = ParallelSessionExecutor(ParallelConfig(settings.MAX_WORKERS, nested_timeout))

    @classmethod
    def create(cls, settings: Settings | None = None, master_session: boto3.Session | None = None) -> AppContext:
        """환경변수 설정과 기본 자격증명 체인으로 컨텍스트 생성"""
        settings = settings or Settings.from_env()
        if master_session is None:
            master_session = create_master_session(settings.AWS_REGION, settings.AWS_PROFILE)
        logger.info(f"컨텍스트 생성: region={settings.AWS_REGION}, role={settings.ROLE_NAME}")
        return cls(settings, master_session)

    # =========================================================================
    # 서비스
    # =========================================================================

    @cached_property
    def accounts(self) -> AccountService:
        return AccountService(self)

    @cached_property
    def users(self) -> UserService:
        return UserService(self)

    @cached_property
    def roles(self) -> RoleService:
        return RoleService(self)

    @cached_property
    def vpcs(self) -> VPCService:
        return VPCService(self)

    @cached_property
    def nat_gateways(self) -> NATGatewayService:
        return NATGatewayService(self)

    @cached_property
    def security_groups(self) -> SecurityGroupService:
        return SecurityGroupService(self)

    @cached_property
    def snapshots(self) -> SnapshotService:
        return SnapshotService(self)

    @cached_property
    def ec2_instances(self) -> EC2InstanceService:
        return EC2InstanceService(self)

    @cached_property
    def ebs_volumes(self) -> EBSVolumeService:
        return EBSVolumeService(self)

    @cached_property
    def s3_buckets(self) -> S3BucketService:
        return S3BucketService(self)

    @cached_property
    def load_balancers(self) -> LoadBalancerService:
        return LoadBalancerService(self)

    @cached_property
    def public_ips(self) -> PublicIPService:
        return PublicIPService(self)

    @cached_property
    def cache_admin(self) -> CacheAdminService:
        return CacheAdminService(self)

    @cached_property
    def sso(self) -> SSOService:
        return SSOService(self)

    # =========================================================================
    # Azure
    # =========================================================================

    @cached_property
    def azure(self) -> AzureClient:
        """Azure REST 클라이언트

        Raises:
            ConfigError: Azure 자격증명 미설정 (캐시되지 않으므로 설정 후 재시도 가능)
        """
        return AzureClient(AzureCredentials.from_settings(self.settings))

    @cached_property
    def azure_apps(self) -> AzureAppService:
        return AzureAppService(self)

    @cached_property
    def azure_rm(self) -> AzureRMService:
        return AzureRMService(self)
