# core/services - 리소스 서비스
"""
리소스 서비스 모듈

계정/리전 팬아웃과 TTL 캐시 위에서 동작하는 리소스별 조회/쓰기 서비스입니다.
서비스는 AppContext를 통해 생성되며 직접 생성할 필요는 없습니다.

- accounts: 조직 계정
- users / roles: IAM 사용자/역할
- vpcs / nat_gateways / security_groups / public_ips: 네트워크
- ec2_instances / ebs_volumes / snapshots / s3_buckets / load_balancers: 컴퓨팅/스토리지
- sso: IAM Identity Center 사용자/그룹/계정 할당
- azure_apps / azure_rm: Azure 엔터프라이즈 앱, 구독/VM/스토리지 계정
- cache_admin: 캐시 관리

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = [
    "AccountService",
    "UserService",
    "RoleService",
    "VPCService",
    "NATGatewayService",
    "SecurityGroupService",
    "SnapshotService",
    "EC2InstanceService",
    "EBSVolumeService",
    "S3BucketService",
    "LoadBalancerService",
    "PublicIPService",
    "SSOService",
    "AzureAppService",
    "AzureRMService",
    "CacheAdminService",
]

_IMPORT_MAPPING = {
    "AccountService": ".accounts",
    "UserService": ".users",
    "RoleService": ".roles",
    "VPCService": ".vpcs",
    "NATGatewayService": ".nat_gateways",
    "SecurityGroupService": ".security_groups",
    "SnapshotService": ".snapshots",
    "EC2InstanceService": ".ec2_instances",
    "EBSVolumeService": ".ebs_volumes",
    "S3BucketService": ".s3_buckets",
    "LoadBalancerService": ".load_balancers",
    "PublicIPService": ".public_ips",
    "SSOService": ".sso",
    "AzureAppService": ".azure_apps",
    "AzureRMService": ".azure_rm",
    "CacheAdminService": ".cache_admin",
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        import importlib

        module = importlib.import_module(_IMPORT_MAPPING[name], __name__)
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
