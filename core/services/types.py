"""
core/services/types.py - 리소스 데이터 클래스

서비스가 반환하고 캐시에 저장하는 리소스 표현입니다.
to_dict()는 JSON 응답용 딕셔너리를 만들며 datetime은 ISO 8601 문자열로 변환됩니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Serializable):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class Serializable:
    """dataclass → JSON 딕셔너리 변환 믹스인"""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


@dataclass
class Tag(Serializable):
    key: str
    value: str


def parse_tags(raw: list[dict[str, Any]] | None) -> list[Tag]:
    """AWS Tags 응답 → Tag 목록"""
    return [Tag(key=t.get("Key", ""), value=t.get("Value", "")) for t in raw or []]


def name_tag(raw: list[dict[str, Any]] | None) -> str:
    """Name 태그 값 (없으면 빈 문자열)"""
    for tag in raw or []:
        if tag.get("Key") == "Name":
            return tag.get("Value", "")
    return ""


# =============================================================================
# IAM 사용자
# =============================================================================


@dataclass
class AccessKey(Serializable):
    access_key_id: str
    status: str
    create_date: datetime | None = None
    last_used_date: datetime | None = None
    last_used_service: str = ""
    last_used_region: str = ""


@dataclass
class User(Serializable):
    """IAM 사용자

    Attributes:
        username: 사용자 이름
        user_id: 사용자 ID
        arn: ARN
        create_date: 생성 시각
        password_set: 콘솔 비밀번호(로그인 프로파일) 존재 여부
        password_last_used: 콘솔 마지막 로그인 시각
        access_keys: 액세스 키 목록
    """

    username: str
    user_id: str
    arn: str
    create_date: datetime | None = None
    password_set: bool = False
    password_last_used: datetime | None = None
    access_keys: list[AccessKey] = field(default_factory=list)


@dataclass
class UserWithAccount(User):
    """계정 정보가 포함된 IAM 사용자 (전체 계정 집계용)"""

    account_id: str = ""
    account_name: str = ""

    @classmethod
    def from_user(cls, user: User, account_id: str, account_name: str) -> UserWithAccount:
        values = {f.name: getattr(user, f.name) for f in fields(User)}
        return cls(**values, account_id=account_id, account_name=account_name)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["accountId"] = data.pop("account_id")
        data["accountName"] = data.pop("account_name")
        return data


@dataclass
class CreatedAccessKey(Serializable):
    """새로 발급된 액세스 키 (시크릿 포함, 캐시하지 않음)"""

    username: str
    access_key_id: str
    secret_access_key: str
    status: str
    create_date: datetime | None = None

    def __repr__(self) -> str:
        return f"CreatedAccessKey(username={self.username!r}, access_key_id={self.access_key_id!r})"


@dataclass
class PasswordRotation(Serializable):
    username: str
    new_password: str
    message: str = "User password rotated successfully"

    def __repr__(self) -> str:
        return f"PasswordRotation(username={self.username!r})"


@dataclass
class UserCleanupResult(Serializable):
    """비활성 사용자 정리 결과

    Attributes:
        deleted: 삭제된 사용자 이름
        failed: 삭제 실패 사용자 이름 → 에러 메시지
    """

    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


# =============================================================================
# IAM 역할
# =============================================================================


@dataclass
class AttachedPolicy(Serializable):
    policy_arn: str
    policy_name: str


@dataclass
class InlinePolicy(Serializable):
    policy_name: str
    policy_document: dict[str, Any] | str


@dataclass
class Role(Serializable):
    role_name: str
    role_id: str
    arn: str
    account_id: str
    account_name: str
    create_date: datetime | None = None
    path: str = "/"
    description: str = ""
    max_session_duration: int | None = None
    assume_role_policy_document: dict[str, Any] | str = ""
    attached_managed_policies: list[AttachedPolicy] = field(default_factory=list)
    inline_policies: list[InlinePolicy] = field(default_factory=list)
    instance_profiles: list[str] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    last_used_date: datetime | None = None
    last_used_region: str = ""


# =============================================================================
# 네트워크
# =============================================================================


@dataclass
class VPC(Serializable):
    vpc_id: str
    name: str
    account_id: str
    account_name: str
    region: str
    cidr_block: str = ""
    state: str = ""
    is_default: bool = False
    instance_tenancy: str = ""
    dhcp_options_id: str = ""
    subnet_count: int = 0
    internet_gateway: str = ""
    nat_gateway_count: int = 0
    has_flow_logs: bool = False
    tags: list[Tag] = field(default_factory=list)


@dataclass
class NATGateway(Serializable):
    nat_gateway_id: str
    name: str
    account_id: str
    account_name: str
    region: str
    vpc_id: str = ""
    subnet_id: str = ""
    state: str = ""
    connectivity_type: str = ""
    public_ip: str = ""
    private_ip: str = ""
    create_time: datetime | None = None
    tags: list[Tag] = field(default_factory=list)


@dataclass
class SecurityGroupRule(Serializable):
    ip_protocol: str
    from_port: int | None = None
    to_port: int | None = None
    cidr_ipv4: str = ""
    cidr_ipv6: str = ""
    group_id: str = ""
    group_owner: str = ""
    description: str = ""


@dataclass
class OpenPortInfo(Serializable):
    protocol: str
    port_range: str
    source: str
    description: str


@dataclass
class SecurityGroupUsage(Serializable):
    attached_to_instances: list[str] = field(default_factory=list)
    attached_to_network_interfaces: list[str] = field(default_factory=list)
    referenced_by_security_groups: list[str] = field(default_factory=list)

    @property
    def total_attachments(self) -> int:
        return (
            len(self.attached_to_instances)
            + len(self.attached_to_network_interfaces)
            + len(self.referenced_by_security_groups)
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["total_attachments"] = self.total_attachments
        return data


@dataclass
class SecurityGroup(Serializable):
    group_id: str
    group_name: str
    description: str
    account_id: str
    account_name: str
    region: str
    vpc_id: str = ""
    ingress_rules: list[SecurityGroupRule] = field(default_factory=list)
    egress_rules: list[SecurityGroupRule] = field(default_factory=list)
    open_ports_info: list[OpenPortInfo] = field(default_factory=list)
    usage_info: SecurityGroupUsage = field(default_factory=SecurityGroupUsage)

    @property
    def is_default(self) -> bool:
        return self.group_name == "default"

    @property
    def has_open_ports(self) -> bool:
        return bool(self.open_ports_info)

    @property
    def is_unused(self) -> bool:
        return self.usage_info.total_attachments == 0

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "is_default": self.is_default,
                "has_open_ports": self.has_open_ports,
                "is_unused": self.is_unused,
            }
        )
        return data


@dataclass
class LoadBalancer(Serializable):
    load_balancer_name: str
    type: str
    account_id: str
    account_name: str
    region: str
    load_balancer_arn: str = ""
    dns_name: str = ""
    scheme: str = ""
    state: str = ""
    vpc_id: str = ""
    created_time: datetime | None = None
    target_count: int = 0
    healthy_target_count: int = 0
    listener_count: int = 0
    is_unused: bool = False


@dataclass
class PublicIP(Serializable):
    ip_address: str
    account_id: str
    account_name: str
    region: str
    resource_type: str
    resource_id: str
    resource_name: str = ""
    state: str = ""


# =============================================================================
# 컴퓨팅/스토리지
# =============================================================================


@dataclass
class Snapshot(Serializable):
    snapshot_id: str
    account_id: str
    account_name: str
    region: str
    volume_id: str = ""
    volume_size: int = 0
    description: str = ""
    state: str = ""
    progress: str = ""
    start_time: datetime | None = None
    owner_id: str = ""
    encrypted: bool = False
    tags: list[Tag] = field(default_factory=list)


@dataclass
class EC2Instance(Serializable):
    instance_id: str
    name: str
    account_id: str
    account_name: str
    region: str
    instance_type: str = ""
    state: str = ""
    launch_time: datetime | None = None
    public_ip: str = ""
    private_ip: str = ""
    monthly_cost: float = 0.0
    tags: list[Tag] = field(default_factory=list)


@dataclass
class VolumeAttachment(Serializable):
    instance_id: str
    device: str
    state: str
    attach_time: datetime | None = None


@dataclass
class EBSVolume(Serializable):
    volume_id: str
    name: str
    account_id: str
    account_name: str
    region: str
    size: int = 0
    volume_type: str = ""
    state: str = ""
    create_time: datetime | None = None
    availability_zone: str = ""
    encrypted: bool = False
    iops: int | None = None
    throughput: int | None = None
    snapshot_id: str = ""
    attachments: list[VolumeAttachment] = field(default_factory=list)
    monthly_cost: float = 0.0
    tags: list[Tag] = field(default_factory=list)


@dataclass
class S3Bucket(Serializable):
    name: str
    account_id: str
    account_name: str
    region: str
    creation_date: datetime | None = None
    versioning: str = ""
    encrypted: bool = False
    public_access_blocked: bool = False
    has_lifecycle_policy: bool = False
    has_logging: bool = False
    tags: list[Tag] = field(default_factory=list)

    @property
    def is_public(self) -> bool:
        return not self.public_access_blocked

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["is_public"] = self.is_public
        return data


# =============================================================================
# IAM Identity Center (SSO)
# =============================================================================


@dataclass
class SSOInstance(Serializable):
    instance_arn: str
    identity_store_id: str


@dataclass
class SSOUser(Serializable):
    user_id: str
    user_name: str
    display_name: str = ""
    emails: list[str] = field(default_factory=list)
    active: bool = True

    @property
    def principal_name(self) -> str:
        """표시 이름 (없으면 사용자 이름)"""
        return self.display_name or self.user_name


@dataclass
class SSOGroup(Serializable):
    group_id: str
    display_name: str
    description: str = ""


@dataclass
class SSOGroupMember(Serializable):
    member_id: str
    member_type: str = "USER"
    user_name: str = ""
    display_name: str = ""


@dataclass
class SSOAccountAssignment(Serializable):
    """계정 할당 (주체 × 권한 세트 × 계정)"""

    account_id: str
    account_name: str
    principal_id: str
    principal_type: str
    principal_name: str
    permission_set_arn: str
    permission_set_name: str


@dataclass
class SSOUserWithAssignments(SSOUser):
    account_assignments: list[SSOAccountAssignment] = field(default_factory=list)
    group_memberships: list[str] = field(default_factory=list)


@dataclass
class SSOGroupWithAssignments(SSOGroup):
    account_assignments: list[SSOAccountAssignment] = field(default_factory=list)
    member_count: int = 0
    members: list[SSOGroupMember] = field(default_factory=list)


@dataclass
class SSOAccountWithAssignments(Serializable):
    account_id: str
    account_name: str
    assignments: list[SSOAccountAssignment] = field(default_factory=list)


# =============================================================================
# Azure
# =============================================================================
# Azure 응답의 시각은 ISO 8601 문자열 그대로 보관합니다.


def resource_group_from_id(resource_id: str) -> str:
    """ARM 리소스 ID에서 리소스 그룹 이름 추출

    Example:
        resource_group_from_id("/subscriptions/s/resourceGroups/rg-app/providers/...")  # "rg-app"
    """
    parts = resource_id.split("/")
    for i, part in enumerate(parts[:-1]):
        if part.lower() == "resourcegroups":
            return parts[i + 1]
    return ""


@dataclass
class AzureEnterpriseApplication(Serializable):
    id: str
    app_id: str
    display_name: str
    created_datetime: str = ""
    account_enabled: bool = False
    app_owner_org_id: str = ""
    app_role_assignment_required: bool = False
    service_principal_type: str = ""
    tags: list[str] = field(default_factory=list)
    homepage: str = ""
    reply_urls: list[str] = field(default_factory=list)


@dataclass
class AzureSubscription(Serializable):
    subscription_id: str
    display_name: str = ""
    state: str = ""
    tenant_id: str = ""
    id: str = ""


@dataclass
class AzureVM(Serializable):
    id: str
    name: str
    resource_group: str
    subscription_id: str
    location: str = ""
    vm_size: str = ""
    provisioning_state: str = ""
    os_type: str = ""
    status: str = ""
    created_time: str = ""


@dataclass
class AzureStorageAccount(Serializable):
    id: str
    name: str
    resource_group: str
    subscription_id: str
    location: str = ""
    kind: str = ""
    sku: str = ""
    created_time: str = ""
    primary_endpoints: dict[str, str] = field(default_factory=dict)
