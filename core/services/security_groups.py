"""
core/services/security_groups.py - 보안 그룹 조회/분석/삭제

보안 그룹 규칙을 IPv4/IPv6/그룹 참조 단위로 펼치고,
인터넷(0.0.0.0/0, ::/0)에 열린 인바운드 포트와 사용처(인스턴스, ENI, 참조 그룹)를 분석합니다.

캐시 키:
    - security-groups                                     전체 계정 집계
    - security-groups:<account_id>                        계정별 목록
    - security-group:<account_id>:<region>:<group_id>     개별 보안 그룹
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import SECURITY_GROUPS
from core.exceptions import APICallError, ConflictError, NotFoundError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import OpenPortInfo, SecurityGroup, SecurityGroupRule, SecurityGroupUsage

logger = logging.getLogger(__name__)

INTERNET_SOURCES = {
    "0.0.0.0/0": "0.0.0.0/0 (IPv4 Internet)",
    "::/0": "::/0 (IPv6 Internet)",
}

PROTOCOL_DESCRIPTIONS = {
    "tcp": "TCP traffic",
    "udp": "UDP traffic",
    "icmp": "ICMP traffic",
    "-1": "All traffic",
}


# =============================================================================
# 규칙 분석
# =============================================================================


def expand_permission(permission: dict[str, Any]) -> list[SecurityGroupRule]:
    """IpPermission 하나를 소스 단위 규칙 목록으로 펼침

    소스(IPv4/IPv6/그룹 참조)가 하나도 없으면 소스 없는 규칙 하나를 반환합니다.
    """
    base = {
        "ip_protocol": permission.get("IpProtocol", ""),
        "from_port": permission.get("FromPort"),
        "to_port": permission.get("ToPort"),
    }
    rules = [
        SecurityGroupRule(**base, cidr_ipv4=r.get("CidrIp", ""), description=r.get("Description", ""))
        for r in permission.get("IpRanges", [])
    ]
    rules.extend(
        SecurityGroupRule(**base, cidr_ipv6=r.get("CidrIpv6", ""), description=r.get("Description", ""))
        for r in permission.get("Ipv6Ranges", [])
    )
    rules.extend(
        SecurityGroupRule(
            **base,
            group_id=pair.get("GroupId", ""),
            group_owner=pair.get("UserId", ""),
            description=pair.get("Description", ""),
        )
        for pair in permission.get("UserIdGroupPairs", [])
    )
    if not rules:
        rules.append(SecurityGroupRule(**base))
    return rules


def format_port_range(rule: SecurityGroupRule) -> str:
    if rule.ip_protocol == "-1":
        return "All ports"
    if rule.from_port == rule.to_port:
        return str(rule.from_port)
    return f"{rule.from_port}-{rule.to_port}"


def find_open_ports(ingress_rules: list[SecurityGroupRule]) -> list[OpenPortInfo]:
    """인터넷 전체에 열린 인바운드 규칙"""
    open_ports = []
    for rule in ingress_rules:
        source = INTERNET_SOURCES.get(rule.cidr_ipv4) or INTERNET_SOURCES.get(rule.cidr_ipv6)
        if source is None:
            continue
        open_ports.append(
            OpenPortInfo(
                protocol=rule.ip_protocol,
                port_range=format_port_range(rule),
                source=source,
                description=PROTOCOL_DESCRIPTIONS.get(rule.ip_protocol, f"Protocol {rule.ip_protocol}"),
            )
        )
    return open_ports


def _referencing_groups(group_id: str, all_groups: list[dict[str, Any]]) -> list[str]:
    """group_id를 인바운드/아웃바운드 규칙에서 참조하는 다른 그룹"""
    referencing = []
    for other in all_groups:
        other_id = other.get("GroupId", "")
        if other_id == group_id:
            continue
        permissions = [*other.get("IpPermissions", []), *other.get("IpPermissionsEgress", [])]
        if any(pair.get("GroupId") == group_id for p in permissions for pair in p.get("UserIdGroupPairs", [])):
            referencing.append(other_id)
    return referencing


def check_usage(ec2: Any, group_id: str, all_groups: list[dict[str, Any]]) -> SecurityGroupUsage:
    """보안 그룹 사용처 (인스턴스, ENI, 참조 그룹)

    Raises:
        APICallError: 인스턴스/ENI 조회 실패
    """
    group_filter = [{"Name": "instance.group-id", "Values": [group_id]}]
    reservations = paginate(ec2, "describe_instances", "Reservations", Filters=group_filter)
    instances = [i["InstanceId"] for r in reservations for i in r.get("Instances", []) if i.get("InstanceId")]

    enis = paginate(
        ec2,
        "describe_network_interfaces",
        "NetworkInterfaces",
        Filters=[{"Name": "group-id", "Values": [group_id]}],
    )

    return SecurityGroupUsage(
        attached_to_instances=instances,
        attached_to_network_interfaces=[e["NetworkInterfaceId"] for e in enis if e.get("NetworkInterfaceId")],
        referenced_by_security_groups=_referencing_groups(group_id, all_groups),
    )


def build_security_group(
    ec2: Any,
    raw: dict[str, Any],
    all_groups: list[dict[str, Any]],
    account_id: str,
    account_name: str,
    region: str,
) -> SecurityGroup:
    ingress = [rule for p in raw.get("IpPermissions", []) for rule in expand_permission(p)]
    egress = [rule for p in raw.get("IpPermissionsEgress", []) for rule in expand_permission(p)]

    try:
        usage = check_usage(ec2, raw["GroupId"], all_groups)
    except APICallError as e:
        logger.warning(f"보안 그룹 사용처 조회 실패 [{raw['GroupId']}]: {e}")
        usage = SecurityGroupUsage()

    return SecurityGroup(
        group_id=raw["GroupId"],
        group_name=raw.get("GroupName", ""),
        description=raw.get("Description", ""),
        account_id=account_id,
        account_name=account_name,
        region=region,
        vpc_id=raw.get("VpcId", ""),
        ingress_rules=ingress,
        egress_rules=egress,
        open_ports_info=find_open_ports(ingress),
        usage_info=usage,
    )


def fetch_security_groups(session, account_id: str, account_name: str, region: str) -> list[SecurityGroup]:
    """한 리전의 보안 그룹 목록"""
    ec2 = get_client(session, "ec2", region_name=region)
    all_groups = paginate(ec2, "describe_security_groups", "SecurityGroups")
    return [build_security_group(ec2, raw, all_groups, account_id, account_name, region) for raw in all_groups]


# =============================================================================
# 서비스
# =============================================================================


class SecurityGroupService(BaseService):
    """보안 그룹 서비스"""

    def list_security_groups(self) -> list[SecurityGroup]:
        return self._list_all_resources(
            SECURITY_GROUPS, SecurityGroup, fetch_security_groups, "list_security_groups"
        )

    def list_security_groups_by_account(self, account_id: str) -> list[SecurityGroup]:
        """계정의 보안 그룹

        Raises:
            AccountNotFoundError: 조직에 없는 계정
            SessionError: 접근할 수 없는 계정
        """
        account = self.ctx.accounts.require_accessible(account_id)
        return self._list_account_resources(
            SECURITY_GROUPS,
            SecurityGroup,
            account_id,
            fetch_security_groups,
            "list_security_groups",
            account_name=account.name,
        )

    def get_security_group(self, account_id: str, region: str, group_id: str) -> SecurityGroup:
        """보안 그룹 상세

        Raises:
            NotFoundError: 보안 그룹 없음
        """
        key = SECURITY_GROUPS.entity_key(account_id, region, group_id)
        cached = self._cached_value(key, SecurityGroup)
        if cached is not None:
            return cached

        ec2 = self._client(account_id, "ec2", region)
        raw = self._describe_group(ec2, account_id, region, group_id)
        all_groups = paginate(ec2, "describe_security_groups", "SecurityGroups")
        group = build_security_group(ec2, raw, all_groups, account_id, self._account_name(account_id), region)
        return self._store(key, group)

    def delete_security_group(self, account_id: str, region: str, group_id: str) -> None:
        """보안 그룹 삭제

        Raises:
            NotFoundError: 보안 그룹 없음
            ConflictError: default 그룹이거나 사용 중인 그룹
        """
        ec2 = self._client(account_id, "ec2", region)
        raw = self._describe_group(ec2, account_id, region, group_id)

        if raw.get("GroupName") == "default":
            raise ConflictError(group_id, "default 보안 그룹은 삭제할 수 없습니다")

        try:
            all_groups = paginate(ec2, "describe_security_groups", "SecurityGroups")
            usage = check_usage(ec2, group_id, all_groups)
        except APICallError as e:
            logger.warning(f"보안 그룹 사용처 확인 실패, 삭제 시도 [{group_id}]: {e}")
        else:
            if usage.total_attachments > 0:
                raise ConflictError(group_id, f"사용 중인 보안 그룹입니다 ({usage.total_attachments}개 리소스에 연결)")

        call(ec2, "delete_security_group", GroupId=group_id)
        self._invalidate(SECURITY_GROUPS.for_entity_write(account_id, region, group_id))
        logger.info(f"보안 그룹 삭제 [{account_id}/{region}]: {group_id}")

    @staticmethod
    def _describe_group(ec2: Any, account_id: str, region: str, group_id: str) -> dict[str, Any]:
        groups = call(ec2, "describe_security_groups", GroupIds=[group_id]).get("SecurityGroups", [])
        if not groups:
            raise NotFoundError(
                service="ec2",
                operation="describe_security_groups",
                error_code="InvalidGroup.NotFound",
                error_message=f"보안 그룹 {group_id}이(가) 계정 {account_id}, 리전 {region}에 없습니다",
            )
        return groups[0]
