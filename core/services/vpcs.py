"""
core/services/vpcs.py - VPC 조회/삭제

계정마다 활성 리전을 병렬로 조회하며, VPC별로 서브넷 수, 인터넷 게이트웨이,
사용 가능한 NAT 게이트웨이 수, 플로우 로그 여부를 함께 수집합니다.

비활성 리전의 AuthFailure/UnauthorizedOperation은 DEBUG 레벨로만 기록됩니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import VPCS
from core.exceptions import APICallError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import VPC, name_tag, parse_tags

logger = logging.getLogger(__name__)


def _vpc_filter(vpc_id: str, name: str = "vpc-id") -> list[dict[str, Any]]:
    return [{"Name": name, "Values": [vpc_id]}]


def _describe_vpc_details(ec2: Any, vpc: VPC) -> None:
    """VPC 부가 정보 채우기 (항목별 실패는 DEBUG 로그 후 기본값 유지)"""
    try:
        vpc.subnet_count = len(paginate(ec2, "describe_subnets", "Subnets", Filters=_vpc_filter(vpc.vpc_id)))
    except APICallError as e:
        logger.debug(f"서브넷 조회 실패 [{vpc.vpc_id}]: {e}")

    try:
        igws = paginate(
            ec2,
            "describe_internet_gateways",
            "InternetGateways",
            Filters=_vpc_filter(vpc.vpc_id, "attachment.vpc-id"),
        )
        if igws:
            vpc.internet_gateway = igws[0].get("InternetGatewayId", "")
    except APICallError as e:
        logger.debug(f"인터넷 게이트웨이 조회 실패 [{vpc.vpc_id}]: {e}")

    try:
        nats = paginate(
            ec2,
            "describe_nat_gateways",
            "NatGateways",
            Filters=[*_vpc_filter(vpc.vpc_id), {"Name": "state", "Values": ["available"]}],
        )
        vpc.nat_gateway_count = len(nats)
    except APICallError as e:
        logger.debug(f"NAT 게이트웨이 조회 실패 [{vpc.vpc_id}]: {e}")

    try:
        flow_logs = paginate(
            ec2,
            "describe_flow_logs",
            "FlowLogs",
            Filters=_vpc_filter(vpc.vpc_id, "resource-id"),
        )
        vpc.has_flow_logs = bool(flow_logs)
    except APICallError as e:
        logger.debug(f"플로우 로그 조회 실패 [{vpc.vpc_id}]: {e}")


def fetch_vpcs(session, account_id: str, account_name: str, region: str) -> list[VPC]:
    """한 리전의 VPC 목록"""
    ec2 = get_client(session, "ec2", region_name=region)
    vpcs = []
    for raw in paginate(ec2, "describe_vpcs", "Vpcs"):
        vpc = VPC(
            vpc_id=raw["VpcId"],
            name=name_tag(raw.get("Tags")),
            account_id=account_id,
            account_name=account_name,
            region=region,
            cidr_block=raw.get("CidrBlock", ""),
            state=raw.get("State", ""),
            is_default=raw.get("IsDefault", False),
            instance_tenancy=raw.get("InstanceTenancy", ""),
            dhcp_options_id=raw.get("DhcpOptionsId", ""),
            tags=parse_tags(raw.get("Tags")),
        )
        _describe_vpc_details(ec2, vpc)
        vpcs.append(vpc)
    return vpcs


class VPCService(BaseService):
    """VPC 서비스"""

    def list_vpcs(self) -> list[VPC]:
        return self._list_all_resources(VPCS, VPC, fetch_vpcs, "list_vpcs")

    def list_vpcs_by_account(self, account_id: str) -> list[VPC]:
        return self._list_account_resources(VPCS, VPC, account_id, fetch_vpcs, "list_vpcs")

    def delete_vpc(self, account_id: str, region: str, vpc_id: str) -> None:
        """VPC 삭제 (종속 리소스가 남아 있으면 AWS가 DependencyViolation으로 거부)"""
        ec2 = self._client(account_id, "ec2", region)
        call(ec2, "delete_vpc", VpcId=vpc_id)
        self._invalidate(VPCS.for_entity_write(account_id))
        logger.info(f"VPC 삭제 [{account_id}/{region}]: {vpc_id}")
