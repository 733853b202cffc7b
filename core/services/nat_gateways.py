"""
core/services/nat_gateways.py - NAT 게이트웨이 조회/삭제

NAT 게이트웨이 삭제는 같은 계정의 VPC 캐시(NAT 수 포함)와 공인 IP 캐시도 무효화합니다.
"""

from __future__ import annotations

import logging

from core.cache.keys import NAT_GATEWAYS
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import NATGateway, name_tag, parse_tags

logger = logging.getLogger(__name__)


def fetch_nat_gateways(session, account_id: str, account_name: str, region: str) -> list[NATGateway]:
    """한 리전의 NAT 게이트웨이 목록"""
    ec2 = get_client(session, "ec2", region_name=region)
    nats = []
    for raw in paginate(ec2, "describe_nat_gateways", "NatGateways"):
        nat = NATGateway(
            nat_gateway_id=raw["NatGatewayId"],
            name=name_tag(raw.get("Tags")),
            account_id=account_id,
            account_name=account_name,
            region=region,
            vpc_id=raw.get("VpcId", ""),
            subnet_id=raw.get("SubnetId", ""),
            state=raw.get("State", ""),
            connectivity_type=raw.get("ConnectivityType", ""),
            create_time=raw.get("CreateTime"),
            tags=parse_tags(raw.get("Tags")),
        )
        for address in raw.get("NatGatewayAddresses", []):
            nat.public_ip = address.get("PublicIp", nat.public_ip)
            nat.private_ip = address.get("PrivateIp", nat.private_ip)
        nats.append(nat)
    return nats


class NATGatewayService(BaseService):
    """NAT 게이트웨이 서비스"""

    def list_nat_gateways(self) -> list[NATGateway]:
        return self._list_all_resources(NAT_GATEWAYS, NATGateway, fetch_nat_gateways, "list_nat_gateways")

    def list_nat_gateways_by_account(self, account_id: str) -> list[NATGateway]:
        return self._list_account_resources(
            NAT_GATEWAYS, NATGateway, account_id, fetch_nat_gateways, "list_nat_gateways"
        )

    def delete_nat_gateway(self, account_id: str, region: str, nat_gateway_id: str) -> None:
        ec2 = self._client(account_id, "ec2", region)
        call(ec2, "delete_nat_gateway", NatGatewayId=nat_gateway_id)
        self._invalidate(NAT_GATEWAYS.for_entity_write(account_id))
        logger.info(f"NAT 게이트웨이 삭제 [{account_id}/{region}]: {nat_gateway_id}")
