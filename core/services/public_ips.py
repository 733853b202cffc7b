"""
core/services/public_ips.py - 공인 IP 인벤토리

리전마다 다음 공인 IP를 수집합니다:
    - EC2 인스턴스 공인 IP
    - 인터넷 연결 ELBv2 (NLB 고정 주소, 그 외는 DNS 조회 결과)
    - 인터넷 연결 Classic ELB (DNS 조회 결과)
    - NAT 게이트웨이 주소

결과는 "public-ips" 키 하나로만 캐시됩니다.
"""

from __future__ import annotations

import logging
import socket

from core.cache.keys import PUBLIC_IPS
from core.exceptions import APICallError
from core.parallel.client import get_client, paginate

from .base import BaseService
from .types import PublicIP, name_tag

logger = logging.getLogger(__name__)

INTERNET_FACING = "internet-facing"


def resolve_ipv4(dns_name: str) -> list[str]:
    """DNS 이름 → IPv4 주소 목록 (중복 제거, 조회 순서 유지)

    Raises:
        OSError: 이름 해석 실패
    """
    infos = socket.getaddrinfo(dns_name, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
    return list(dict.fromkeys(info[4][0] for info in infos))


def _resolved_ips(dns_name: str) -> list[str]:
    try:
        return resolve_ipv4(dns_name)
    except OSError as e:
        logger.warning(f"DNS 조회 실패 [{dns_name}]: {e}")
        return []


def fetch_ec2_ips(session, account_id: str, account_name: str, region: str) -> list[PublicIP]:
    ec2 = get_client(session, "ec2", region_name=region)
    ips = []
    for reservation in paginate(ec2, "describe_instances", "Reservations"):
        for instance in reservation.get("Instances", []):
            address = instance.get("PublicIpAddress")
            if not address:
                continue
            ips.append(
                PublicIP(
                    ip_address=address,
                    account_id=account_id,
                    account_name=account_name,
                    region=region,
                    resource_type="EC2",
                    resource_id=instance["InstanceId"],
                    resource_name=name_tag(instance.get("Tags")),
                    state=instance.get("State", {}).get("Name", ""),
                )
            )
    return ips


def fetch_elbv2_ips(session, account_id: str, account_name: str, region: str) -> list[PublicIP]:
    elbv2 = get_client(session, "elbv2", region_name=region)
    ips = []
    for lb in paginate(elbv2, "describe_load_balancers", "LoadBalancers"):
        if lb.get("Scheme") != INTERNET_FACING or not lb.get("DNSName"):
            continue

        lb_type = lb.get("Type", "application")
        if lb_type == "network":
            addresses = [
                addr["IpAddress"]
                for az in lb.get("AvailabilityZones", [])
                for addr in az.get("LoadBalancerAddresses", [])
                if addr.get("IpAddress")
            ]
            resource_type = "NLB"
        else:
            addresses = []
            resource_type = lb_type

        if not addresses:
            addresses = _resolved_ips(lb["DNSName"])

        ips.extend(
            PublicIP(
                ip_address=address,
                account_id=account_id,
                account_name=account_name,
                region=region,
                resource_type=resource_type,
                resource_id=lb.get("LoadBalancerArn", ""),
                resource_name=lb.get("LoadBalancerName", ""),
                state=lb.get("State", {}).get("Code", ""),
            )
            for address in addresses
        )
    return ips


def fetch_classic_elb_ips(session, account_id: str, account_name: str, region: str) -> list[PublicIP]:
    elb = get_client(session, "elb", region_name=region)
    ips = []
    for lb in paginate(elb, "describe_load_balancers", "LoadBalancerDescriptions"):
        if lb.get("Scheme") != INTERNET_FACING or not lb.get("DNSName"):
            continue
        name = lb.get("LoadBalancerName", "")
        ips.extend(
            PublicIP(
                ip_address=address,
                account_id=account_id,
                account_name=account_name,
                region=region,
                resource_type="CLB",
                resource_id=name,
                resource_name=name,
                state="active",
            )
            for address in _resolved_ips(lb["DNSName"])
        )
    return ips


def fetch_nat_ips(session, account_id: str, account_name: str, region: str) -> list[PublicIP]:
    ec2 = get_client(session, "ec2", region_name=region)
    ips = []
    for nat in paginate(ec2, "describe_nat_gateways", "NatGateways"):
        for address in nat.get("NatGatewayAddresses", []):
            if not address.get("PublicIp"):
                continue
            ips.append(
                PublicIP(
                    ip_address=address["PublicIp"],
                    account_id=account_id,
                    account_name=account_name,
                    region=region,
                    resource_type="NAT",
                    resource_id=nat["NatGatewayId"],
                    resource_name=name_tag(nat.get("Tags")),
                    state=nat.get("State", ""),
                )
            )
    return ips


_SOURCES = (
    (fetch_ec2_ips, "EC2"),
    (fetch_elbv2_ips, "ELBv2"),
    (fetch_classic_elb_ips, "Classic ELB"),
    (fetch_nat_ips, "NAT"),
)


def fetch_public_ips(session, account_id: str, account_name: str, region: str) -> list[PublicIP]:
    """한 리전의 공인 IP (소스별 실패는 경고 후 나머지 반환)"""
    ips: list[PublicIP] = []
    for fetch, label in _SOURCES:
        try:
            ips.extend(fetch(session, account_id, account_name, region))
        except APICallError as e:
            logger.warning(f"{label} 공인 IP 조회 실패 [{account_id}/{region}]: {e}")
    return ips


class PublicIPService(BaseService):
    """공인 IP 서비스"""

    def list_public_ips(self) -> list[PublicIP]:
        cached = self._cached(PUBLIC_IPS.aggregate, PublicIP)
        if cached is not None:
            return cached

        def collect(session, account_id, account_name, region):
            return self._fan_out_regions(session, account_id, account_name, fetch_public_ips, "list_public_ips")

        ips = self._fan_out_accounts(collect, "list_public_ips", service="ec2", nested=True)
        return self._store(PUBLIC_IPS.aggregate, ips)
