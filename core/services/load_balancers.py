"""
core/services/load_balancers.py - 로드 밸런서 조회/삭제

ALB/NLB(ELBv2)와 Classic ELB를 리전별로 수집하고, 리스너 수와 대상 상태로
미사용 여부(대상이 없거나 정상 대상이 없음)를 판단합니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import LOAD_BALANCERS
from core.exceptions import APICallError, ValidationError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import LoadBalancer

logger = logging.getLogger(__name__)

LOAD_BALANCER_TYPES = ("application", "network", "classic")


def infer_load_balancer_type(identifier: str) -> str:
    """ARN/이름으로 로드 밸런서 유형 추정 (ARN이 아니면 Classic)

    Raises:
        ValidationError: ELB ARN이지만 유형을 알 수 없음
    """
    if not identifier.startswith("arn:aws:elasticloadbalancing"):
        return "classic"
    if ":loadbalancer/app/" in identifier:
        return "application"
    if ":loadbalancer/net/" in identifier:
        return "network"
    if ":loadbalancer/" in identifier:
        return "classic"
    raise ValidationError("type", identifier, " | ".join(LOAD_BALANCER_TYPES))


def _elbv2_details(elbv2: Any, lb: LoadBalancer) -> None:
    """리스너 수, 대상/정상 대상 수, 미사용 여부"""
    try:
        lb.listener_count = len(
            paginate(elbv2, "describe_listeners", "Listeners", LoadBalancerArn=lb.load_balancer_arn)
        )
    except APICallError as e:
        logger.debug(f"리스너 조회 실패 [{lb.load_balancer_name}]: {e}")

    try:
        target_groups = paginate(
            elbv2, "describe_target_groups", "TargetGroups", LoadBalancerArn=lb.load_balancer_arn
        )
    except APICallError as e:
        logger.debug(f"대상 그룹 조회 실패 [{lb.load_balancer_name}]: {e}")
        lb.is_unused = True
        return

    for tg in target_groups:
        try:
            health = call(elbv2, "describe_target_health", TargetGroupArn=tg["TargetGroupArn"])
        except APICallError as e:
            logger.debug(f"대상 상태 조회 실패 [{tg.get('TargetGroupName')}]: {e}")
            continue
        descriptions = health.get("TargetHealthDescriptions", [])
        lb.target_count += len(descriptions)
        lb.healthy_target_count += sum(
            1 for d in descriptions if d.get("TargetHealth", {}).get("State") == "healthy"
        )

    lb.is_unused = lb.target_count == 0 or lb.healthy_target_count == 0


def fetch_elbv2(session, account_id: str, account_name: str, region: str) -> list[LoadBalancer]:
    elbv2 = get_client(session, "elbv2", region_name=region)
    lbs = []
    for raw in paginate(elbv2, "describe_load_balancers", "LoadBalancers"):
        lb = LoadBalancer(
            load_balancer_name=raw.get("LoadBalancerName", ""),
            type=raw.get("Type", "application"),
            account_id=account_id,
            account_name=account_name,
            region=region,
            load_balancer_arn=raw.get("LoadBalancerArn", ""),
            dns_name=raw.get("DNSName", ""),
            scheme=raw.get("Scheme", ""),
            state=raw.get("State", {}).get("Code", ""),
            vpc_id=raw.get("VpcId", ""),
            created_time=raw.get("CreatedTime"),
        )
        _elbv2_details(elbv2, lb)
        lbs.append(lb)
    return lbs


def fetch_classic(session, account_id: str, account_name: str, region: str) -> list[LoadBalancer]:
    elb = get_client(session, "elb", region_name=region)
    lbs = []
    for raw in paginate(elb, "describe_load_balancers", "LoadBalancerDescriptions"):
        instances = raw.get("Instances", [])
        lb = LoadBalancer(
            load_balancer_name=raw.get("LoadBalancerName", ""),
            type="classic",
            account_id=account_id,
            account_name=account_name,
            region=region,
            dns_name=raw.get("DNSName", ""),
            scheme=raw.get("Scheme", ""),
            vpc_id=raw.get("VPCId", ""),
            created_time=raw.get("CreatedTime"),
            target_count=len(instances),
            listener_count=len(raw.get("ListenerDescriptions", [])),
        )
        if instances:
            try:
                health = call(elb, "describe_instance_health", LoadBalancerName=lb.load_balancer_name)
                lb.healthy_target_count = sum(
                    1 for s in health.get("InstanceStates", []) if s.get("State") == "InService"
                )
            except APICallError as e:
                logger.debug(f"인스턴스 상태 조회 실패 [{lb.load_balancer_name}]: {e}")
        lb.is_unused = lb.target_count == 0 or lb.healthy_target_count == 0
        lbs.append(lb)
    return lbs


def fetch_load_balancers(session, account_id: str, account_name: str, region: str) -> list[LoadBalancer]:
    """한 리전의 ALB/NLB + Classic ELB (유형별 실패는 경고 후 나머지 반환)"""
    lbs: list[LoadBalancer] = []
    for fetch, label in ((fetch_elbv2, "ALB/NLB"), (fetch_classic, "Classic ELB")):
        try:
            lbs.extend(fetch(session, account_id, account_name, region))
        except APICallError as e:
            logger.warning(f"{label} 조회 실패 [{account_id}/{region}]: {e}")
    return lbs


class LoadBalancerService(BaseService):
    """로드 밸런서 서비스"""

    def list_load_balancers(self) -> list[LoadBalancer]:
        return self._list_all_resources(
            LOAD_BALANCERS, LoadBalancer, fetch_load_balancers, "list_load_balancers", service="elb"
        )

    def list_load_balancers_by_account(self, account_id: str) -> list[LoadBalancer]:
        return self._list_account_resources(
            LOAD_BALANCERS, LoadBalancer, account_id, fetch_load_balancers, "list_load_balancers", service="elb"
        )

    def delete_load_balancer(self, account_id: str, region: str, identifier: str, lb_type: str | None = None) -> None:
        """로드 밸런서 삭제

        Args:
            account_id: 계정 ID
            region: 리전
            identifier: ALB/NLB는 ARN, Classic은 이름
            lb_type: "application" | "network" | "classic" (None이면 identifier로 추정)

        Raises:
            ValidationError: 알 수 없는 유형
        """
        lb_type = lb_type or infer_load_balancer_type(identifier)
        if lb_type in ("application", "network"):
            client = self._client(account_id, "elbv2", region)
            call(client, "delete_load_balancer", LoadBalancerArn=identifier)
        elif lb_type == "classic":
            client = self._client(account_id, "elb", region)
            call(client, "delete_load_balancer", LoadBalancerName=identifier)
        else:
            raise ValidationError("type", lb_type, " | ".join(LOAD_BALANCER_TYPES))

        self._invalidate(LOAD_BALANCERS.for_entity_write(account_id))
        logger.info(f"{lb_type} 로드 밸런서 삭제 [{account_id}/{region}]: {identifier}")
