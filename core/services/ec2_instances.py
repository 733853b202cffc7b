"""
core/services/ec2_instances.py - EC2 인스턴스 조회/중지/종료

인스턴스별 월 예상 비용(실행 중인 경우 온디맨드 시간당 요금 × 720시간)을 함께 계산합니다.
종료는 인스턴스 캐시와 함께 EBS 볼륨, 공인 IP 캐시도 무효화합니다.
"""

from __future__ import annotations

import logging

from core.cache.keys import EBS_VOLUMES, EC2_INSTANCES
from core.parallel.client import call, get_client, paginate
from core.pricing import get_ec2_monthly_cost

from .base import BaseService
from .types import EC2Instance, name_tag, parse_tags

logger = logging.getLogger(__name__)


def fetch_instances(session, account_id: str, account_name: str, region: str) -> list[EC2Instance]:
    """한 리전의 EC2 인스턴스"""
    ec2 = get_client(session, "ec2", region_name=region)
    instances = []
    for reservation in paginate(ec2, "describe_instances", "Reservations"):
        for raw in reservation.get("Instances", []):
            instance_type = raw.get("InstanceType", "")
            state = raw.get("State", {}).get("Name", "")
            instances.append(
                EC2Instance(
                    instance_id=raw["InstanceId"],
                    name=name_tag(raw.get("Tags")),
                    account_id=account_id,
                    account_name=account_name,
                    region=region,
                    instance_type=instance_type,
                    state=state,
                    launch_time=raw.get("LaunchTime"),
                    public_ip=raw.get("PublicIpAddress", ""),
                    private_ip=raw.get("PrivateIpAddress", ""),
                    monthly_cost=get_ec2_monthly_cost(instance_type, state),
                    tags=parse_tags(raw.get("Tags")),
                )
            )
    return instances


class EC2InstanceService(BaseService):
    """EC2 인스턴스 서비스"""

    def list_instances(self) -> list[EC2Instance]:
        return self._list_all_resources(EC2_INSTANCES, EC2Instance, fetch_instances, "list_ec2_instances")

    def list_instances_by_account(self, account_id: str) -> list[EC2Instance]:
        return self._list_account_resources(
            EC2_INSTANCES, EC2Instance, account_id, fetch_instances, "list_ec2_instances"
        )

    def stop_instance(self, account_id: str, region: str, instance_id: str) -> None:
        ec2 = self._client(account_id, "ec2", region)
        call(ec2, "stop_instances", InstanceIds=[instance_id])
        self._invalidate(EC2_INSTANCES.for_entity_write(account_id))
        logger.info(f"인스턴스 중지 요청 [{account_id}/{region}]: {instance_id}")

    def terminate_instance(self, account_id: str, region: str, instance_id: str) -> None:
        ec2 = self._client(account_id, "ec2", region)
        call(ec2, "terminate_instances", InstanceIds=[instance_id])
        self._invalidate(EC2_INSTANCES.for_entity_write(account_id) | EBS_VOLUMES.for_entity_write(account_id))
        logger.info(f"인스턴스 종료 요청 [{account_id}/{region}]: {instance_id}")
