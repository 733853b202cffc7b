"""
core/services/ebs_volumes.py - EBS 볼륨 조회/분리/삭제

볼륨 유형별 요금표로 월 예상 비용을 계산합니다.
연결된 볼륨은 삭제하지 않으며, 먼저 분리해야 합니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.cache.keys import EBS_VOLUMES, EC2_INSTANCES
from core.exceptions import ConflictError, NotFoundError
from core.parallel.client import call, get_client, paginate
from core.pricing import get_ebs_monthly_cost

from .base import BaseService
from .types import EBSVolume, VolumeAttachment, name_tag, parse_tags

logger = logging.getLogger(__name__)


def build_volume(raw: dict[str, Any], account_id: str, account_name: str, region: str) -> EBSVolume:
    volume_type = raw.get("VolumeType", "")
    size = raw.get("Size", 0)
    iops = raw.get("Iops")
    throughput = raw.get("Throughput")
    return EBSVolume(
        volume_id=raw["VolumeId"],
        name=name_tag(raw.get("Tags")),
        account_id=account_id,
        account_name=account_name,
        region=region,
        size=size,
        volume_type=volume_type,
        state=raw.get("State", ""),
        create_time=raw.get("CreateTime"),
        availability_zone=raw.get("AvailabilityZone", ""),
        encrypted=raw.get("Encrypted", False),
        iops=iops,
        throughput=throughput,
        snapshot_id=raw.get("SnapshotId", ""),
        attachments=[
            VolumeAttachment(
                instance_id=a.get("InstanceId", ""),
                device=a.get("Device", ""),
                state=a.get("State", ""),
                attach_time=a.get("AttachTime"),
            )
            for a in raw.get("Attachments", [])
        ],
        monthly_cost=get_ebs_monthly_cost(volume_type, size, iops, throughput),
        tags=parse_tags(raw.get("Tags")),
    )


def fetch_volumes(session, account_id: str, account_name: str, region: str) -> list[EBSVolume]:
    """한 리전의 EBS 볼륨"""
    ec2 = get_client(session, "ec2", region_name=region)
    return [build_volume(raw, account_id, account_name, region) for raw in paginate(ec2, "describe_volumes", "Volumes")]


def _describe_volume(ec2: Any, volume_id: str) -> dict[str, Any]:
    volumes = call(ec2, "describe_volumes", VolumeIds=[volume_id]).get("Volumes", [])
    if not volumes:
        raise NotFoundError(
            service="ec2",
            operation="describe_volumes",
            error_code="InvalidVolume.NotFound",
            error_message=f"볼륨 {volume_id}이(가) 없습니다",
        )
    return volumes[0]


class EBSVolumeService(BaseService):
    """EBS 볼륨 서비스"""

    def list_volumes(self) -> list[EBSVolume]:
        return self._list_all_resources(EBS_VOLUMES, EBSVolume, fetch_volumes, "list_ebs_volumes")

    def list_volumes_by_account(self, account_id: str) -> list[EBSVolume]:
        return self._list_account_resources(EBS_VOLUMES, EBSVolume, account_id, fetch_volumes, "list_ebs_volumes")

    def detach_volume(self, account_id: str, region: str, volume_id: str) -> None:
        """모든 인스턴스에서 볼륨 분리

        Raises:
            NotFoundError: 볼륨 없음
            ConflictError: 연결되지 않은 볼륨
        """
        ec2 = self._client(account_id, "ec2", region)
        volume = _describe_volume(ec2, volume_id)
        attachments = volume.get("Attachments", [])
        if not attachments:
            raise ConflictError(volume_id, "어떤 인스턴스에도 연결되지 않은 볼륨입니다")

        for attachment in attachments:
            call(
                ec2,
                "detach_volume",
                VolumeId=volume_id,
                InstanceId=attachment["InstanceId"],
                Device=attachment["Device"],
            )

        self._invalidate(EBS_VOLUMES.for_entity_write(account_id) | EC2_INSTANCES.for_entity_write(account_id))
        logger.info(f"볼륨 분리 [{account_id}/{region}]: {volume_id} ({len(attachments)}개 연결)")

    def delete_volume(self, account_id: str, region: str, volume_id: str) -> None:
        """볼륨 삭제

        Raises:
            NotFoundError: 볼륨 없음
            ConflictError: 아직 연결된 볼륨
        """
        ec2 = self._client(account_id, "ec2", region)
        volume = _describe_volume(ec2, volume_id)
        if volume.get("Attachments"):
            raise ConflictError(volume_id, "인스턴스에 연결된 볼륨입니다. 먼저 분리하세요")

        call(ec2, "delete_volume", VolumeId=volume_id)
        self._invalidate(EBS_VOLUMES.for_entity_write(account_id))
        logger.info(f"볼륨 삭제 [{account_id}/{region}]: {volume_id}")
