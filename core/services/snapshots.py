"""
core/services/snapshots.py - EBS 스냅샷 조회/삭제

스냅샷은 활성 리전 조회 없이 고정 리전 목록(SNAPSHOT_REGIONS 설정)만 조회하며,
계정 소유 스냅샷(OwnerIds=[account_id])만 대상으로 합니다.

오래된 스냅샷 일괄 삭제는 병렬로 수행하고, 일부 실패 시 PartialFailureError를 올립니다.
"""

from __future__ import annotations

import calendar
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from core.cache.keys import SNAPSHOTS
from core.exceptions import IAMManagerError, PartialFailureError, SessionError, ValidationError
from core.parallel.client import call, get_client, paginate

from .base import BaseService
from .types import Snapshot, parse_tags

logger = logging.getLogger(__name__)


def subtract_months(moment: datetime, months: int) -> datetime:
    """months개월 전 같은 일시 (말일은 해당 월의 마지막 날로 보정)"""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def fetch_snapshots(session, account_id: str, account_name: str, region: str) -> list[Snapshot]:
    """한 리전의 계정 소유 스냅샷"""
    ec2 = get_client(session, "ec2", region_name=region)
    return [
        Snapshot(
            snapshot_id=raw["SnapshotId"],
            account_id=account_id,
            account_name=account_name,
            region=region,
            volume_id=raw.get("VolumeId", ""),
            volume_size=raw.get("VolumeSize", 0),
            description=raw.get("Description", ""),
            state=raw.get("State", ""),
            progress=raw.get("Progress", ""),
            start_time=raw.get("StartTime"),
            owner_id=raw.get("OwnerId", ""),
            encrypted=raw.get("Encrypted", False),
            tags=parse_tags(raw.get("Tags")),
        )
        for raw in paginate(ec2, "describe_snapshots", "Snapshots", OwnerIds=[account_id])
    ]


class SnapshotService(BaseService):
    """EBS 스냅샷 서비스"""

    @property
    def regions(self) -> tuple[str, ...]:
        return tuple(self.ctx.settings.SNAPSHOT_REGIONS)

    def list_snapshots(self) -> list[Snapshot]:
        return self._list_all_resources(
            SNAPSHOTS, Snapshot, fetch_snapshots, "list_snapshots", regions=self.regions
        )

    def list_snapshots_by_account(self, account_id: str) -> list[Snapshot]:
        """계정의 스냅샷 (접근 불가 계정은 경고 후 빈 리스트)"""
        try:
            return self._list_account_resources(
                SNAPSHOTS, Snapshot, account_id, fetch_snapshots, "list_snapshots", regions=self.regions
            )
        except SessionError as e:
            logger.warning(f"계정 {account_id} 접근 불가, 스냅샷 조회 건너뜀: {e}")
            return []

    def delete_snapshot(self, account_id: str, region: str, snapshot_id: str) -> None:
        ec2 = self._client(account_id, "ec2", region)
        call(ec2, "delete_snapshot", SnapshotId=snapshot_id)
        self._invalidate(SNAPSHOTS.for_entity_write(account_id))
        logger.info(f"스냅샷 삭제 [{account_id}/{region}]: {snapshot_id}")

    def delete_old_snapshots(self, account_id: str, months: int) -> list[str]:
        """완료 상태이며 months개월보다 오래된 스냅샷 일괄 삭제

        Args:
            account_id: 대상 계정 ID
            months: 기준 개월 수 (1 이상)

        Returns:
            삭제된 스냅샷 ID 목록

        Raises:
            ValidationError: months가 1 미만
            PartialFailureError: 일부 삭제 실패 (succeeded에 삭제된 ID 포함)
        """
        if months < 1:
            raise ValidationError("months", months, ">= 1")

        cutoff = subtract_months(datetime.now(timezone.utc), months)
        targets = [
            snap
            for snap in self.list_snapshots_by_account(account_id)
            if snap.state == "completed" and snap.start_time is not None and snap.start_time < cutoff
        ]
        if not targets:
            return []

        session = self._session(account_id)
        deleted: list[str] = []
        errors: dict[str, str] = {}

        def delete_one(snap: Snapshot) -> str:
            ec2 = get_client(session, "ec2", region_name=snap.region)
            call(ec2, "delete_snapshot", SnapshotId=snap.snapshot_id)
            return snap.snapshot_id

        workers = min(self.ctx.settings.REGION_WORKERS, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snapshot-delete") as pool:
            futures = {pool.submit(delete_one, snap): snap for snap in targets}
            for future in as_completed(futures):
                snap = futures[future]
                try:
                    deleted.append(future.result())
                except IAMManagerError as e:
                    errors[snap.snapshot_id] = str(e)

        self._invalidate(SNAPSHOTS.for_entity_write(account_id))
        logger.info(f"오래된 스냅샷 정리 [{account_id}]: 삭제 {len(deleted)}, 실패 {len(errors)}")

        if errors:
            raise PartialFailureError(
                f"deleted {len(deleted)} snapshots, but encountered {len(errors)} errors",
                succeeded=deleted,
                errors=errors,
            )
        return deleted
