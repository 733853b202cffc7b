"""
tests/core/services/test_snapshots.py - EBS 스냅샷 서비스 테스트
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.auth.types import Account
from core.exceptions import PartialFailureError, ValidationError
from core.services.snapshots import subtract_months
from core.services.types import Snapshot

ACCOUNT_ID = "111111111111"


class TestSubtractMonths:
    """개월 단위 날짜 계산 테스트"""

    def test_simple(self):
        assert subtract_months(datetime(2026, 10, 18), 6) == datetime(2026, 4, 18)

    def test_crosses_year(self):
        assert subtract_months(datetime(2026, 2, 10), 3) == datetime(2025, 11, 10)

    def test_clamps_month_end(self):
        assert subtract_months(datetime(2026, 3, 31), 1) == datetime(2026, 2, 28)
        assert subtract_months(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)

    def test_keeps_timezone(self):
        moment = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)
        assert subtract_months(moment, 12) == datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


class TestDeleteOldSnapshots:
    """오래된 스냅샷 일괄 삭제 테스트"""

    @pytest.fixture
    def snapshots(self, app_context):
        now = datetime.now(timezone.utc)
        old = now - timedelta(days=400)
        items = [
            Snapshot("snap-old1", ACCOUNT_ID, "prod", "us-east-1", state="completed", start_time=old),
            Snapshot("snap-old2", ACCOUNT_ID, "prod", "us-east-1", state="completed", start_time=old),
            Snapshot("snap-pending", ACCOUNT_ID, "prod", "us-east-1", state="pending", start_time=old),
            Snapshot("snap-new", ACCOUNT_ID, "prod", "us-east-1", state="completed", start_time=now),
        ]
        app_context.cache.set(f"snapshots:{ACCOUNT_ID}", items)
        return items

    def test_deletes_only_old_completed(self, app_context, mock_session, snapshots):
        ec2 = mock_session.client.return_value

        deleted = app_context.snapshots.delete_old_snapshots(ACCOUNT_ID, 6)

        assert sorted(deleted) == ["snap-old1", "snap-old2"]
        deleted_ids = sorted(c.kwargs["SnapshotId"] for c in ec2.delete_snapshot.call_args_list)
        assert deleted_ids == ["snap-old1", "snap-old2"]
        assert f"snapshots:{ACCOUNT_ID}" not in app_context.cache

    def test_partial_failure(self, app_context, mock_session, snapshots, client_error):
        ec2 = mock_session.client.return_value

        def delete_snapshot(SnapshotId):
            if SnapshotId == "snap-old2":
                raise client_error("InvalidSnapshot.InUse", operation="DeleteSnapshot")

        ec2.delete_snapshot.side_effect = delete_snapshot

        with pytest.raises(PartialFailureError) as exc_info:
            app_context.snapshots.delete_old_snapshots(ACCOUNT_ID, 6)

        assert exc_info.value.succeeded == ["snap-old1"]
        assert list(exc_info.value.errors) == ["snap-old2"]
        assert "deleted 1 snapshots" in str(exc_info.value)

    def test_nothing_to_delete(self, app_context, mock_session):
        app_context.cache.set(f"snapshots:{ACCOUNT_ID}", [])

        assert app_context.snapshots.delete_old_snapshots(ACCOUNT_ID, 6) == []
        mock_session.client.return_value.delete_snapshot.assert_not_called()

    def test_invalid_months(self, app_context):
        with pytest.raises(ValidationError):
            app_context.snapshots.delete_old_snapshots(ACCOUNT_ID, 0)


class TestSnapshotListing:
    """스냅샷 조회 테스트"""

    def test_inaccessible_account_returns_empty(self, app_context, mock_broker):
        from core.exceptions import SessionError

        mock_broker.resolve_session.side_effect = SessionError(ACCOUNT_ID, "denied")

        assert app_context.snapshots.list_snapshots_by_account(ACCOUNT_ID) == []

    def test_moto_owned_snapshots_in_configured_regions(self, moto_context, moto_session, seed_accounts):
        account_id = "123456789012"
        seed_accounts(moto_context, Account(account_id, "moto", True))
        ec2 = moto_session.client("ec2", region_name="us-east-1")
        volume_id = ec2.create_volume(AvailabilityZone="us-east-1a", Size=8)["VolumeId"]
        snapshot_id = ec2.create_snapshot(VolumeId=volume_id, Description="backup")["SnapshotId"]

        snapshots = moto_context.snapshots.list_snapshots()

        assert snapshot_id in [s.snapshot_id for s in snapshots]
        assert {s.region for s in snapshots} == {"us-east-1"}
        assert "snapshots" in moto_context.cache
