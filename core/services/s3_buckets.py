"""
core/services/s3_buckets.py - S3 버킷 조회/삭제

버킷 목록은 us-east-1 client로 조회하고, 버킷마다 위치 리전의 client로
버전 관리, 암호화, 퍼블릭 액세스 차단, 태그, 수명 주기, 로깅 설정을 병렬 수집합니다.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from core.cache.keys import S3_BUCKETS
from core.exceptions import APICallError
from core.parallel.client import call, get_client

from .base import BaseService
from .types import S3Bucket, parse_tags

logger = logging.getLogger(__name__)

# ListBuckets/GetBucketLocation 호출 리전
S3_GLOBAL_REGION = "us-east-1"

_PUBLIC_ACCESS_FLAGS = ("BlockPublicAcls", "BlockPublicPolicy", "IgnorePublicAcls", "RestrictPublicBuckets")


def _optional(s3: Any, operation: str, bucket: str) -> dict[str, Any] | None:
    """설정이 없을 때 에러를 돌려주는 Get* 호출 (실패 시 None)"""
    try:
        return call(s3, operation, Bucket=bucket)
    except APICallError as e:
        logger.debug(f"{operation} 건너뜀 [{bucket}]: {e.error_code}")
        return None


def get_bucket_details(session, raw: dict[str, Any], account_id: str, account_name: str) -> S3Bucket:
    """버킷 상세

    Raises:
        APICallError: 위치 조회 실패
    """
    name = raw["Name"]
    location = call(get_client(session, "s3", region_name=S3_GLOBAL_REGION), "get_bucket_location", Bucket=name)
    region = location.get("LocationConstraint") or S3_GLOBAL_REGION

    s3 = get_client(session, "s3", region_name=region)
    bucket = S3Bucket(
        name=name,
        account_id=account_id,
        account_name=account_name,
        region=region,
        creation_date=raw.get("CreationDate"),
    )

    versioning = _optional(s3, "get_bucket_versioning", name)
    if versioning:
        bucket.versioning = versioning.get("Status", "")

    encryption = _optional(s3, "get_bucket_encryption", name)
    bucket.encrypted = bool(encryption and encryption.get("ServerSideEncryptionConfiguration"))

    public_access = _optional(s3, "get_public_access_block", name)
    if public_access:
        config = public_access.get("PublicAccessBlockConfiguration", {})
        bucket.public_access_blocked = all(config.get(flag, False) for flag in _PUBLIC_ACCESS_FLAGS)

    tagging = _optional(s3, "get_bucket_tagging", name)
    if tagging:
        bucket.tags = parse_tags(tagging.get("TagSet"))

    bucket.has_lifecycle_policy = _optional(s3, "get_bucket_lifecycle_configuration", name) is not None

    logging_config = _optional(s3, "get_bucket_logging", name)
    bucket.has_logging = bool(logging_config and logging_config.get("LoggingEnabled"))

    return bucket


class S3BucketService(BaseService):
    """S3 버킷 서비스"""

    def list_buckets(self) -> list[S3Bucket]:
        cached = self._cached(S3_BUCKETS.aggregate, S3Bucket)
        if cached is not None:
            return cached

        def collect(session, account_id, account_name, region):
            return self._account_buckets(account_id, session=session, account_name=account_name)

        buckets = self._fan_out_accounts(collect, "list_s3_buckets", service="s3")
        return self._store(S3_BUCKETS.aggregate, buckets)

    def list_buckets_by_account(self, account_id: str) -> list[S3Bucket]:
        return self._account_buckets(account_id)

    def delete_bucket(self, account_id: str, region: str, bucket_name: str) -> None:
        """버킷 삭제 (비어 있지 않으면 AWS가 BucketNotEmpty로 거부)"""
        s3 = self._client(account_id, "s3", region)
        call(s3, "delete_bucket", Bucket=bucket_name)
        self._invalidate(S3_BUCKETS.for_entity_write(account_id))
        logger.info(f"버킷 삭제 [{account_id}/{region}]: {bucket_name}")

    def _account_buckets(self, account_id: str, session=None, account_name: str | None = None) -> list[S3Bucket]:
        key = S3_BUCKETS.account_key(account_id)
        cached = self._cached(key, S3Bucket)
        if cached is not None:
            return cached

        if session is None:
            session = self._session(account_id)
        if account_name is None:
            account_name = self._account_name(account_id)

        s3 = get_client(session, "s3", region_name=S3_GLOBAL_REGION)
        raw_buckets = call(s3, "list_buckets").get("Buckets", [])
        if not raw_buckets:
            return self._store(key, [])

        buckets: list[S3Bucket] = []
        workers = min(self.ctx.settings.REGION_WORKERS, len(raw_buckets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="s3-detail") as pool:
            futures = {
                pool.submit(get_bucket_details, session, raw, account_id, account_name): raw["Name"]
                for raw in raw_buckets
            }
            for future, name in futures.items():
                try:
                    buckets.append(future.result())
                except APICallError as e:
                    logger.warning(f"버킷 상세 조회 실패, 건너뜀 [{account_id}/{name}]: {e}")

        return self._store(key, buckets)
