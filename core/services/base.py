"""
core/services/base.py - 서비스 공통 베이스

모든 리소스 서비스가 공유하는 캐시 조회/저장, 세션 획득,
계정/리전 팬아웃, 캐시 무효화 헬퍼를 제공합니다.

팬아웃 흐름:
    1. 집계 키 캐시 확인
    2. 접근 가능한 계정 목록으로 계정 단위 작업 생성
    3. 계정마다 (필요하면) 활성 리전 목록으로 리전 단위 작업 생성
    4. 실패한 작업 단위는 경고 후 건너뛰고 성공 결과만 병합
    5. 병합 결과를 집계 키로 캐시
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from core.auth.types import INTERACTIVE, SessionProfile
from core.parallel import account_units, log_failures, region_units, shared_session_units
from core.parallel.client import get_client
from core.parallel.types import ErrorCategory, ParallelExecutionResult

if TYPE_CHECKING:
    import boto3

    from core.auth.types import Account
    from core.cache.keys import Invalidation, KeyFamily
    from core.context import AppContext

logger = logging.getLogger(__name__)

# 비활성/옵트인 리전에서 흔히 발생하는 권한 오류 (DEBUG 레벨로만 기록)
QUIET_REGION_ERRORS = frozenset({ErrorCategory.ACCESS_DENIED})


class BaseService:
    """리소스 서비스 베이스

    Attributes:
        ctx: 애플리케이션 컨텍스트 (캐시, 브로커, 실행기, 설정)
    """

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    # =========================================================================
    # 캐시
    # =========================================================================

    def _cached(self, key: str, item_type: type | None = None) -> list[Any] | None:
        """캐시된 리스트 조회 (없거나 타입이 다르면 None)"""
        return self.ctx.cache.get(key, list, item_type)

    def _cached_value(self, key: str, expected_type: type) -> Any | None:
        return self.ctx.cache.get(key, expected_type)

    def _store(self, key: str, value: Any) -> Any:
        """설정된 TTL로 캐시에 저장 후 값을 그대로 반환"""
        self.ctx.cache.set(key, value, self.ctx.settings.CACHE_TTL_SECONDS)
        return value

    def _invalidate(self, invalidation: Invalidation) -> None:
        invalidation.apply(self.ctx.cache)

    # =========================================================================
    # 세션
    # =========================================================================

    def _session(self, account_id: str, profile: SessionProfile = INTERACTIVE) -> boto3.Session:
        return self.ctx.broker.resolve_session(account_id, profile)

    def _client(self, account_id: str, service: str, region: str | None = None) -> Any:
        """계정 세션으로 만든 서비스 client (region이 None이면 세션 기본 리전)"""
        return get_client(self._session(account_id), service, region_name=region)

    def _account_name(self, account_id: str) -> str:
        return self.ctx.accounts.get_account_name(account_id)

    # =========================================================================
    # 팬아웃
    # =========================================================================

    def _fan_out_accounts(
        self,
        func: Callable[[boto3.Session, str, str, str], Any],
        operation: str,
        service: str = "default",
        accounts: Sequence[Account] | None = None,
        nested: bool = False,
    ) -> list[Any]:
        """접근 가능한 모든 계정에 작업 실행 후 성공 결과를 평탄화하여 반환

        Args:
            func: (session, account_id, account_name, region) -> 결과
            operation: 로그용 작업 이름
            service: 스레드 이름용 서비스 이름
            accounts: 대상 계정 (None이면 접근 가능한 전체 계정)
            nested: func가 리전 팬아웃을 포함하는지 (True면 리전 수만큼 늘린 제한 시간 적용)

        Returns:
            성공한 계정 결과를 이어붙인 리스트
        """
        if accounts is None:
            accounts = self.ctx.accounts.list_accessible()

        executor = self.ctx.nested_executor if nested else self.ctx.executor
        result = executor.execute(account_units(accounts, self.ctx.broker), func, service=service)
        return self._merge(result, operation)

    def _fan_out_shared(
        self,
        targets: Sequence[tuple[str, str]],
        session: Any,
        func: Callable[[Any, str, str, str], Any],
        operation: str,
        service: str = "default",
    ) -> list[Any]:
        """공유 세션으로 대상마다 작업 실행 후 성공 결과를 평탄화하여 반환

        역할 위임 없이 관리 계정 세션(또는 Azure 클라이언트) 하나로
        계정/구독별 조회를 병렬화합니다.

        Args:
            targets: (식별자, 이름) 목록
            session: 모든 작업이 공유할 세션 또는 클라이언트
            func: (session, identifier, name, region) -> 결과
            operation: 로그용 작업 이름
            service: 스레드 이름용 서비스 이름
        """
        result = self.ctx.executor.execute(shared_session_units(targets, session), func, service=service)
        return self._merge(result, operation)

    def _merge(self, result: ParallelExecutionResult, operation: str) -> list[Any]:
        log_failures(result, operation)
        logger.info(f"{operation}: {result.success_count}/{result.total_count}개 작업 성공")
        if result.has_any_failure():
            logger.info(f"{operation} 실패 요약\n{result.get_error_summary()}")
        return result.get_flat_data()

    def _fan_out_regions(
        self,
        session: boto3.Session,
        account_id: str,
        account_name: str,
        func: Callable[[boto3.Session, str, str, str], Any],
        operation: str,
        service: str = "default",
        regions: Sequence[str] | None = None,
        quiet_categories: frozenset[ErrorCategory] = QUIET_REGION_ERRORS,
    ) -> list[Any]:
        """한 계정의 리전마다 작업 실행 후 성공 결과를 평탄화하여 반환

        Args:
            session: 계정 세션 (모든 리전 작업이 공유)
            account_id: 계정 ID
            account_name: 계정 이름
            func: (session, account_id, account_name, region) -> 결과
            operation: 로그용 작업 이름
            service: 스레드 이름용 서비스 이름
            regions: 대상 리전 (None이면 계정의 활성 리전)
            quiet_categories: DEBUG 레벨로만 기록할 에러 카테고리

        Returns:
            성공한 리전 결과를 이어붙인 리스트
        """
        if regions is None:
            regions = self.ctx.regions.list_regions(session, account_id)

        units = region_units(account_id, account_name, session, regions)
        result = self.ctx.region_executor.execute(units, func, service=service)
        log_failures(result, f"{operation} [{account_id}]", quiet_categories)
        return result.get_flat_data()

    # =========================================================================
    # 리전 리소스 목록 (계정별 / 전체 집계)
    # =========================================================================

    def _list_account_resources(
        self,
        family: KeyFamily,
        item_type: type,
        account_id: str,
        fetch: Callable[[boto3.Session, str, str, str], list[Any]],
        operation: str,
        service: str = "ec2",
        regions: Sequence[str] | None = None,
        session: boto3.Session | None = None,
        account_name: str | None = None,
    ) -> list[Any]:
        """한 계정의 리전 리소스 목록 (계정 키로 캐시)

        Args:
            family: 캐시 키 패밀리
            item_type: 캐시 항목 타입 (타입이 다르면 캐시 미스)
            account_id: 계정 ID
            fetch: 리전 단위 조회 함수 (session, account_id, account_name, region) -> list
            operation: 로그용 작업 이름
            service: 스레드 이름용 서비스 이름
            regions: 대상 리전 (None이면 계정의 활성 리전)
            session: 이미 획득한 세션 (None이면 새로 위임)
            account_name: 계정 이름 (None이면 캐시된 계정 목록에서 조회)

        Raises:
            SessionError: 세션을 새로 위임해야 하는데 계정에 접근할 수 없음
        """
        key = family.account_key(account_id)
        cached = self._cached(key, item_type)
        if cached is not None:
            return cached

        if session is None:
            session = self._session(account_id)
        if account_name is None:
            account_name = self._account_name(account_id)

        items = self._fan_out_regions(session, account_id, account_name, fetch, operation, service, regions)
        return self._store(key, items)

    def _list_all_resources(
        self,
        family: KeyFamily,
        item_type: type,
        fetch: Callable[[boto3.Session, str, str, str], list[Any]],
        operation: str,
        service: str = "ec2",
        regions: Sequence[str] | None = None,
    ) -> list[Any]:
        """접근 가능한 전체 계정 × 리전 리소스 목록 (집계 키로 캐시)

        계정별 결과는 계정 키로도 캐시되어 이후 계정 단위 조회가 재사용합니다.
        """
        cached = self._cached(family.aggregate, item_type)
        if cached is not None:
            return cached

        def collect(session, account_id, account_name, region):
            return self._list_account_resources(
                family,
                item_type,
                account_id,
                fetch,
                operation,
                service,
                regions,
                session=session,
                account_name=account_name,
            )

        items = self._fan_out_accounts(collect, operation, service, nested=True)
        return self._store(family.aggregate, items)
