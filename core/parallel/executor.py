"""
core/parallel/executor.py - 병렬 세션 실행기

Map-Reduce 패턴으로 멀티 계정/리전 AWS 작업을 병렬 처리합니다.
크기가 제한된 ThreadPoolExecutor 위에서 작업 단위별 제한 시간을 적용하며,
실패한 작업 단위는 결과에 기록만 하고 예외로 올리지 않습니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수, 작업 단위 제한 시간)
- WorkUnit: 작업 단위 (계정, 또는 계정 × 리전)
- ParallelSessionExecutor: 작업 단위 병렬 실행기
- account_units / region_units / shared_session_units: 작업 단위 생성 헬퍼

Example:
    def collect_users(session, account_id, account_name, region):
        iam = get_client(session, "iam")
        return iam.list_users()["Users"]

    executor = ParallelSessionExecutor(ParallelConfig(max_workers=20))
    result = executor.execute(account_units(accounts, broker), collect_users, service="iam")
    users = result.get_flat_data()
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from .errors import categorize_error, get_error_code
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

if TYPE_CHECKING:
    import boto3

    from core.auth.broker import CredentialBroker
    from core.auth.types import Account

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 제한 시간 감시 주기 상한 (초)
_MAX_POLL_INTERVAL = 1.0


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
        unit_timeout: 작업 단위 제한 시간 (초, None이면 제한 없음)
    """

    max_workers: int = 20
    unit_timeout: float | None = 120.0

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100
        if self.unit_timeout is not None and self.unit_timeout <= 0:
            self.unit_timeout = None


@dataclass
class WorkUnit:
    """작업 단위

    Attributes:
        account_id: AWS 계정 ID
        account_name: AWS 계정 이름
        region: 대상 리전 (계정 단위 작업이면 빈 문자열)
        session_getter: boto3 Session을 반환하는 지연 팩토리 함수
    """

    account_id: str
    account_name: str
    region: str
    session_getter: Callable[[], boto3.Session]


def scaled_timeout(unit_timeout: float | None, inner_units: int, inner_workers: int) -> float | None:
    """내부 팬아웃을 포함하는 작업 단위의 제한 시간

    내부 작업은 inner_workers개씩 차례로 각자 unit_timeout 안에 끝나므로
    (내부 실행 차수 + 세션/리전 조회 1회)배까지 허용합니다.

    Example:
        scaled_timeout(120, 17, 10)  # 120 * (2 + 1) = 360
    """
    if unit_timeout is None:
        return None
    waves = math.ceil(max(inner_units, 1) / max(inner_workers, 1))
    return unit_timeout * (waves + 1)


def account_units(accounts: Sequence[Account], broker: CredentialBroker) -> list[WorkUnit]:
    """계정 단위 작업 목록 생성

    각 작업은 실행 시점에 브로커로 자체 세션을 획득합니다.
    """
    units: list[WorkUnit] = []
    for account in accounts:

        def make_session_getter(acc_id=account.id):
            return lambda: broker.resolve_session(acc_id)

        units.append(
            WorkUnit(
                account_id=account.id,
                account_name=account.name,
                region="",
                session_getter=make_session_getter(),
            )
        )
    return units


def region_units(
    account_id: str,
    account_name: str,
    session: boto3.Session,
    regions: Sequence[str],
) -> list[WorkUnit]:
    """한 계정의 리전 단위 작업 목록 생성 (이미 획득한 세션 공유)"""
    return [
        WorkUnit(
            account_id=account_id,
            account_name=account_name,
            region=region,
            session_getter=lambda: session,
        )
        for region in regions
    ]


def shared_session_units(targets: Sequence[tuple[str, str]], session: Any) -> list[WorkUnit]:
    """같은 세션을 공유하는 대상 단위 작업 목록 생성

    관리 계정 API로 계정별 정보를 조회하거나 (Identity Center 할당),
    AWS 외 클라이언트로 구독별 리소스를 조회할 때 사용합니다.

    Args:
        targets: (식별자, 이름) 목록
        session: 모든 작업이 공유할 세션 또는 클라이언트
    """
    return [
        WorkUnit(
            account_id=identifier,
            account_name=name,
            region="",
            session_getter=lambda: session,
        )
        for identifier, name in targets
    ]


class ParallelSessionExecutor:
    """병렬 세션 실행기

    특징:
    - 크기가 제한된 ThreadPoolExecutor 기반 병렬 처리
    - 작업 단위별 제한 시간 (초과 시 TIMEOUT 실패로 기록하고 결과 폐기)
    - 작업 단위 실패는 결과에만 기록 (전체 작업은 실패하지 않음)
    - 결과 순서는 보장하지 않음

    Example:
        executor = ParallelSessionExecutor(ParallelConfig(max_workers=10, unit_timeout=30))
        result = executor.execute(units, collect_vpcs, service="ec2")
        print(f"수집: {result.success_count}, 실패: {result.error_count}")
    """

    def __init__(self, config: ParallelConfig | None = None):
        self.config = config or ParallelConfig()

    def execute(
        self,
        units: Sequence[WorkUnit],
        func: Callable[[boto3.Session, str, str, str], T],
        service: str = "default",
    ) -> ParallelExecutionResult[T]:
        """작업 함수를 모든 작업 단위에 병렬 실행

        Args:
            units: 작업 단위 목록
            func: (session, account_id, account_name, region) -> T 함수
            service: 로그/스레드 이름용 서비스 이름

        Returns:
            ParallelExecutionResult[T]: 전체 실행 결과
        """
        if not units:
            logger.debug(f"실행할 작업이 없습니다 (service={service})")
            return ParallelExecutionResult()

        logger.debug(
            f"병렬 실행 시작: {len(units)}개 작업, max_workers={self.config.max_workers}, service={service}"
        )

        start_time = time.monotonic()
        cancelled = threading.Event()
        started_at: dict[int, float] = {}
        lock = threading.Lock()
        results: list[TaskResult[T]] = []

        pool = ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(units)),
            thread_name_prefix=f"fanout-{service}",
        )
        futures: dict[Future[TaskResult[T]], tuple[int, WorkUnit]] = {}
        try:
            for index, unit in enumerate(units):
                future = pool.submit(self._execute_single, func, unit, index, started_at, lock, cancelled)
                futures[future] = (index, unit)

            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=self._poll_interval(), return_when=FIRST_COMPLETED)

                for future in done:
                    results.append(self._collect(future, futures[future][1]))

                if self.config.unit_timeout is not None:
                    expired = self._find_expired(pending, futures, started_at, lock)
                    for future in expired:
                        pending.discard(future)
                        unit = futures[future][1]
                        if future.done():
                            # wait() 이후 스캔 전에 끝난 작업은 정상 결과로 수집
                            results.append(self._collect(future, unit))
                            continue
                        future.cancel()
                        logger.warning(
                            f"작업 제한 시간 초과 [{unit.account_id}/{unit.region}]: {self.config.unit_timeout}초"
                        )
                        results.append(self._timeout_result(unit))
        finally:
            cancelled.set()
            pool.shutdown(wait=False, cancel_futures=True)

        total_time = (time.monotonic() - start_time) * 1000
        exec_result = ParallelExecutionResult(results=tuple(results))

        logger.debug(
            f"병렬 실행 완료: 성공 {exec_result.success_count}, 실패 {exec_result.error_count}, 총 {total_time:.0f}ms"
        )

        return exec_result

    def _poll_interval(self) -> float | None:
        if self.config.unit_timeout is None:
            return None
        return min(_MAX_POLL_INTERVAL, self.config.unit_timeout / 4)

    def _find_expired(
        self,
        pending: set[Future[TaskResult[T]]],
        futures: dict[Future[TaskResult[T]], tuple[int, WorkUnit]],
        started_at: dict[int, float],
        lock: threading.Lock,
    ) -> list[Future[TaskResult[T]]]:
        """제한 시간을 넘긴 실행 중 작업 탐색 (대기열 작업은 제외)"""
        assert self.config.unit_timeout is not None
        now = time.monotonic()
        expired = []
        with lock:
            for future in pending:
                began = started_at.get(futures[future][0])
                if began is not None and now - began > self.config.unit_timeout:
                    expired.append(future)
        return expired

    def _collect(self, future: Future[TaskResult[T]], unit: WorkUnit) -> TaskResult[T]:
        try:
            return future.result()
        except Exception as e:
            # 예상치 못한 executor 에러
            logger.error(f"작업 실행 중 예외 [{unit.account_id}/{unit.region}]: {e}")
            _clear_exception_chain(e)
            return TaskResult(
                identifier=unit.account_id,
                region=unit.region,
                success=False,
                error=TaskError(
                    identifier=unit.account_id,
                    region=unit.region,
                    category=ErrorCategory.UNKNOWN,
                    error_code="ExecutorError",
                    message=str(e),
                    original_exception=e,
                ),
            )

    def _timeout_result(self, unit: WorkUnit) -> TaskResult[T]:
        timeout = self.config.unit_timeout or 0.0
        return TaskResult(
            identifier=unit.account_id,
            region=unit.region,
            success=False,
            error=TaskError(
                identifier=unit.account_id,
                region=unit.region,
                category=ErrorCategory.TIMEOUT,
                error_code="DeadlineExceeded",
                message=f"작업이 {timeout}초 안에 끝나지 않았습니다",
            ),
            duration_ms=timeout * 1000,
        )

    def _execute_single(
        self,
        func: Callable[[boto3.Session, str, str, str], T],
        unit: WorkUnit,
        index: int,
        started_at: dict[int, float],
        lock: threading.Lock,
        cancelled: threading.Event,
    ) -> TaskResult[T]:
        """단일 작업 실행 (워커 스레드 내에서 호출)

        세션 획득 실패를 포함한 모든 예외를 TaskResult로 변환합니다.
        """
        if cancelled.is_set():
            return TaskResult(
                identifier=unit.account_id,
                region=unit.region,
                success=False,
                error=TaskError(
                    identifier=unit.account_id,
                    region=unit.region,
                    category=ErrorCategory.TIMEOUT,
                    error_code="Cancelled",
                    message="실행 전에 취소되었습니다",
                ),
            )

        start_time = time.monotonic()
        with lock:
            started_at[index] = start_time

        try:
            session = unit.session_getter()
            data = func(session, unit.account_id, unit.account_name, unit.region)
            return TaskResult(
                identifier=unit.account_id,
                region=unit.region,
                success=True,
                data=data,
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        except Exception as e:
            _clear_exception_chain(e)
            return TaskResult(
                identifier=unit.account_id,
                region=unit.region,
                success=False,
                error=TaskError(
                    identifier=unit.account_id,
                    region=unit.region,
                    category=categorize_error(e),
                    error_code=get_error_code(e),
                    message=str(e),
                    original_exception=e,
                ),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
