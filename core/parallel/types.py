"""
core/parallel/types.py - 병렬 실행 결과 타입

병렬 실행의 작업 단위 결과와 에러를 구조화된 형태로 표현합니다.

주요 구성 요소:
- ErrorCategory: 에러 분류 (로깅 판단용)
- TaskError: 작업 단위 에러 정보
- TaskResult: 작업 단위 결과 (성공 데이터 또는 에러)
- ParallelExecutionResult: 전체 실행 결과 (Map-Reduce의 Reduce 입력)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    """에러 카테고리"""

    THROTTLING = "throttling"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    UNKNOWN = "unknown"


@dataclass
class TaskError:
    """작업 단위 에러 정보

    Attributes:
        identifier: 계정 ID
        region: 리전 (계정 단위 작업이면 빈 문자열)
        category: 에러 카테고리
        error_code: AWS 에러 코드 또는 예외 클래스명
        message: 에러 메시지
        original_exception: 원본 예외
    """

    identifier: str
    region: str
    category: ErrorCategory
    error_code: str
    message: str
    original_exception: Exception | None = None

    def __str__(self) -> str:
        return f"[{self.identifier}/{self.region}] {self.error_code}: {self.message}"


@dataclass
class TaskResult(Generic[T]):
    """작업 단위 결과

    Attributes:
        identifier: 계정 ID
        region: 리전
        success: 성공 여부
        data: 성공 시 반환 데이터
        error: 실패 시 에러 정보
        duration_ms: 소요 시간 (밀리초)
    """

    identifier: str
    region: str
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        status = "OK" if self.success else "FAIL"
        return f"[{self.identifier}/{self.region}] {status} ({self.duration_ms:.0f}ms)"


@dataclass
class ParallelExecutionResult(Generic[T]):
    """병렬 실행 전체 결과

    Example:
        result = executor.execute(units, collect_users)
        users = result.get_flat_data()
        if result.has_any_failure():
            logger.warning(result.get_error_summary())
    """

    results: tuple[TaskResult[T], ...] = ()

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def has_any_failure(self) -> bool:
        return self.error_count > 0

    def get_data(self) -> list[T]:
        """성공한 작업의 데이터 목록 (None 제외)"""
        return [r.data for r in self.results if r.success and r.data is not None]

    def get_flat_data(self) -> list[Any]:
        """성공한 작업의 데이터를 평탄화하여 반환

        리스트 데이터는 펼치고, 단일 값은 그대로 추가합니다.
        """
        flat: list[Any] = []
        for data in self.get_data():
            if isinstance(data, list):
                flat.extend(data)
            else:
                flat.append(data)
        return flat

    def get_errors(self) -> list[TaskError]:
        return [r.error for r in self.results if r.error is not None]

    def get_errors_by_category(self) -> dict[ErrorCategory, list[TaskError]]:
        by_category: dict[ErrorCategory, list[TaskError]] = defaultdict(list)
        for error in self.get_errors():
            by_category[error.category].append(error)
        return dict(by_category)

    def get_error_summary(self, max_per_category: int = 5) -> str:
        """카테고리별 에러 요약 문자열"""
        errors = self.get_errors()
        if not errors:
            return ""

        lines = [f"총 {len(errors)}개 작업 실패"]
        for category, category_errors in self.get_errors_by_category().items():
            lines.append(f"[{category.value}] {len(category_errors)}건")
            for error in category_errors[:max_per_category]:
                lines.append(f"  - {error.identifier}/{error.region}: {error.error_code}")
            remaining = len(category_errors) - max_per_category
            if remaining > 0:
                lines.append(f"  ... 외 {remaining}건")
        return "\n".join(lines)
