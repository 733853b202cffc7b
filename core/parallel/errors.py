"""
core/parallel/errors.py - 작업 단위 에러 분류 및 로깅

병렬 실행 중 발생한 예외를 ErrorCategory로 분류하고,
실패한 작업 단위를 경고로 기록합니다.

주요 구성 요소:
- categorize_error: 예외 → ErrorCategory
- get_error_code: 예외 → 에러 코드 문자열
- log_failures: 실패 작업 단위 경고 로깅 (일괄 작업은 예외를 올리지 않음)
"""

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError

from botocore.exceptions import BotoCoreError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError

from core.exceptions import APICallError, SessionError, categorize_error_code

from .types import ErrorCategory, ParallelExecutionResult

logger = logging.getLogger(__name__)


def categorize_error(error: BaseException) -> ErrorCategory:
    """예외 객체를 ErrorCategory로 분류

    APICallError/SessionError는 경계에서 이미 분류된 카테고리를 사용하고,
    그 외 ClientError는 에러 코드로, 네트워크/타임아웃 에러는 타입으로 분류합니다.

    Args:
        error: 분류할 예외

    Returns:
        에러 카테고리
    """
    if isinstance(error, (APICallError, SessionError)):
        return error.category

    response = getattr(error, "response", None)
    if response is not None:
        return categorize_error_code(response.get("Error", {}).get("Code", ""))

    if isinstance(error, (ConnectTimeoutError, ReadTimeoutError, FutureTimeoutError, TimeoutError)):
        return ErrorCategory.TIMEOUT
    if isinstance(error, (EndpointConnectionError, ConnectionError)):
        return ErrorCategory.NETWORK
    if isinstance(error, BotoCoreError):
        return ErrorCategory.SERVICE_ERROR

    return ErrorCategory.UNKNOWN


def get_error_code(error: BaseException) -> str:
    """예외에서 에러 코드 추출 (없으면 예외 클래스명)"""
    if isinstance(error, APICallError) and error.error_code:
        return error.error_code
    if isinstance(error, SessionError) and isinstance(error.cause, APICallError) and error.cause.error_code:
        return error.cause.error_code

    response = getattr(error, "response", None)
    if response is not None:
        code = response.get("Error", {}).get("Code")
        if code:
            return code

    return type(error).__name__


def log_failures(
    result: ParallelExecutionResult,
    operation: str,
    quiet_categories: frozenset[ErrorCategory] = frozenset(),
) -> None:
    """실패한 작업 단위를 경고로 기록

    Args:
        result: 병렬 실행 결과
        operation: 로그에 표시할 작업 이름 (예: "list_users")
        quiet_categories: DEBUG 레벨로만 남길 카테고리 (예: 비활성 리전의 권한 오류)
    """
    for error in result.get_errors():
        if error.category in quiet_categories:
            logger.debug(f"{operation} 건너뜀 {error}")
        else:
            logger.warning(f"{operation} 실패, 건너뜀 {error}")
