"""
core/exceptions.py - 통합 예외 계층 구조

애플리케이션 전체에서 사용되는 예외 클래스들을 정의합니다.
SDK 에러는 호출 경계에서 한 번만 분류되며, 이후 로직은 문자열이 아닌 타입으로 분기합니다.

예외 계층 구조:
    IAMManagerError (베이스)
    ├── SessionError (AssumeRole 실패)
    ├── AccountNotFoundError (조직에 없는 계정)
    ├── APICallError (AWS API 호출 실패, category 보유)
    │   ├── AccessDeniedError
    │   ├── NotFoundError
    │   └── ThrottledError
    ├── ValidationError (입력 검증)
    ├── ConflictError (리소스 상태상 수행 불가)
    ├── PartialFailureError (일괄 작업 부분 실패)
    └── ConfigError (설정 관련)

Usage:
    from core.exceptions import translate_client_error

    with translate_client_error("iam", "delete_user"):
        iam.delete_user(UserName=username)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from botocore.exceptions import ClientError

from core.parallel.types import ErrorCategory

# =============================================================================
# 에러 코드 분류표
# =============================================================================

ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
        "UnauthorizedOperation",
        "AuthFailure",
        "AllAccessDisabled",
        "InvalidClientTokenId",
    }
)

THROTTLING_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RateExceeded",
        "SlowDown",
    }
)

NOT_FOUND_CODES = frozenset(
    {
        "ResourceNotFoundException",
        "NotFoundException",
        "NoSuchEntity",
        "NoSuchBucket",
        "AccountNotFoundException",
        "InvalidInstanceID.NotFound",
        "InvalidVolume.NotFound",
        "InvalidSnapshot.NotFound",
        "InvalidGroup.NotFound",
        "InvalidVpcID.NotFound",
        "NatGatewayNotFound",
        "LoadBalancerNotFound",
    }
)

EXPIRED_TOKEN_CODES = frozenset({"ExpiredToken", "ExpiredTokenException"})


# =============================================================================
# 베이스 예외
# =============================================================================


class IAMManagerError(Exception):
    """IAM Manager 기본 예외 클래스

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 계정/세션 관련 예외
# =============================================================================


class SessionError(IAMManagerError):
    """교차 계정 세션 생성 실패

    AssumeRole이 거부되었거나 실패한 경우 발생합니다.
    일괄 작업에서는 해당 계정을 건너뛰고, 단일 대상 작업에서는 그대로 전파됩니다.
    """

    def __init__(
        self,
        account_id: str,
        message: str,
        cause: Exception | None = None,
    ):
        super().__init__(f"세션 오류 [{account_id}]: {message}", cause)
        self.account_id = account_id
        self.details["account_id"] = account_id

    @property
    def category(self) -> ErrorCategory:
        if isinstance(self.cause, APICallError):
            return self.cause.category
        return ErrorCategory.ACCESS_DENIED


class AccountNotFoundError(IAMManagerError):
    """조직에 존재하지 않는 계정"""

    def __init__(self, account_id: str):
        super().__init__(f"계정을 찾을 수 없습니다: {account_id}")
        self.account_id = account_id
        self.details["account_id"] = account_id


# =============================================================================
# API 호출 관련 예외
# =============================================================================


class APICallError(IAMManagerError):
    """AWS API 호출 관련 예외

    boto3/botocore의 ClientError를 래핑하고 ErrorCategory로 분류합니다.
    from_client_error()는 카테고리에 맞는 하위 클래스를 반환합니다.
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        service: str,
        operation: str,
        error_code: str | None = None,
        error_message: str | None = None,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        message = f"{service}.{operation}"
        if error_code:
            message = f"{message} 실패 ({error_code})"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message)
        self.cause = cause
        self.service = service
        self.operation = operation
        self.error_code = error_code
        self.error_message = error_message
        if category is not None:
            self.category = category
        self.details.update(
            {
                "service": service,
                "operation": operation,
                "error_code": error_code,
                "category": self.category.value,
            }
        )

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_client_error(
        cls,
        service: str,
        operation: str,
        client_error: Exception,
    ) -> APICallError:
        """botocore.exceptions.ClientError로부터 생성

        Args:
            service: AWS 서비스 이름
            operation: API 작업 이름
            client_error: ClientError 예외

        Returns:
            에러 카테고리에 맞는 APICallError 하위 클래스 인스턴스
        """
        error_code = None
        error_message = None

        response = getattr(client_error, "response", None)
        if response is not None:
            error_info = response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")

        category = categorize_error_code(error_code or "")
        return cls.for_category(category, service, operation, error_code, error_message, client_error)

    @classmethod
    def for_category(
        cls,
        category: ErrorCategory,
        service: str,
        operation: str,
        error_code: str | None = None,
        error_message: str | None = None,
        cause: Exception | None = None,
    ) -> APICallError:
        """이미 분류된 카테고리로 생성 (AWS 외 HTTP API 경계에서 사용)

        Returns:
            카테고리에 맞는 APICallError 하위 클래스 인스턴스
        """
        error_class = _CATEGORY_CLASSES.get(category, APICallError)
        return error_class(
            service=service,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            cause=cause,
            category=category,
        )


class AccessDeniedError(APICallError):
    """권한 없음"""

    category = ErrorCategory.ACCESS_DENIED


class NotFoundError(APICallError):
    """리소스 없음"""

    category = ErrorCategory.NOT_FOUND


class ThrottledError(APICallError):
    """요청 제한 초과"""

    category = ErrorCategory.THROTTLING


_CATEGORY_CLASSES: dict[ErrorCategory, type[APICallError]] = {
    ErrorCategory.ACCESS_DENIED: AccessDeniedError,
    ErrorCategory.NOT_FOUND: NotFoundError,
    ErrorCategory.THROTTLING: ThrottledError,
}


# =============================================================================
# 요청/상태 관련 예외
# =============================================================================


class ValidationError(IAMManagerError):
    """입력 검증 오류"""

    def __init__(
        self,
        field: str,
        value: Any,
        expected: str,
        cause: Exception | None = None,
    ):
        message = f"검증 오류 [{field}]: 예상값 '{expected}', 실제값 '{value}'"
        super().__init__(message, cause)
        self.field = field
        self.value = value
        self.expected = expected
        self.details.update(
            {
                "field": field,
                "value": str(value),
                "expected": expected,
            }
        )


class ConflictError(IAMManagerError):
    """리소스 상태 때문에 작업을 수행할 수 없음

    예: 사용 중인 보안 그룹 삭제, 연결된 볼륨 삭제
    """

    def __init__(self, resource_id: str, message: str):
        super().__init__(f"{resource_id}: {message}")
        self.resource_id = resource_id
        self.details["resource_id"] = resource_id


class PartialFailureError(IAMManagerError):
    """일괄 작업 중 일부 실패

    Attributes:
        succeeded: 성공한 항목 ID 목록
        errors: 실패 항목별 에러 메시지
    """

    def __init__(self, message: str, succeeded: list[str], errors: dict[str, str]):
        super().__init__(message)
        self.succeeded = succeeded
        self.errors = errors
        self.details.update({"succeeded": succeeded, "errors": errors})


class ConfigError(IAMManagerError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Exception | None = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def categorize_error_code(error_code: str) -> ErrorCategory:
    """AWS 에러 코드를 ErrorCategory로 분류

    Args:
        error_code: AWS 에러 코드 (예: "AccessDenied", "NoSuchEntity")

    Returns:
        분류된 카테고리. 알 수 없으면 UNKNOWN
    """
    if not error_code:
        return ErrorCategory.UNKNOWN
    if error_code in ACCESS_DENIED_CODES:
        return ErrorCategory.ACCESS_DENIED
    if error_code in THROTTLING_CODES:
        return ErrorCategory.THROTTLING
    if error_code in NOT_FOUND_CODES or error_code.endswith(".NotFound"):
        return ErrorCategory.NOT_FOUND
    if error_code in EXPIRED_TOKEN_CODES:
        return ErrorCategory.EXPIRED_TOKEN
    if "Timeout" in error_code:
        return ErrorCategory.TIMEOUT
    return ErrorCategory.UNKNOWN


def _error_code(error: Exception) -> str:
    if isinstance(error, APICallError):
        return error.error_code or ""
    response = getattr(error, "response", None)
    if response is not None:
        return response.get("Error", {}).get("Code", "")
    return ""


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인"""
    if isinstance(error, APICallError):
        return error.category == ErrorCategory.NOT_FOUND
    return categorize_error_code(_error_code(error)) == ErrorCategory.NOT_FOUND


@contextmanager
def translate_client_error(service: str, operation: str) -> Iterator[None]:
    """ClientError를 분류된 APICallError로 변환하는 컨텍스트 매니저

    Example:
        with translate_client_error("ec2", "delete_vpc"):
            ec2.delete_vpc(VpcId=vpc_id)
    """
    try:
        yield
    except ClientError as e:
        raise APICallError.from_client_error(service, operation, e) from e
