"""
tests/core/parallel/test_parallel_errors.py - core/parallel/errors.py 테스트
"""

import logging

from botocore.exceptions import EndpointConnectionError, ReadTimeoutError

from core.exceptions import APICallError, SessionError
from core.parallel.errors import categorize_error, get_error_code, log_failures
from core.parallel.types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult


class TestCategorizeError:
    """예외 분류 테스트"""

    def test_client_error(self, client_error):
        assert categorize_error(client_error("Throttling")) == ErrorCategory.THROTTLING

    def test_api_call_error_keeps_category(self, client_error):
        error = APICallError.from_client_error("ec2", "x", client_error("InvalidVpcID.NotFound"))

        assert categorize_error(error) == ErrorCategory.NOT_FOUND

    def test_session_error(self):
        assert categorize_error(SessionError("1", "x")) == ErrorCategory.ACCESS_DENIED

    def test_network_errors(self):
        assert categorize_error(EndpointConnectionError(endpoint_url="https://x")) == ErrorCategory.NETWORK
        assert categorize_error(ReadTimeoutError(endpoint_url="https://x")) == ErrorCategory.TIMEOUT

    def test_unknown(self):
        assert categorize_error(RuntimeError("boom")) == ErrorCategory.UNKNOWN


class TestGetErrorCode:
    """에러 코드 추출 테스트"""

    def test_from_session_error_cause(self, client_error):
        cause = APICallError.from_client_error("sts", "assume_role", client_error("AccessDenied"))

        assert get_error_code(SessionError("1", "x", cause=cause)) == "AccessDenied"

    def test_fallback_to_class_name(self):
        assert get_error_code(RuntimeError("boom")) == "RuntimeError"


class TestLogFailures:
    """실패 로깅 테스트"""

    def _result(self, category):
        error = TaskError("1", "us-east-1", category, "Code", "msg")
        return ParallelExecutionResult(results=(TaskResult("1", "us-east-1", False, error=error),))

    def test_warning(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="core.parallel.errors"):
            log_failures(self._result(ErrorCategory.THROTTLING), "list_vpcs")

        assert [r.levelno for r in caplog.records] == [logging.WARNING]
        assert "list_vpcs" in caplog.records[0].getMessage()

    def test_quiet_category_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="core.parallel.errors"):
            log_failures(
                self._result(ErrorCategory.ACCESS_DENIED),
                "list_vpcs",
                quiet_categories=frozenset({ErrorCategory.ACCESS_DENIED}),
            )

        assert [r.levelno for r in caplog.records] == [logging.DEBUG]
