"""
tests/core/parallel/test_parallel_types.py - core/parallel/types.py 테스트
"""

from core.parallel.types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult


def _error(identifier, category=ErrorCategory.ACCESS_DENIED, code="AccessDenied"):
    return TaskError(identifier=identifier, region="us-east-1", category=category, error_code=code, message="x")


class TestTaskError:
    """TaskError 테스트"""

    def test_str(self):
        assert str(_error("1")) == "[1/us-east-1] AccessDenied: x"


class TestParallelExecutionResult:
    """ParallelExecutionResult 테스트"""

    def _result(self):
        return ParallelExecutionResult(
            results=(
                TaskResult("1", "", True, data=["a", "b"]),
                TaskResult("2", "", True, data="c"),
                TaskResult("3", "", True, data=None),
                TaskResult("4", "", False, error=_error("4")),
                TaskResult("5", "", False, error=_error("5", ErrorCategory.TIMEOUT, "DeadlineExceeded")),
            )
        )

    def test_counts(self):
        result = self._result()

        assert result.total_count == 5
        assert result.success_count == 3
        assert result.error_count == 2
        assert result.has_any_failure()
        assert not ParallelExecutionResult().has_any_failure()

    def test_flat_data(self):
        """리스트는 펼치고 단일 값은 그대로, None은 제외"""
        assert self._result().get_flat_data() == ["a", "b", "c"]

    def test_errors_by_category(self):
        by_category = self._result().get_errors_by_category()

        assert set(by_category) == {ErrorCategory.ACCESS_DENIED, ErrorCategory.TIMEOUT}

    def test_error_summary(self):
        summary = self._result().get_error_summary()

        assert "총 2개 작업 실패" in summary
        assert "[timeout] 1건" in summary

    def test_error_summary_truncates(self):
        errors = tuple(TaskResult(str(i), "", False, error=_error(str(i))) for i in range(7))

        summary = ParallelExecutionResult(results=errors).get_error_summary(max_per_category=5)

        assert "... 외 2건" in summary

    def test_empty_summary(self):
        assert ParallelExecutionResult().get_error_summary() == ""
