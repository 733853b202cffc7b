"""
core/parallel - 병렬 처리 모듈

멀티 계정/리전 AWS 작업을 크기가 제한된 스레드 풀에서 병렬 실행합니다.

주요 구성 요소:
- ParallelSessionExecutor: 작업 단위 병렬 실행기 (작업 단위별 제한 시간)
- get_client: retry/timeout이 설정된 boto3 client 생성
- ErrorCategory / TaskError / TaskResult / ParallelExecutionResult: 결과 타입

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
    core.exceptions가 types를 참조하므로 하위 모듈을 즉시 로드하지 않습니다.
"""

__all__: list[str] = [
    # Executor
    "ParallelSessionExecutor",
    "ParallelConfig",
    "WorkUnit",
    "account_units",
    "region_units",
    "shared_session_units",
    "scaled_timeout",
    # Client
    "get_client",
    # Errors
    "categorize_error",
    "get_error_code",
    "log_failures",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]

_IMPORT_MAPPING = {
    "ParallelSessionExecutor": ".executor",
    "ParallelConfig": ".executor",
    "WorkUnit": ".executor",
    "account_units": ".executor",
    "region_units": ".executor",
    "shared_session_units": ".executor",
    "scaled_timeout": ".executor",
    "get_client": ".client",
    "categorize_error": ".errors",
    "get_error_code": ".errors",
    "log_failures": ".errors",
    "ErrorCategory": ".types",
    "TaskError": ".types",
    "TaskResult": ".types",
    "ParallelExecutionResult": ".types",
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        import importlib

        module = importlib.import_module(_IMPORT_MAPPING[name], __name__)
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
