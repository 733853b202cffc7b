# cli/ui - Rich 콘솔 출력
"""
CLI 출력 컴포넌트

Rich 콘솔, 상태 메시지, 테이블 출력 함수를 제공합니다.
"""

from .console import (
    SYMBOL_ERROR,
    SYMBOL_INFO,
    SYMBOL_SUCCESS,
    SYMBOL_WARNING,
    console,
    get_console,
    print_error,
    print_info,
    print_success,
    print_table,
    print_warning,
)

__all__ = [
    "SYMBOL_ERROR",
    "SYMBOL_INFO",
    "SYMBOL_SUCCESS",
    "SYMBOL_WARNING",
    "console",
    "get_console",
    "print_error",
    "print_info",
    "print_success",
    "print_table",
    "print_warning",
]
