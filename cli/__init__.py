# cli/__init__.py
"""
cli - iam-manager 명령줄 인터페이스

Usage:
    from cli.app import cli
    cli()
"""

__all__ = ["cli"]


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name == "cli":
        from .app import cli

        return cli

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
