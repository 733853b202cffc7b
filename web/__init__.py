# web/__init__.py
"""
web - HTTP JSON API

Flask 앱 팩토리와 /api 라우트를 제공합니다.

Example:
    from core.context import AppContext
    from web import create_app

    app = create_app(AppContext.create())
    app.run(port=8080)
"""

__all__ = ["create_app"]


def __getattr__(name: str):
    """Lazy import - Flask는 서버 실행 시점에만 로드"""
    if name == "create_app":
        from .app import create_app

        return create_app

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
