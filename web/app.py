"""
web/app.py - Flask 앱 팩토리

AppContext를 주입받아 Flask 앱을 만들고, 예외 → HTTP 상태 코드 매핑과
헬스 체크 엔드포인트(/ping, /health, /ready)를 등록합니다.

에러 응답 본문:
    {"error": "<메시지>", "details": {...}}

상태 코드 매핑:
    ValidationError                   → 400
    AccessDeniedError / SessionError  → 403
    NotFoundError / AccountNotFound   → 404
    ConflictError                     → 409
    ThrottledError                    → 429
    ConfigError                       → 503 (Azure 자격증명 미설정 등)
    그 외 (PartialFailureError 포함)   → 500
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from core.exceptions import (
    AccessDeniedError,
    AccountNotFoundError,
    ConfigError,
    ConflictError,
    IAMManagerError,
    NotFoundError,
    SessionError,
    ThrottledError,
    ValidationError,
)

if TYPE_CHECKING:
    from core.context import AppContext

logger = logging.getLogger(__name__)

CONTEXT_EXTENSION = "iam_manager"

# 요청 로그를 남기지 않는 경로
HEALTH_PATHS = frozenset({"/ping", "/health", "/ready"})

# 순서대로 검사 (하위 클래스 우선)
_STATUS_MAP: tuple[tuple[type[IAMManagerError], int], ...] = (
    (ValidationError, 400),
    (AccessDeniedError, 403),
    (SessionError, 403),
    (NotFoundError, 404),
    (AccountNotFoundError, 404),
    (ConflictError, 409),
    (ThrottledError, 429),
    (ConfigError, 503),
)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Origin", "Content-Type", "Accept", "Authorization", "Cache-Control", "X-Requested-With"]


def status_for(error: IAMManagerError) -> int:
    """예외 → HTTP 상태 코드"""
    for error_type, status in _STATUS_MAP:
        if isinstance(error, error_type):
            return status
    return 500


def error_body(error: IAMManagerError) -> dict[str, Any]:
    return {"error": str(error), "details": error.details}


def get_context() -> AppContext:
    """현재 앱에 주입된 AppContext"""
    return current_app.extensions[CONTEXT_EXTENSION]


def create_app(ctx: AppContext) -> Flask:
    """Flask 앱 생성

    Args:
        ctx: 애플리케이션 컨텍스트

    Returns:
        라우트와 에러 핸들러가 등록된 Flask 앱
    """
    from .routes import api

    app = Flask(__name__)
    app.config["DEBUG"] = ctx.settings.DEBUG
    app.json.sort_keys = False
    app.extensions[CONTEXT_EXTENSION] = ctx
    CORS(app, origins="*", methods=CORS_METHODS, allow_headers=CORS_HEADERS)

    app.register_blueprint(api)
    _register_health(app)
    _register_error_handlers(app)

    @app.after_request
    def log_request(response):
        if request.path not in HEALTH_PATHS:
            logger.info(f"{request.method} {request.path} → {response.status_code}")
        return response

    return app


def _register_health(app: Flask) -> None:
    @app.get("/ping")
    def ping():
        return jsonify({"status": "ok"})

    @app.get("/health")
    def health():
        return jsonify({"status": "healthy"})

    @app.get("/ready")
    def ready():
        return jsonify({"status": "ready"})


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(IAMManagerError)
    def handle_app_error(e: IAMManagerError):
        status = status_for(e)
        if status >= 500:
            logger.error(f"{request.method} {request.path} 실패: {e}")
        else:
            logger.warning(f"{request.method} {request.path} 실패 ({status}): {e}")
        return jsonify(error_body(e)), status

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description, "details": {}}), e.code
        logger.exception(f"{request.method} {request.path} 처리 중 예기치 않은 오류")
        return jsonify({"error": str(e), "details": {}}), 500
