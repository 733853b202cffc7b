"""
core/azure/client.py - Azure REST 클라이언트

서비스 주체 자격증명(client credentials)으로 OAuth2 토큰을 발급받아
Microsoft Graph와 Azure Resource Manager REST API를 호출합니다.

- 토큰은 scope별로 만료 직전까지 재사용합니다 (스레드 안전)
- HTTP/네트워크 오류는 호출 경계에서 APICallError 하위 클래스로 변환합니다
- paginate()는 Graph(@odata.nextLink)와 ARM(nextLink) 페이지 링크를 모두 따라갑니다

Example:
    client = AzureClient(AzureCredentials.from_settings(settings))
    subs = client.paginate(MANAGEMENT_SCOPE, f"{MANAGEMENT_URL}/subscriptions", {"api-version": "2020-01-01"})
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from core.exceptions import APICallError, ConfigError, categorize_error_code
from core.parallel.types import ErrorCategory

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger(__name__)

LOGIN_URL = "https://login.microsoftonline.com"
GRAPH_URL = "https://graph.microsoft.com/v1.0"
MANAGEMENT_URL = "https://management.azure.com"

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"

DEFAULT_TIMEOUT = 60.0  # 초
TOKEN_REFRESH_MARGIN = 60  # 만료 N초 전이면 재발급

_SCOPE_SERVICES = {GRAPH_SCOPE: "graph", MANAGEMENT_SCOPE: "arm"}

_STATUS_CATEGORIES = {
    401: ErrorCategory.ACCESS_DENIED,
    403: ErrorCategory.ACCESS_DENIED,
    404: ErrorCategory.NOT_FOUND,
    429: ErrorCategory.THROTTLING,
}

# 토큰 엔드포인트가 400으로 돌려주는 자격증명 오류 (잘못된 시크릿, 다른 테넌트의 앱 등)
_AUTH_ERROR_CODES = frozenset({"invalid_client", "unauthorized_client", "invalid_grant"})


@dataclass(frozen=True)
class AzureCredentials:
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> AzureCredentials:
        """설정에서 자격증명 생성

        Raises:
            ConfigError: AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET 중 누락
        """
        missing = settings.missing_azure_settings()
        if missing:
            raise ConfigError(missing[0], f"Azure 자격증명이 설정되지 않았습니다 (누락: {', '.join(missing)})")
        return cls(settings.AZURE_TENANT_ID, settings.AZURE_CLIENT_ID, settings.AZURE_CLIENT_SECRET)


def error_from_response(service: str, operation: str, response: httpx.Response) -> APICallError:
    """실패 응답 → APICallError

    ARM/Graph는 {"error": {"code", "message"}}, 토큰 엔드포인트는
    {"error": "<code>", "error_description": "..."} 형식입니다.
    """
    code: str | None = None
    message = response.text[:500]
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message") or message
        elif isinstance(error, str):
            code = error
            message = body.get("error_description") or message

    if code in _AUTH_ERROR_CODES:
        category = ErrorCategory.ACCESS_DENIED
    else:
        category = _STATUS_CATEGORIES.get(response.status_code) or categorize_error_code(code or "")
    if category == ErrorCategory.UNKNOWN and response.status_code >= 500:
        category = ErrorCategory.SERVICE_ERROR

    return APICallError.for_category(category, service, operation, code or f"HTTP{response.status_code}", message)


def _operation(method: str, url: str) -> str:
    """로그/에러용 작업 이름 (쿼리 제외 경로)"""
    return f"{method} {httpx.URL(url).path}"


class AzureClient:
    """Azure REST 클라이언트

    Attributes:
        credentials: 서비스 주체 자격증명
    """

    def __init__(self, credentials: AzureCredentials, http: httpx.Client | None = None):
        self.credentials = credentials
        self._http = http or httpx.Client(timeout=DEFAULT_TIMEOUT)
        self._tokens: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def close(self) -> None:
        self._http.close()

    # =========================================================================
    # 토큰
    # =========================================================================

    def token(self, scope: str) -> str:
        """scope별 액세스 토큰 (캐시, 만료 임박 시 재발급)

        Raises:
            APICallError: 토큰 발급 실패 (잘못된 자격증명은 AccessDeniedError)
        """
        with self._lock:
            cached = self._tokens.get(scope)
            if cached is not None and cached[1] - TOKEN_REFRESH_MARGIN > time.monotonic():
                return cached[0]

            url = f"{LOGIN_URL}/{self.credentials.tenant_id}/oauth2/v2.0/token"
            data = {
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "scope": scope,
                "grant_type": "client_credentials",
            }
            response = self._send("aad", "POST", url, data=data)
            payload = response.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
            self._tokens[scope] = (token, time.monotonic() + expires_in)
            logger.debug(f"Azure 토큰 발급 [{_SCOPE_SERVICES.get(scope, scope)}], {expires_in:.0f}초 유효")
            return token

    # =========================================================================
    # 요청
    # =========================================================================

    def request(
        self,
        scope: str,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        """인증된 요청 (본문이 없으면 빈 딕셔너리)

        Raises:
            APICallError: 4xx/5xx 응답 또는 네트워크 오류
        """
        headers = {"Authorization": f"Bearer {self.token(scope)}"}
        service = _SCOPE_SERVICES.get(scope, "azure")
        response = self._send(service, method, url, params=params, json=json, headers=headers)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def get(self, scope: str, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request(scope, "GET", url, params=params)

    def paginate(self, scope: str, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """value 배열을 모든 페이지에서 수집

        다음 페이지 링크에는 쿼리가 이미 포함되어 있으므로 params는 첫 요청에만 사용합니다.
        """
        items: list[dict[str, Any]] = []
        next_url: str | None = url
        next_params = params
        while next_url:
            page = self.get(scope, next_url, next_params)
            items.extend(page.get("value", []))
            next_url = page.get("@odata.nextLink") or page.get("nextLink")
            next_params = None
        return items

    def _send(self, service: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        operation = _operation(method, url)
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise APICallError.for_category(ErrorCategory.TIMEOUT, service, operation, "Timeout", str(e), e) from e
        except httpx.RequestError as e:
            raise APICallError.for_category(
                ErrorCategory.NETWORK, service, operation, type(e).__name__, str(e), e
            ) from e

        if response.status_code >= 400:
            raise error_from_response(service, operation, response)
        return response
