"""
core/azure - Azure REST 클라이언트

- AzureClient: 서비스 주체 토큰으로 Microsoft Graph / Azure Resource Manager 호출
- AzureCredentials: 테넌트/클라이언트 ID/시크릿 (설정 누락 시 ConfigError)
"""

from .client import GRAPH_SCOPE, MANAGEMENT_SCOPE, AzureClient, AzureCredentials

__all__: list[str] = [
    "AzureClient",
    "AzureCredentials",
    "GRAPH_SCOPE",
    "MANAGEMENT_SCOPE",
]
