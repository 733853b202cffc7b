"""
core/parallel/client.py - boto3 client 생성 및 페이지네이션 헬퍼

Retry(adaptive 모드) + 타임아웃 + 연결 풀이 설정된 boto3 client를 생성하고,
페이지네이터 기반 목록 조회를 한 줄로 감쌉니다.

주요 구성 요소:
- get_client: retry 설정이 적용된 boto3 client 생성
- paginate: 페이지네이터 결과에서 지정 키의 항목을 모두 모아 반환
- call: 단일 API 호출 + 에러 변환

Example:
    from core.parallel.client import get_client, paginate

    iam = get_client(session, "iam")
    users = paginate(iam, "list_users", "Users")

    ec2 = get_client(session, "ec2", region_name="ap-northeast-2")
    snapshots = paginate(ec2, "describe_snapshots", "Snapshots", OwnerIds=["111111111111"])
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, cast

from core.exceptions import translate_client_error

if TYPE_CHECKING:
    import boto3

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

# 기본 retry 설정
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_MODE: RetryMode = "adaptive"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초
DEFAULT_MAX_POOL_CONNECTIONS = 25  # max_workers(20) 이상 권장


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
    **kwargs: Any,
) -> Any:
    """Retry가 적용된 boto3 client 생성

    Args:
        session: boto3 Session
        service_name: AWS 서비스 이름 (ec2, s3, iam 등)
        region_name: 리전 (None이면 세션 기본값)
        max_attempts: 최대 시도 횟수 (기본: 5)
        retry_mode: 재시도 모드 ('adaptive' 또는 'standard')
        connect_timeout: 연결 타임아웃 (초)
        read_timeout: 읽기 타임아웃 (초)
        max_pool_connections: HTTP 연결 풀 크기
        **kwargs: session.client()에 전달할 추가 인자

    Returns:
        boto3 client
    """
    from botocore.config import Config

    config = Config(
        retries={"max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )

    if "config" in kwargs:
        existing = kwargs.pop("config")
        config = config.merge(existing)

    # cast to Any to bypass boto3-stubs Literal type requirements
    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name,
        config=config,
        **kwargs,
    )


def paginate(client: Any, operation: str, result_key: str, **kwargs: Any) -> list[Any]:
    """페이지네이터로 모든 페이지의 항목을 수집

    ClientError는 호출 경계에서 분류된 APICallError로 변환됩니다.

    Args:
        client: boto3 client
        operation: 페이지네이션 가능한 API 이름 (예: "list_users")
        result_key: 각 페이지에서 모을 키 (예: "Users")
        **kwargs: paginate()에 전달할 요청 파라미터

    Returns:
        모든 페이지 항목을 이어붙인 리스트
    """
    service = client.meta.service_model.service_name if hasattr(client, "meta") else "aws"
    items: list[Any] = []
    with translate_client_error(service, operation):
        paginator = client.get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(result_key, []))
    return items


def call(client: Any, operation: str, **kwargs: Any) -> Any:
    """단일 API 호출 (ClientError → APICallError)

    Example:
        call(ec2, "delete_vpc", VpcId="vpc-0123")
    """
    service = client.meta.service_model.service_name if hasattr(client, "meta") else "aws"
    with translate_client_error(service, operation):
        return getattr(client, operation)(**kwargs)
