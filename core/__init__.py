# core/__init__.py
"""
core - IAM Manager 코어 엔진

다중 계정 AWS 리소스 조회/관리를 위한 코어 패키지입니다.
자격증명 브로커, TTL 캐시, 리전 조회, 팬아웃 실행기, 리소스 서비스를 포함합니다.

아키텍처:
    core/
    ├── auth/           # 교차 계정 자격증명 브로커
    ├── cache/          # TTL 캐시, 캐시 키/무효화 집합
    ├── parallel/       # 팬아웃 실행기, boto3 client 헬퍼
    ├── region/         # 리전 데이터 및 활성 리전 조회
    ├── services/       # 리소스 서비스 (사용자, 역할, EC2, S3 ...)
    ├── config.py       # 중앙 설정 관리
    ├── context.py      # 애플리케이션 컨텍스트
    ├── pricing.py      # 월 비용 추정
    └── exceptions.py   # 통합 예외 계층

Usage:
    from core.context import AppContext

    ctx = AppContext.create()
    for user in ctx.users.list_all_users():
        print(user.account_id, user.username)
"""

__all__: list[str] = [
    # 서브패키지
    "auth",
    "cache",
    "parallel",
    "region",
    "services",
    # 모듈
    "config",
    "context",
    "exceptions",
    "pricing",
]
