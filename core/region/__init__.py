# core/region - 리전 데이터 및 리전 조회
"""
리전 모듈

- data: 정적 리전 목록
- resolver: 계정별 활성 리전 조회 (TTL 캐시)

Note:
    이 모듈은 Lazy Import 패턴을 사용합니다.
"""

__all__ = ["REGION_NAMES", "SNAPSHOT_REGIONS", "RegionResolver"]

_IMPORT_MAPPING = {
    "REGION_NAMES": ".data",
    "SNAPSHOT_REGIONS": ".data",
    "RegionResolver": ".resolver",
}


def __getattr__(name: str):
    """Lazy import - 실제 사용 시점에만 모듈 로드"""
    if name in _IMPORT_MAPPING:
        import importlib

        module = importlib.import_module(_IMPORT_MAPPING[name], __name__)
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
