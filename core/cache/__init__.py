"""
core/cache - 메모리 TTL 캐시와 리소스 패밀리별 캐시 키

- ttl: TTLCache, CacheEntry
- keys: KeyFamily, Invalidation, 패밀리 상수 (USERS, VPCS, ...)
"""

from .keys import FAMILIES, Invalidation, KeyFamily, region_key
from .ttl import CacheEntry, TTLCache

__all__: list[str] = [
    "TTLCache",
    "CacheEntry",
    "KeyFamily",
    "Invalidation",
    "FAMILIES",
    "region_key",
]
