"""
core/cache/ttl.py - 메모리 TTL 캐시

만료 시간이 있는 키-값 저장소입니다. 정확한 키 삭제와 접두사 삭제를 지원하며,
만료는 get() 시점에 지연 처리합니다 (백그라운드 정리 없음).

주요 구성 요소:
- CacheEntry: 캐시 항목 (값 + 만료 시각)
- TTLCache: 스레드 세이프 TTL 캐시

Note:
    단일 RLock이 전체 맵을 보호합니다. get()도 만료 항목을 제거하므로
    순수 읽기 연산이 아닙니다.

Example:
    cache = TTLCache(default_ttl=300)
    cache.set("users:111111111111", users)
    users = cache.get("users:111111111111", list)
    cache.delete_pattern("vpcs-")
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheEntry:
    """캐시 항목

    Attributes:
        value: 캐시된 값
        expires_at: 만료 시각 (time.monotonic 기준)
    """

    value: Any
    expires_at: float

    def is_expired(self, now: float | None = None) -> bool:
        """만료 여부 (만료 시각이 지난 경우에만 True)"""
        return (time.monotonic() if now is None else now) > self.expires_at


class TTLCache:
    """스레드 세이프 TTL 캐시

    - 같은 키에 대한 set()은 무조건 덮어씀 (마지막 쓰기 우선)
    - 없는 키 삭제는 아무 일도 하지 않음
    - 키의 값 타입이 기대와 다르면 캐시 미스로 처리

    Attributes:
        default_ttl: ttl 미지정 시 사용하는 기본 TTL (초)
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS):
        self.default_ttl = default_ttl
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(
        self,
        key: str,
        expected_type: type | tuple[type, ...] | None = None,
        item_type: type | tuple[type, ...] | None = None,
    ) -> Any | None:
        """캐시 조회

        Args:
            key: 캐시 키
            expected_type: 기대하는 값 타입 (다르면 미스)
            item_type: 값이 리스트일 때 기대하는 항목 타입 (다르면 미스)

        Returns:
            캐시된 값, 없거나 만료되었거나 타입이 다르면 None
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            value = entry.value

        if expected_type is not None and not isinstance(value, expected_type):
            logger.debug(f"캐시 타입 불일치 [{key}]: {type(value).__name__}")
            return None
        if item_type is not None and isinstance(value, list):
            if not all(isinstance(item, item_type) for item in value):
                logger.debug(f"캐시 항목 타입 불일치 [{key}]")
                return None
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """캐시 저장 (기존 값 덮어쓰기)

        Args:
            key: 캐시 키
            value: 저장할 값 (None은 저장할 수 없음)
            ttl: TTL (초, None이면 default_ttl)
        """
        if value is None:
            raise ValueError("None 값은 캐시할 수 없습니다")
        expires_at = time.monotonic() + (self.default_ttl if ttl is None else ttl)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        """정확한 키 삭제 (없으면 무시)"""
        with self._lock:
            self._entries.pop(key, None)

    def delete_pattern(self, prefix: str) -> int:
        """접두사가 일치하는 모든 키 삭제

        접두사는 문자 그대로 비교합니다 ("vpcs-"는 "all-vpcs"와 일치하지 않음).

        Returns:
            삭제된 키 개수
        """
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug(f"캐시 접두사 삭제 [{prefix}]: {len(keys)}개")
        return len(keys)

    def clear(self) -> None:
        """전체 캐시 삭제"""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"캐시 전체 삭제: {count}개 항목")

    def keys(self) -> list[str]:
        """만료되지 않은 키 목록"""
        now = time.monotonic()
        with self._lock:
            return [key for key, entry in self._entries.items() if not entry.is_expired(now)]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.keys())
