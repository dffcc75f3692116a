# app/utils/ttl_cache.py
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """
    만료 시간이 있는 간단한 키-값 캐시.

    - 항목마다 만료 시각을 저장하고, 조회 시점에 만료된 항목은 제거합니다.
    - max_entries를 넘으면 가장 먼저 만료될 항목부터 비웁니다.
    - clock을 주입할 수 있어 테스트에서 시간을 제어할 수 있습니다.
    """
    def __init__(self, default_ttl: float, max_entries: int = 1024,
                 clock: Callable[[], float] = time.monotonic):
        if default_ttl <= 0:
            raise ValueError("default_ttl은 0보다 커야 합니다.")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """ttl이 0 이하이면 저장하지 않습니다 (이미 만료된 값)."""
        ttl = self.default_ttl if ttl is None else min(ttl, self.default_ttl)
        if ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = (now + ttl, value)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self, now: float) -> None:
        # 만료된 항목을 먼저 정리하고, 그래도 가득 차 있으면 만료가 가장 이른 항목을 제거
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
