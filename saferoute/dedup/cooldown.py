"""
Per-user alert cooldown ledger for SafeRoute.

This module suppresses repeat alerts about the same hazard to the same
user within a cooldown window. Entries live in memory, one bucket per
user, each guarded by its own lock.
"""

import threading
import time
from typing import Callable, Dict, Optional

from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.cooldown")

class _UserBucket:
    __slots__ = ("lock", "entries")

    def __init__(self):
        self.lock = threading.Lock()
        self.entries: Dict[str, float] = {}

class AlertCooldownCache:
    """사용자/위험 쌍 단위 경보 쿨다운 원장"""

    def __init__(self,
                 cooldown_sec: float = 600.0,
                 *,
                 sweep_threshold: int = 20,
                 clock: Callable[[], float] = time.time):
        """
        초기화합니다.

        Args:
            cooldown_sec: 쿨다운 윈도우 (초)
            sweep_threshold: 이 크기를 넘으면 만료 항목 정리
            clock: 현재 시각 함수 (테스트에서 교체)
        """
        self.cooldown = cooldown_sec
        self.sweep_threshold = sweep_threshold
        self.clock = clock
        self._buckets: Dict[str, _UserBucket] = {}
        # 버킷 생성/삭제만 보호
        self._registry_lock = threading.Lock()

    def _bucket(self, user_id: str) -> _UserBucket:
        with self._registry_lock:
            bucket = self._buckets.get(user_id)
            if bucket is None:
                bucket = self._buckets[user_id] = _UserBucket()
            return bucket

    def _expired(self, last_shown: float, now: float) -> bool:
        return now - last_shown > self.cooldown

    def _sweep_locked(self, bucket: _UserBucket, now: float) -> int:
        stale = [k for k, ts in bucket.entries.items() if self._expired(ts, now)]
        for k in stale:
            del bucket.entries[k]
        return len(stale)

    def _maybe_sweep(self, user_id: str, bucket: _UserBucket, now: float) -> None:
        if len(bucket.entries) > self.sweep_threshold:
            removed = self._sweep_locked(bucket, now)
            if removed:
                log.debug("만료된 쿨다운 항목 정리", user_id=user_id, removed=removed)

    def should_emit(self, user_id: str, hazard_id: str, now: Optional[float] = None) -> bool:
        """
        경보를 보내도 되는지 확인합니다.

        Args:
            user_id: 사용자 ID
            hazard_id: 위험 ID
            now: 현재 시각 (None이면 clock 사용)

        Returns:
            항목이 없거나 쿨다운이 지났으면 True
        """
        now = self.clock() if now is None else now
        with self._registry_lock:
            bucket = self._buckets.get(user_id)
        # 조회만으로 버킷을 만들지 않음
        if bucket is None:
            return True
        with bucket.lock:
            self._maybe_sweep(user_id, bucket, now)
            last_shown = bucket.entries.get(hazard_id)
            return last_shown is None or self._expired(last_shown, now)

    def record_emission(self, user_id: str, hazard_id: str, now: Optional[float] = None) -> None:
        """경보 발송 시각을 기록합니다 (멱등)."""
        now = self.clock() if now is None else now
        bucket = self._bucket(user_id)
        with bucket.lock:
            bucket.entries[hazard_id] = now

    def try_emit(self, user_id: str, hazard_id: str, now: Optional[float] = None) -> bool:
        """
        확인과 기록을 사용자 잠금 하나로 원자적으로 수행합니다.

        Returns:
            발송해야 하면 True (이 경우 발송 시각이 기록됨)
        """
        now = self.clock() if now is None else now
        bucket = self._bucket(user_id)
        with bucket.lock:
            self._maybe_sweep(user_id, bucket, now)
            last_shown = bucket.entries.get(hazard_id)
            if last_shown is not None and not self._expired(last_shown, now):
                return False
            bucket.entries[hazard_id] = now
            return True

    def sweep(self, now: Optional[float] = None) -> int:
        """전체 사용자에 대해 만료 항목을 정리하고 빈 버킷을 제거합니다."""
        now = self.clock() if now is None else now
        with self._registry_lock:
            buckets = list(self._buckets.items())

        removed = 0
        for user_id, bucket in buckets:
            with bucket.lock:
                removed += self._sweep_locked(bucket, now)
                empty = not bucket.entries
            if empty:
                with self._registry_lock:
                    if self._buckets.get(user_id) is bucket and not bucket.entries:
                        del self._buckets[user_id]
        return removed

    def clear_user(self, user_id: str) -> None:
        """경로가 크게 바뀌었을 때 사용자 이력을 초기화합니다."""
        with self._registry_lock:
            self._buckets.pop(user_id, None)

    def clear(self) -> None:
        """서비스 종료 시 전체 원장을 비웁니다."""
        with self._registry_lock:
            self._buckets.clear()
        log.info("쿨다운 원장 해제됨")

    def size(self, user_id: Optional[str] = None) -> int:
        with self._registry_lock:
            if user_id is not None:
                bucket = self._buckets.get(user_id)
                return len(bucket.entries) if bucket else 0
            return sum(len(b.entries) for b in self._buckets.values())
