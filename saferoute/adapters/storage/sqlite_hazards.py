"""
SQLite-based hazard store for SafeRoute.

This module implements the geospatial hazard store on SQLite.
Radius queries use a bounding-box prefilter in SQL followed by an
exact haversine check.
"""

import math
from typing import Iterable, List

import aiosqlite

from saferoute.common.geo import EARTH_RADIUS_M, haversine_distance_m
from saferoute.core.errors import DependencyUnavailable, HazardNotFound
from saferoute.core.models import Coordinate, Hazard
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.hazards")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS hazards (
    id TEXT PRIMARY KEY,
    type TEXT NOT NULL,
    lat REAL NOT NULL,
    lng REAL NOT NULL,
    severity TEXT NOT NULL,
    status TEXT NOT NULL,
    bearing REAL,
    reported_by TEXT NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL,
    description TEXT,
    confirmation_score INTEGER NOT NULL DEFAULT 0,
    rejection_score INTEGER NOT NULL DEFAULT 0,
    resolve_count INTEGER NOT NULL DEFAULT 0,
    resolved_by TEXT,
    resolved_at REAL
);
CREATE INDEX IF NOT EXISTS idx_hazards_status_exp ON hazards(status, expires_at);
CREATE INDEX IF NOT EXISTS idx_hazards_lat_lng ON hazards(lat, lng);
"""

COLUMNS = (
    "id", "type", "lat", "lng", "severity", "status", "bearing", "reported_by",
    "created_at", "expires_at", "description", "confirmation_score",
    "rejection_score", "resolve_count", "resolved_by", "resolved_at",
)

def _to_row(h: Hazard) -> tuple:
    return (
        h.id, h.type, h.location.latitude, h.location.longitude, h.severity,
        h.status, h.bearing, h.reported_by, h.created_at, h.expires_at,
        h.description, h.confirmation_score, h.rejection_score,
        h.resolve_count, h.resolved_by, h.resolved_at,
    )

def _from_row(row) -> Hazard:
    data = dict(zip(COLUMNS, row))
    lat, lng = data.pop("lat"), data.pop("lng")
    return Hazard(location=Coordinate(latitude=lat, longitude=lng), **data)

def bounding_box(center: Coordinate, radius_m: float):
    """
    반경을 감싸는 위경도 경계 상자를 계산합니다.

    Returns:
        (min_lat, max_lat, min_lng, max_lng)
    """
    dlat = math.degrees(radius_m / EARTH_RADIUS_M)
    cos_lat = math.cos(math.radians(center.latitude))
    # 극 근처에서는 경도 제한 없음
    if cos_lat < 1e-6:
        return (max(-90.0, center.latitude - dlat), min(90.0, center.latitude + dlat), -180.0, 180.0)
    dlng = min(180.0, math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat)))
    return (
        max(-90.0, center.latitude - dlat),
        min(90.0, center.latitude + dlat),
        center.longitude - dlng,
        center.longitude + dlng,
    )

class SQLiteHazardStore:
    """SQLite 기반 위험 저장소"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteHazardStore 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteHazardStore 스키마 초기화 완료")

    async def find_near(self, center: Coordinate, radius_m: float, statuses: Iterable[str]) -> List[Hazard]:
        """
        반경 안의 위험을 상태 필터와 함께 조회합니다.

        Args:
            center: 검색 중심
            radius_m: 검색 반경 (미터)
            statuses: 포함할 상태 목록

        Returns:
            반경 안의 위험 목록
        """
        statuses = list(statuses)
        if not statuses:
            return []

        min_lat, max_lat, min_lng, max_lng = bounding_box(center, radius_m)
        marks = ",".join("?" for _ in statuses)
        sql = (
            f"SELECT {', '.join(COLUMNS)} FROM hazards "
            f"WHERE status IN ({marks}) AND lat BETWEEN ? AND ? "
        )
        params = [*statuses, min_lat, max_lat]

        # 날짜변경선을 넘는 경계 상자 처리
        if min_lng < -180.0 or max_lng > 180.0:
            sql += "AND (lng >= ? OR lng <= ?)"
            params += [((min_lng + 540.0) % 360.0) - 180.0, ((max_lng + 540.0) % 360.0) - 180.0]
        else:
            sql += "AND lng BETWEEN ? AND ?"
            params += [min_lng, max_lng]

        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            log.error(f"SQLiteHazardStore find_near 오류: {e}")
            raise DependencyUnavailable("hazard store query failed") from e

        hazards = [_from_row(r) for r in rows]
        return [h for h in hazards if haversine_distance_m(center, h.location) <= radius_m]

    async def load(self, hazard_id: str) -> Hazard:
        """
        위험을 조회합니다.

        Raises:
            HazardNotFound: 위험이 없을 때
            DependencyUnavailable: 저장소 오류
        """
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    f"SELECT {', '.join(COLUMNS)} FROM hazards WHERE id = ?",
                    (hazard_id,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            log.error(f"SQLiteHazardStore load 오류: {e}")
            raise DependencyUnavailable("hazard store load failed") from e

        if row is None:
            raise HazardNotFound(f"hazard {hazard_id} not found")
        return _from_row(row)

    async def _write(self, hazard: Hazard, verb: str) -> None:
        marks = ",".join("?" for _ in COLUMNS)
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    f"{verb} INTO hazards ({', '.join(COLUMNS)}) VALUES ({marks})",
                    _to_row(hazard)
                )
                await db.commit()
        except aiosqlite.Error as e:
            log.error("SQLiteHazardStore 쓰기 오류", error=str(e), hazard_id=hazard.id)
            raise DependencyUnavailable("hazard store write failed") from e

    async def save(self, hazard: Hazard) -> None:
        """갱신된 위험을 저장합니다 (upsert)."""
        await self._write(hazard, "INSERT OR REPLACE")

    async def create(self, hazard: Hazard) -> None:
        """새 위험을 저장합니다."""
        await self._write(hazard, "INSERT")

    async def get_count(self) -> int:
        """
        저장된 위험 수를 반환합니다 (레디니스 확인에도 사용).

        Raises:
            DependencyUnavailable: 저장소 오류
        """
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute("SELECT COUNT(*) FROM hazards")
                result = await cursor.fetchone()
        except aiosqlite.Error as e:
            log.error(f"SQLiteHazardStore get_count 오류: {e}")
            raise DependencyUnavailable("hazard store count failed") from e
        return result[0] if result else 0
