"""
SQLite-based vote ledger for SafeRoute.

This module implements the append-only vote ledger. The
UNIQUE(hazard_id, user_id) constraint enforces one vote per user
per hazard.
"""

from typing import List

import aiosqlite

from saferoute.core.errors import DependencyUnavailable, VoteConflict
from saferoute.core.models import Coordinate, Vote
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.votes")

# SQLite 스키마
SCHEMA = """
CREATE TABLE IF NOT EXISTS votes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    hazard_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    action TEXT NOT NULL,
    weight INTEGER NOT NULL DEFAULT 1,
    lat REAL NOT NULL,
    lng REAL NOT NULL,
    ts REAL NOT NULL,
    UNIQUE(hazard_id, user_id)
);
CREATE INDEX IF NOT EXISTS idx_votes_hazard ON votes(hazard_id);
"""

class SQLiteVoteLedger:
    """SQLite 기반 투표 원장"""

    def __init__(self, path: str):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
        """
        self.path = path
        log.info(f"SQLiteVoteLedger 초기화: {path}")

    async def init(self) -> None:
        """데이터베이스를 초기화합니다."""
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteVoteLedger 스키마 초기화 완료")

    async def has_voted(self, hazard_id: str, user_id: str) -> bool:
        """사용자가 해당 위험에 투표했는지 확인합니다."""
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    "SELECT 1 FROM votes WHERE hazard_id = ? AND user_id = ?",
                    (hazard_id, user_id)
                )
                return await cursor.fetchone() is not None
        except aiosqlite.Error as e:
            log.error(f"SQLiteVoteLedger has_voted 오류: {e}")
            raise DependencyUnavailable("vote ledger query failed") from e

    async def record_vote(self, vote: Vote) -> None:
        """
        투표를 기록합니다.

        Raises:
            VoteConflict: 같은 사용자의 투표가 이미 있을 때
        """
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    "INSERT INTO votes (hazard_id, user_id, action, weight, lat, lng, ts) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (vote.hazard_id, vote.user_id, vote.action, vote.weight,
                     vote.location.latitude, vote.location.longitude, vote.timestamp)
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            # 유일성 위반
            raise VoteConflict(f"user {vote.user_id} already voted on {vote.hazard_id}") from e
        except aiosqlite.Error as e:
            log.error(f"SQLiteVoteLedger record_vote 오류: {e}")
            raise DependencyUnavailable("vote ledger write failed") from e

    async def discard_vote(self, hazard_id: str, user_id: str) -> None:
        """위험 저장 실패 시 기록한 투표를 되돌립니다."""
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    "DELETE FROM votes WHERE hazard_id = ? AND user_id = ?",
                    (hazard_id, user_id)
                )
                await db.commit()
        except aiosqlite.Error as e:
            log.error(f"SQLiteVoteLedger discard_vote 오류: {e}")
            raise DependencyUnavailable("vote ledger delete failed") from e

    async def list_votes(self, hazard_id: str) -> List[Vote]:
        """위험의 투표 이력을 최신순으로 반환합니다."""
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    "SELECT hazard_id, user_id, action, weight, lat, lng, ts FROM votes "
                    "WHERE hazard_id = ? ORDER BY ts DESC, id DESC",
                    (hazard_id,)
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            log.error(f"SQLiteVoteLedger list_votes 오류: {e}")
            raise DependencyUnavailable("vote ledger query failed") from e

        return [
            Vote(
                hazard_id=r[0], user_id=r[1], action=r[2], weight=r[3],
                location=Coordinate(latitude=r[4], longitude=r[5]), timestamp=r[6]
            )
            for r in rows
        ]
