"""
Validation orchestrator for SafeRoute.

This module wraps the consensus engine with per-hazard serialization,
the vote ledger, hazard persistence and the reputation signal. It also
handles new hazard reports.
"""

import asyncio
import time
import uuid
from typing import Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from saferoute.common.geo import haversine_distance_m
from saferoute.common.retry import retry_with_backoff
from saferoute.core.consensus import ConsensusEngine
from saferoute.core.errors import (
    AlreadyVoted,
    DependencyUnavailable,
    DuplicateHazard,
    HazardValidationError,
    InvalidInput,
    VoteConflict,
)
from saferoute.core.models import VOTE_ACTIONS, Coordinate, Hazard, HazardType, Role, Severity, Vote
from saferoute.observability import metrics
from saferoute.observability.logging_setup import get_logger
from saferoute.ports.hazard_store import HazardStorePort
from saferoute.ports.reputation import ActivityKind, ReputationPort
from saferoute.ports.vote_ledger import VoteLedgerPort

log = get_logger("saferoute.validation")

class ValidationService:
    """커뮤니티 검증 / 위험 보고 서비스"""

    def __init__(self,
                 hazards: HazardStorePort,
                 votes: VoteLedgerPort,
                 reputation: Optional[ReputationPort] = None,
                 engine: Optional[ConsensusEngine] = None,
                 *,
                 duplicate_radius_m: float = 50.0,
                 default_ttl_sec: int = 86400,
                 save_max_retries: int = 2,
                 clock: Callable[[], float] = time.time):
        """
        초기화합니다.

        Args:
            hazards: 위험 저장소 포트
            votes: 투표 원장 포트
            reputation: 평판 신호 포트 (None이면 생략)
            engine: 합의 엔진 (None이면 기본 설정)
            duplicate_radius_m: 중복 보고 판정 반경 (미터)
            default_ttl_sec: 새 위험의 기본 유효 시간 (초)
            save_max_retries: 위험 저장 재시도 횟수
            clock: 현재 시각 함수
        """
        self.hazards = hazards
        self.votes = votes
        self.reputation = reputation
        self.engine = engine or ConsensusEngine()
        self.duplicate_radius_m = duplicate_radius_m
        self.default_ttl_sec = default_ttl_sec
        self.save_max_retries = save_max_retries
        self.clock = clock

        # 위험 단위 잠금 (전역 잠금 없음)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._background: Set[asyncio.Task] = set()

    async def _acquire(self, hazard_id: str) -> asyncio.Lock:
        lock = self._locks.get(hazard_id)
        if lock is None:
            lock = self._locks[hazard_id] = asyncio.Lock()
        self._waiters[hazard_id] = self._waiters.get(hazard_id, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._forget(hazard_id)
            raise
        return lock

    def _release(self, hazard_id: str, lock: asyncio.Lock) -> None:
        lock.release()
        self._forget(hazard_id)

    def _forget(self, hazard_id: str) -> None:
        remaining = self._waiters[hazard_id] - 1
        if remaining:
            self._waiters[hazard_id] = remaining
        else:
            # 대기자가 없으면 잠금 폐기
            del self._waiters[hazard_id]
            del self._locks[hazard_id]

    async def apply_vote(self,
                         hazard_id: str,
                         voter_id: str,
                         voter_role: Role,
                         action: str,
                         voter_location: Coordinate) -> Hazard:
        """
        검증 투표를 적용합니다.

        같은 위험에 대한 투표는 잠금으로 직렬화됩니다.

        Args:
            hazard_id: 위험 ID
            voter_id: 투표자 ID
            voter_role: 투표자 역할
            action: confirm | reject | resolve
            voter_location: 투표자 좌표

        Returns:
            갱신된 위험

        Raises:
            HazardValidationError: TooFar, NotAuthorized, AlreadyVoted, AlreadyTerminal, InvalidAction
            HazardNotFound: 위험이 없을 때
            DependencyUnavailable: 저장소/원장 장애
        """
        lock = await self._acquire(hazard_id)
        try:
            with metrics.vote_seconds.time():
                updated = await self._apply_locked(hazard_id, voter_id, voter_role, action, voter_location)
        except HazardValidationError as e:
            metrics.votes_total.labels(action=action if action in VOTE_ACTIONS else "invalid", outcome=e.code).inc()
            log.info("투표 거부됨", hazard_id=hazard_id, voter_id=voter_id, action=action, reason=e.code)
            raise
        finally:
            self._release(hazard_id, lock)

        metrics.votes_total.labels(action=action, outcome="applied").inc()
        self._signal(voter_id, "hazard_validated")
        return updated

    async def _apply_locked(self,
                            hazard_id: str,
                            voter_id: str,
                            voter_role: Role,
                            action: str,
                            voter_location: Coordinate) -> Hazard:
        hazard = await self.hazards.load(hazard_id)
        already_voted = await self.votes.has_voted(hazard_id, voter_id)

        outcome = self.engine.apply_vote(
            hazard, voter_id, voter_role, action, voter_location,
            already_voted=already_voted,
            now=self.clock(),
        )

        try:
            await self.votes.record_vote(outcome.vote)
        except VoteConflict as e:
            # 다른 인스턴스가 먼저 기록함
            raise AlreadyVoted("user already voted on this hazard", hazard_id=hazard_id) from e

        try:
            await retry_with_backoff(
                lambda: self.hazards.save(outcome.hazard),
                max_retries=self.save_max_retries,
                retry_on=(DependencyUnavailable,)
            )
        except DependencyUnavailable:
            # 위험 저장 실패 시 투표도 되돌림
            await self.votes.discard_vote(hazard_id, voter_id)
            log.error("위험 저장 실패, 투표 취소됨", hazard_id=hazard_id, voter_id=voter_id)
            raise

        if outcome.transitioned:
            metrics.status_transitions.labels(
                from_status=outcome.previous_status,
                to_status=outcome.hazard.status
            ).inc()

        log.info("투표 적용됨",
                 hazard_id=hazard_id,
                 voter_id=voter_id,
                 action=action,
                 status=outcome.hazard.status)
        return outcome.hazard

    async def report_hazard(self,
                            reporter_id: str,
                            hazard_type: HazardType,
                            location: Coordinate,
                            severity: Severity = "medium",
                            *,
                            description: Optional[str] = None,
                            bearing: Optional[float] = None) -> Hazard:
        """
        새 위험을 보고합니다. 새 위험은 pending 상태로 시작합니다.

        Raises:
            InvalidInput: 유형/심각도/방위 값이 잘못되었을 때
            DuplicateHazard: 같은 유형의 위험이 이미 근처에 있을 때
            DependencyUnavailable: 저장소 장애
        """
        now = self.clock()
        try:
            hazard = Hazard(
                id=uuid.uuid4().hex,
                type=hazard_type,
                location=location,
                severity=severity,
                status="pending",
                bearing=bearing,
                reported_by=reporter_id,
                created_at=now,
                expires_at=now + self.default_ttl_sec,
                description=description,
            )
        except ValidationError as e:
            raise InvalidInput(f"invalid hazard report: {e.error_count()} error(s)") from e

        nearby = await self.hazards.find_near(location, self.duplicate_radius_m, ("pending", "active"))
        for existing in nearby:
            # 유효 시간이 지난 위험은 중복 판정에서 제외
            if existing.is_expired(now):
                continue
            if existing.type == hazard_type:
                raise DuplicateHazard(existing.id, haversine_distance_m(location, existing.location))

        await self.hazards.create(hazard)

        log.info("위험 보고됨", hazard_id=hazard.id, type=hazard_type, severity=severity)
        self._signal(reporter_id, "hazard_reported")
        return hazard

    async def get_validations(self, hazard_id: str) -> List[Vote]:
        """위험의 투표 이력을 최신순으로 반환합니다."""
        return await self.votes.list_votes(hazard_id)

    def _signal(self, user_id: str, activity: ActivityKind) -> None:
        """평판 신호를 비동기로 발송합니다 (결과를 기다리지 않음)."""
        if self.reputation is None:
            return
        task = asyncio.create_task(self._notify(user_id, activity))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _notify(self, user_id: str, activity: ActivityKind) -> None:
        try:
            await self.reputation.notify_activity(user_id, activity)
        except Exception as e:
            log.warning("평판 신호 실패", user_id=user_id, activity=activity, error=str(e))

    async def drain(self) -> None:
        """대기 중인 백그라운드 신호를 기다립니다 (종료 시)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
