"""
Community validation consensus for SafeRoute.

This module implements the hazard lifecycle state machine driven by
weighted community votes (confirm / reject / resolve). The engine is
pure: it receives a hazard snapshot plus the vote ledger's answer and
returns an updated copy, raising a typed error instead of mutating
state when a gate fails.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from saferoute.common.geo import haversine_distance_m
from saferoute.core.errors import (
    AlreadyTerminal,
    AlreadyVoted,
    InvalidAction,
    NotAuthorized,
    TooFar,
)
from saferoute.core.models import (
    VOTE_ACTIONS,
    Coordinate,
    Hazard,
    HazardStatus,
    Role,
    Vote,
)
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.consensus")

ELEVATED_ROLES = frozenset({"trusted_user", "admin"})

def vote_weight(role: Role) -> int:
    """역할별 투표 가중치 (confirm/reject 점수에 적용)"""
    return 2 if role in ELEVATED_ROLES else 1

@dataclass(frozen=True)
class VoteOutcome:
    """투표 적용 결과"""
    hazard: Hazard
    vote: Vote
    previous_status: HazardStatus

    @property
    def transitioned(self) -> bool:
        return self.hazard.status != self.previous_status

class ConsensusEngine:
    """가중 커뮤니티 투표 기반 위험 상태 머신"""

    def __init__(self,
                 *,
                 max_vote_distance_m: float = 500.0,
                 confirm_threshold: int = 3,
                 reject_threshold: int = 5,
                 resolve_threshold: int = 2,
                 weight_fn: Callable[[Role], int] = vote_weight):
        """
        초기화합니다.

        Args:
            max_vote_distance_m: 투표 가능한 최대 거리 (미터)
            confirm_threshold: pending → active 확인 점수
            reject_threshold: → expired 거부 점수
            resolve_threshold: → resolved 해결 투표 수
            weight_fn: 역할 → 가중치 함수
        """
        self.max_vote_distance_m = max_vote_distance_m
        self.confirm_threshold = confirm_threshold
        self.reject_threshold = reject_threshold
        self.resolve_threshold = resolve_threshold
        self.weight_fn = weight_fn

    def check_gates(self,
                    hazard: Hazard,
                    voter_id: str,
                    action: str,
                    voter_location: Coordinate,
                    *,
                    already_voted: bool,
                    now: float) -> None:
        """
        상태 변경 전 검증 게이트를 순서대로 적용합니다.

        Raises:
            InvalidAction, AlreadyTerminal, TooFar, NotAuthorized, AlreadyVoted
        """
        if action not in VOTE_ACTIONS:
            raise InvalidAction(f"unknown vote action: {action!r}", hazard_id=hazard.id)

        if hazard.is_terminal or hazard.is_expired(now):
            raise AlreadyTerminal(f"hazard is {hazard.status}", hazard_id=hazard.id)

        distance = haversine_distance_m(voter_location, hazard.location)
        if distance > self.max_vote_distance_m:
            raise TooFar(distance, self.max_vote_distance_m, hazard_id=hazard.id)

        if voter_id == hazard.reported_by:
            raise NotAuthorized("reporter cannot validate own hazard", hazard_id=hazard.id)

        if already_voted:
            raise AlreadyVoted("user already voted on this hazard", hazard_id=hazard.id)

    def apply_vote(self,
                   hazard: Hazard,
                   voter_id: str,
                   voter_role: Role,
                   action: str,
                   voter_location: Coordinate,
                   *,
                   already_voted: bool,
                   now: float) -> VoteOutcome:
        """
        투표를 적용하고 합의 상태를 다시 계산합니다.

        Args:
            hazard: 현재 위험 스냅샷
            voter_id: 투표자 ID
            voter_role: 투표자 역할
            action: confirm | reject | resolve
            voter_location: 투표 시점의 투표자 좌표
            already_voted: 원장에 이 사용자의 투표가 이미 있는지
            now: 현재 시각 (Unix timestamp)

        Returns:
            갱신된 위험 사본과 기록할 투표
        """
        self.check_gates(hazard, voter_id, action, voter_location,
                         already_voted=already_voted, now=now)

        weight = self.weight_fn(voter_role)
        update = {}

        if action == "confirm":
            score = hazard.confirmation_score + weight
            update["confirmation_score"] = score
            if score >= self.confirm_threshold and hazard.status == "pending":
                update["status"] = "active"

        elif action == "reject":
            score = hazard.rejection_score + weight
            update["rejection_score"] = score
            if score >= self.reject_threshold:
                update["status"] = "expired"

        else:
            count = hazard.resolve_count + 1
            update["resolve_count"] = count
            # 상위 역할은 합의 없이 즉시 해결
            if count >= self.resolve_threshold or voter_role in ELEVATED_ROLES:
                update.update(status="resolved", resolved_by=voter_id, resolved_at=now)

        updated = hazard.model_copy(update=update)
        vote = Vote(
            hazard_id=hazard.id,
            user_id=voter_id,
            action=action,
            weight=weight,
            location=voter_location,
            timestamp=now,
        )

        if updated.status != hazard.status:
            log.info("위험 상태 전이",
                     hazard_id=hazard.id,
                     from_status=hazard.status,
                     to_status=updated.status,
                     action=action)

        return VoteOutcome(hazard=updated, vote=vote, previous_status=hazard.status)
