"""
커뮤니티 검증 합의 엔진 단위 테스트

이 모듈은 투표 게이트 순서, 가중치, 상태 전이 임계값을 테스트합니다.
"""

import pytest
from hypothesis import given, strategies as st

from saferoute.core.consensus import ConsensusEngine, vote_weight
from saferoute.core.errors import (
    AlreadyTerminal,
    AlreadyVoted,
    HazardValidationError,
    InvalidAction,
    NotAuthorized,
    TooFar,
)
from tests.factories import NOW, ORIGIN, make_hazard, offset

NEAR = offset(ORIGIN, north_m=100)
FAR = offset(ORIGIN, north_m=600)


@pytest.fixture
def engine():
    return ConsensusEngine()


@pytest.fixture
def pending():
    return make_hazard("h1", status="pending")


def vote(engine, hazard, voter, action, role="driver", location=NEAR, already_voted=False, now=NOW):
    return engine.apply_vote(hazard, voter, role, action, location,
                             already_voted=already_voted, now=now).hazard


class TestVoteWeight:
    """역할별 가중치 테스트"""

    @pytest.mark.parametrize("role, weight", [
        ("driver", 1),
        ("trusted_user", 2),
        ("admin", 2),
    ])
    def test_weights(self, role, weight):
        assert vote_weight(role) == weight


class TestGates:
    """투표 게이트 테스트"""

    def test_invalid_action(self, engine, pending):
        with pytest.raises(InvalidAction) as exc:
            vote(engine, pending, "u1", "upvote")
        assert exc.value.code == "invalid_action"
        assert exc.value.hazard_id == "h1"

    def test_invalid_action_checked_first(self, engine):
        """종료된 위험이라도 잘못된 action이 먼저 보고됨"""
        resolved = make_hazard("h1", status="resolved")
        with pytest.raises(InvalidAction):
            vote(engine, resolved, "u1", "upvote")

    @pytest.mark.parametrize("status", ["resolved", "expired"])
    def test_terminal_status(self, engine, status):
        hazard = make_hazard("h1", status=status)
        with pytest.raises(AlreadyTerminal):
            vote(engine, hazard, "u1", "confirm")

    def test_time_expired(self, engine):
        """expires_at이 지난 위험은 종료 상태로 취급"""
        hazard = make_hazard("h1", status="active", expires_at=NOW - 1)
        with pytest.raises(AlreadyTerminal):
            vote(engine, hazard, "u1", "confirm")

    def test_too_far(self, engine, pending):
        with pytest.raises(TooFar) as exc:
            vote(engine, pending, "u1", "confirm", location=FAR)
        assert exc.value.distance_m == pytest.approx(600, abs=0.1)
        assert exc.value.limit_m == 500

    def test_within_distance_limit(self, engine, pending):
        updated = vote(engine, pending, "u1", "confirm", location=offset(ORIGIN, east_m=499))
        assert updated.confirmation_score == 1

    def test_just_beyond_distance_limit(self, engine, pending):
        with pytest.raises(TooFar):
            vote(engine, pending, "u1", "confirm", location=offset(ORIGIN, east_m=501))

    def test_reporter_cannot_validate(self, engine, pending):
        with pytest.raises(NotAuthorized):
            vote(engine, pending, "reporter", "confirm")

    def test_distance_checked_before_reporter(self, engine, pending):
        with pytest.raises(TooFar):
            vote(engine, pending, "reporter", "confirm", location=FAR)

    def test_already_voted(self, engine, pending):
        with pytest.raises(AlreadyVoted):
            vote(engine, pending, "u1", "confirm", already_voted=True)

    def test_failed_gate_leaves_hazard_untouched(self, engine, pending):
        with pytest.raises(HazardValidationError):
            vote(engine, pending, "u1", "confirm", location=FAR)
        assert pending.confirmation_score == 0
        assert pending.status == "pending"


class TestTransitions:
    """상태 전이 테스트"""

    def test_single_confirm_stays_pending(self, engine, pending):
        updated = vote(engine, pending, "u1", "confirm")

        assert updated.confirmation_score == 1
        assert updated.status == "pending"
        # 입력 스냅샷은 변경되지 않음
        assert pending.confirmation_score == 0

    def test_three_drivers_activate(self, engine, pending):
        hazard = pending
        for voter in ("u1", "u2", "u3"):
            hazard = vote(engine, hazard, voter, "confirm")

        assert hazard.status == "active"
        assert hazard.confirmation_score == 3

    def test_two_trusted_users_activate(self, engine, pending):
        hazard = vote(engine, pending, "t1", "confirm", role="trusted_user")
        assert hazard.status == "pending"
        hazard = vote(engine, hazard, "t2", "confirm", role="trusted_user")

        assert hazard.status == "active"
        assert hazard.confirmation_score == 4

    def test_confirm_on_active_only_adds_score(self, engine):
        active = make_hazard("h1", status="active", confirmation_score=3)
        updated = vote(engine, active, "u4", "confirm")

        assert updated.status == "active"
        assert updated.confirmation_score == 4

    def test_rejections_expire(self, engine):
        hazard = make_hazard("h1", status="active", confirmation_score=3)
        for i in range(4):
            hazard = vote(engine, hazard, f"r{i}", "reject")
            assert hazard.status == "active"
        hazard = vote(engine, hazard, "r4", "reject")

        assert hazard.status == "expired"
        assert hazard.rejection_score == 5
        assert hazard.verification_score == -2

    def test_weighted_rejections(self, engine, pending):
        hazard = vote(engine, pending, "a1", "reject", role="admin")
        hazard = vote(engine, hazard, "a2", "reject", role="admin")
        assert hazard.status == "pending"
        hazard = vote(engine, hazard, "u1", "reject")

        assert hazard.status == "expired"

    def test_resolve_needs_two_drivers(self, engine):
        hazard = make_hazard("h1", status="active")
        hazard = vote(engine, hazard, "u1", "resolve", now=NOW)
        assert hazard.status == "active"
        assert hazard.resolve_count == 1

        hazard = vote(engine, hazard, "u2", "resolve", now=NOW + 5)
        assert hazard.status == "resolved"
        assert hazard.resolved_by == "u2"
        assert hazard.resolved_at == NOW + 5

    def test_admin_resolves_immediately(self, engine):
        hazard = make_hazard("h1", status="active")
        updated = vote(engine, hazard, "boss", "resolve", role="admin")

        assert updated.status == "resolved"
        assert updated.resolve_count == 1
        assert updated.resolved_by == "boss"

    def test_resolve_allowed_from_pending(self, engine, pending):
        updated = vote(engine, pending, "t1", "resolve", role="trusted_user")
        assert updated.status == "resolved"

    def test_outcome_reports_transition(self, engine):
        hazard = make_hazard("h1", status="pending", confirmation_score=2)
        outcome = engine.apply_vote(hazard, "u3", "driver", "confirm", NEAR,
                                    already_voted=False, now=NOW)

        assert outcome.transitioned
        assert outcome.previous_status == "pending"
        assert outcome.vote.user_id == "u3"
        assert outcome.vote.weight == 1
        assert outcome.vote.timestamp == NOW
        assert outcome.vote.location == NEAR

    def test_custom_thresholds(self):
        engine = ConsensusEngine(confirm_threshold=1, max_vote_distance_m=50)
        hazard = make_hazard("h1", status="pending")

        with pytest.raises(TooFar):
            vote(engine, hazard, "u1", "confirm")
        updated = vote(engine, hazard, "u1", "confirm", location=offset(ORIGIN, north_m=20))
        assert updated.status == "active"


class TestConsensusProperties:
    """합의 상태 머신 속성 테스트"""

    @given(
        votes=st.lists(
            st.tuples(st.sampled_from(["confirm", "reject", "resolve"]),
                      st.sampled_from(["driver", "trusted_user", "admin"])),
            max_size=15,
        ),
        start=st.sampled_from(["pending", "active"]),
    )
    def test_monotonic_and_terminal_is_sticky(self, votes, start):
        """점수는 감소하지 않고, 종료 상태는 다시 바뀌지 않음"""
        engine = ConsensusEngine()
        hazard = make_hazard("h1", status=start)

        for i, (action, role) in enumerate(votes):
            if hazard.is_terminal:
                with pytest.raises(AlreadyTerminal):
                    vote(engine, hazard, f"v{i}", action, role=role)
                continue

            updated = vote(engine, hazard, f"v{i}", action, role=role)

            assert updated.confirmation_score >= hazard.confirmation_score
            assert updated.rejection_score >= hazard.rejection_score
            assert updated.resolve_count >= hazard.resolve_count
            if updated.status != hazard.status:
                assert (hazard.status, updated.status) in {
                    ("pending", "active"),
                    ("pending", "expired"),
                    ("pending", "resolved"),
                    ("active", "expired"),
                    ("active", "resolved"),
                }
            hazard = updated
