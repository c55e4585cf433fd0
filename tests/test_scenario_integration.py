"""
SafeRoute 통합 시나리오 테스트

SQLite 저장소 위에서 보고 → 커뮤니티 검증 → 실시간 경보 → 해결의
전체 흐름을 검증합니다.
"""

import pytest

from saferoute.adapters.storage import SQLiteHazardStore, SQLiteVoteLedger
from saferoute.core.errors import TooFar
from saferoute.core.models import Coordinate
from saferoute.dedup import AlertCooldownCache
from saferoute.orchestrators import DetectionOrchestrator, ValidationService
from tests.factories import FakeClock, offset

SITE = Coordinate(latitude=12.9716, longitude=77.5946)


@pytest.fixture
async def system(tmp_path):
    clock = FakeClock()
    hazards = SQLiteHazardStore(str(tmp_path / "hazards.db"))
    votes = SQLiteVoteLedger(str(tmp_path / "votes.db"))
    await hazards.init()
    await votes.init()

    validation = ValidationService(hazards, votes, clock=clock)
    detection = DetectionOrchestrator(hazards, AlertCooldownCache(600, clock=clock), clock=clock)
    return clock, hazards, validation, detection


@pytest.mark.integration
@pytest.mark.asyncio
async def test_hazard_lifecycle(system):
    """보고된 포트홀이 검증되어 경보되고 해결되는 흐름"""
    clock, hazards, validation, detection = system

    hazard = await validation.report_hazard("reporter", "pothole", SITE, "high")
    assert hazard.status == "pending"

    # pending 위험은 경보 대상이 아님
    driver = offset(SITE, north_m=-300)
    result = await detection.process_location_update("d1", driver, heading=0.0, speed=40.0)
    assert result.alerts == []

    # 3, 250, 490m 떨어진 운전자 3명이 확인
    for voter, distance in (("v1", 3), ("v2", 250), ("v3", 490)):
        clock.advance(5)
        updated = await validation.apply_vote(hazard.id, voter, "driver", "confirm",
                                              offset(SITE, east_m=distance))
    assert updated.status == "active"
    assert updated.confirmation_score == 3

    # 600m 떨어진 네 번째 투표자는 거부됨
    with pytest.raises(TooFar):
        await validation.apply_vote(hazard.id, "v4", "driver", "confirm", offset(SITE, east_m=600))
    assert (await hazards.load(hazard.id)).confirmation_score == 3

    # 300m 뒤에서 북쪽으로 주행 중인 운전자에게 경보
    result = await detection.process_location_update("d1", driver, heading=0.0, speed=40.0)
    assert len(result.alerts) == 1
    alert = result.alerts[0]
    assert alert.hazard_id == hazard.id
    assert alert.alert_level == "warning"
    assert alert.voice_message == "Caution: pothole in 300 meters."

    # 쿨다운 중 재경보 없음
    clock.advance(60)
    result = await detection.process_location_update("d1", driver, heading=0.0, speed=40.0)
    assert result.alerts == []
    assert [h.id for h in result.nearby_display] == [hazard.id]

    # 반대 방향 운전자에게는 경보 없음
    result = await detection.process_location_update("d2", driver, heading=180.0, speed=40.0)
    assert result.alerts == []

    # 두 운전자의 해결 투표로 종료
    await validation.apply_vote(hazard.id, "v5", "driver", "resolve", SITE)
    resolved = await validation.apply_vote(hazard.id, "v6", "driver", "resolve", SITE)
    assert resolved.status == "resolved"
    assert resolved.resolved_by == "v6"

    clock.advance(700)
    result = await detection.process_location_update("d1", driver, heading=0.0, speed=40.0)
    assert result.alerts == []
    assert result.nearby_display == []

    history = await validation.get_validations(hazard.id)
    assert [v.user_id for v in history][:2] == ["v6", "v5"]
    assert len(history) == 5
