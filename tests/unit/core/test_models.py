"""
도메인 모델 단위 테스트
"""

import pytest
from pydantic import ValidationError

from saferoute.core.errors import InvalidInput
from saferoute.core.models import AnnotatedHazard, Coordinate
from tests.factories import NOW, ORIGIN, make_hazard


class TestCoordinate:
    """좌표 모델 테스트"""

    def test_parse_valid(self):
        c = Coordinate.parse(12.97, 77.59)
        assert c.latitude == 12.97
        assert c.longitude == 77.59

    @pytest.mark.parametrize("lat, lng", [(91, 0), (-90.5, 0), (0, 181), (0, -180.01)])
    def test_parse_out_of_range(self, lat, lng):
        with pytest.raises(InvalidInput):
            Coordinate.parse(lat, lng)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            ORIGIN.latitude = 0.0

    def test_equality_and_hash(self):
        assert Coordinate.parse(1.0, 2.0) == Coordinate.parse(1.0, 2.0)
        assert len({Coordinate.parse(1.0, 2.0), Coordinate.parse(1.0, 2.0)}) == 1


class TestHazard:
    """위험 모델 테스트"""

    def test_defaults(self):
        h = make_hazard("h1", severity="medium", status="pending")
        assert h.confirmation_score == 0
        assert h.rejection_score == 0
        assert h.resolve_count == 0
        assert h.resolved_by is None
        assert not h.is_terminal

    def test_verification_score(self):
        h = make_hazard("h1", confirmation_score=4, rejection_score=1)
        assert h.verification_score == 3

    def test_expiry_by_time(self):
        h = make_hazard("h1", expires_at=NOW + 10)
        assert not h.is_expired(NOW)
        assert h.is_active(NOW)
        assert h.is_expired(NOW + 11)
        assert not h.is_active(NOW + 11)

    def test_expired_status(self):
        h = make_hazard("h1", status="expired")
        assert h.is_expired(NOW)
        assert h.is_terminal

    def test_pending_is_not_active(self):
        assert not make_hazard("h1", status="pending").is_active(NOW)

    @pytest.mark.parametrize("field, value", [
        ("type", "meteor"),
        ("severity", "extreme"),
        ("status", "open"),
        ("bearing", 360.0),
        ("description", "x" * 501),
    ])
    def test_invalid_fields(self, field, value):
        with pytest.raises(ValidationError):
            make_hazard("h1", **{field: value})


class TestAnnotatedHazard:
    """주석 위험 테스트"""

    def test_from_hazard(self):
        h = make_hazard("h1", severity="critical", confirmation_score=2)
        a = AnnotatedHazard.from_hazard(h, distance_m=123.4, bearing_deg=45.0)

        assert a.id == "h1"
        assert a.severity == "critical"
        assert a.confirmation_score == 2
        assert a.distance_m == 123.4
        assert a.bearing_deg == 45.0
        assert a.alert_zone is None
