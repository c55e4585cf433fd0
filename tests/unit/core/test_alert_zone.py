"""
경보 구역 분류 및 음성 메시지 단위 테스트
"""

import pytest
from hypothesis import given, strategies as st

from saferoute.core.alert_zone import build_voice_message, classify_zone, hazard_display_name


class TestClassifyZone:
    """경보 구역 분류 테스트"""

    @pytest.mark.parametrize("distance, severity, expected", [
        (150, "critical", "urgent"),
        (200, "critical", "urgent"),
        (200.5, "critical", "warning"),
        (150, "high", "warning"),
        (150, "medium", "info"),
        (150, "low", "info"),
        (300, "critical", "warning"),
        (450, "high", "warning"),
        (450, "low", "info"),
        (500, "high", "warning"),
        (501, "high", "info"),
        (700, "critical", "info"),
        (800, "low", "info"),
        (800.1, "critical", None),
        (900, "critical", None),
        (1500, "high", None),
    ])
    def test_zone_table(self, distance, severity, expected):
        assert classify_zone(distance, severity) == expected

    @given(
        distance=st.floats(min_value=0, max_value=5000),
        severity=st.sampled_from(["low", "medium", "high", "critical"]),
    )
    def test_beyond_info_radius_never_alerts(self, distance, severity):
        """800m 초과는 항상 경보 없음, 이내는 항상 경보"""
        zone = classify_zone(distance, severity)
        if distance > 800:
            assert zone is None
        else:
            assert zone in ("urgent", "warning", "info")


class TestVoiceMessage:
    """음성 메시지 테스트"""

    def test_urgent_message(self):
        assert build_voice_message("urgent", "pothole", 120) == "Warning: Critical pothole ahead."

    def test_warning_message_rounds_distance(self):
        msg = build_voice_message("warning", "police_checking", 342.6)
        assert msg == "Caution: police checking in 343 meters."

    def test_info_is_silent(self):
        assert build_voice_message("info", "accident", 600) is None

    def test_no_zone_is_silent(self):
        assert build_voice_message(None, "accident", 900) is None

    def test_korean_messages(self):
        urgent = build_voice_message("urgent", "pothole", 100, language="ko")
        warning = build_voice_message("warning", "waterlogging", 250, language="ko")

        assert "포트홀" in urgent
        assert "250미터" in warning
        assert "침수" in warning

    def test_display_name(self):
        assert hazard_display_name("police_checking") == "police checking"
        assert hazard_display_name("roadblock", "ko") == "도로 차단"
