"""
Alert zone classification for SafeRoute.

This module maps a hazard's distance and severity to a discrete
alert tier and renders the spoken message for that tier.
"""

from typing import Optional
from saferoute.core.models import AlertZone, HazardType, Severity

# 구역별 거리 한계 (미터)
URGENT_RADIUS_M = 200.0
WARNING_RADIUS_M = 500.0
INFO_RADIUS_M = 800.0

WARNING_SEVERITIES = frozenset({"high", "critical"})

# 위험 유형별 한국어 표현
HAZARD_NAMES_KO = {
    "pothole": "포트홀",
    "accident": "사고",
    "roadblock": "도로 차단",
    "police_checking": "경찰 검문",
    "waterlogging": "침수",
    "construction": "공사",
}

def classify_zone(distance_m: float, severity: Severity) -> Optional[AlertZone]:
    """
    거리와 심각도로 경보 구역을 결정합니다 (먼저 일치한 규칙 우선).

    Args:
        distance_m: 사용자와 위험 사이 거리 (미터)
        severity: 위험 심각도

    Returns:
        "urgent" | "warning" | "info", 경보 대상이 아니면 None
    """
    if distance_m <= URGENT_RADIUS_M and severity == "critical":
        return "urgent"
    if distance_m <= WARNING_RADIUS_M and severity in WARNING_SEVERITIES:
        return "warning"
    if distance_m <= INFO_RADIUS_M:
        return "info"
    return None

def hazard_display_name(hazard_type: HazardType, language: str = "en") -> str:
    if language.startswith("ko"):
        return HAZARD_NAMES_KO.get(hazard_type, hazard_type)
    return hazard_type.replace("_", " ")

def build_voice_message(zone: Optional[AlertZone],
                        hazard_type: HazardType,
                        distance_m: float,
                        *,
                        language: str = "en") -> Optional[str]:
    """
    경보 구역에 맞는 음성 메시지를 생성합니다.

    info 구역은 무음이므로 None을 반환합니다.

    Args:
        zone: 경보 구역
        hazard_type: 위험 유형
        distance_m: 남은 거리 (미터)
        language: 언어 코드 (en, ko)

    Returns:
        음성 메시지 또는 None
    """
    if zone not in ("urgent", "warning"):
        return None

    name = hazard_display_name(hazard_type, language)
    meters = int(round(distance_m))

    if language.startswith("ko"):
        if zone == "urgent":
            return f"경고: 전방에 매우 위험한 {name}이(가) 있습니다."
        return f"주의: {meters}미터 앞에 {name}이(가) 있습니다."

    if zone == "urgent":
        return f"Warning: Critical {name} ahead."
    return f"Caution: {name} in {meters} meters."
