"""
Route relevance filtering for SafeRoute.

This module decides which nearby hazards matter to a moving driver,
combining a forward heading cone with an optional route corridor.
"""

from typing import Iterable, List, Optional, Sequence

from saferoute.common.geo import (
    angular_difference,
    haversine_distance_m,
    initial_bearing,
    is_point_near_route,
)
from saferoute.core.models import AnnotatedHazard, Coordinate, Hazard
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.route_filter")

def annotate_candidates(user: Coordinate, hazards: Iterable[Hazard]) -> List[AnnotatedHazard]:
    """
    후보 위험에 사용자 기준 거리와 방위를 계산해 붙입니다.

    Args:
        user: 사용자 좌표
        hazards: 저장소에서 받은 후보 위험 목록

    Returns:
        주석이 붙은 위험 목록 (입력 순서 유지)
    """
    return [
        AnnotatedHazard.from_hazard(
            h,
            distance_m=haversine_distance_m(user, h.location),
            bearing_deg=initial_bearing(user, h.location),
        )
        for h in hazards
    ]

def passes_heading_gate(candidate: AnnotatedHazard,
                        heading: Optional[float],
                        speed: Optional[float],
                        *,
                        cone_half_angle: float = 60.0,
                        close_override_m: float = 50.0,
                        min_heading_speed: float = 2.0) -> bool:
    """진행 방향 콘 검사. 저속이거나 heading이 없으면 항상 통과"""
    if heading is None or (speed or 0.0) <= min_heading_speed:
        return True
    if angular_difference(heading, candidate.bearing_deg) <= cone_half_angle:
        return True
    # 바로 옆의 위험은 방향과 무관하게 경보
    return candidate.distance_m <= close_override_m

def passes_route_gate(candidate: AnnotatedHazard,
                      route: Sequence[Coordinate],
                      *,
                      corridor_m: float = 80.0,
                      route_check_min_m: float = 100.0) -> bool:
    """경로 회랑 검사. 경로가 없거나 충분히 가까우면 통과"""
    if not route or candidate.distance_m <= route_check_min_m:
        return True
    return is_point_near_route(candidate.location, route, corridor_m)

def filter_relevant_hazards(candidates: Iterable[AnnotatedHazard],
                            *,
                            heading: Optional[float] = None,
                            speed: Optional[float] = None,
                            route: Sequence[Coordinate] = (),
                            corridor_m: float = 80.0,
                            cone_half_angle: float = 60.0,
                            close_override_m: float = 50.0,
                            route_check_min_m: float = 100.0,
                            min_heading_speed: float = 2.0) -> List[AnnotatedHazard]:
    """
    이동 중인 사용자에게 관련 있는 위험만 남깁니다.

    Args:
        candidates: 거리/방위가 계산된 후보 위험
        heading: 사용자 진행 방향 (0-360, 없으면 None)
        speed: 사용자 속도 (km/h)
        route: 디코딩된 경로 (비어 있으면 경로 검사 생략)
        corridor_m: 경로 회랑 폭 (미터)
        cone_half_angle: 진행 방향 콘 반각 (도)
        close_override_m: 방향 검사를 무시하는 근접 거리 (미터)
        route_check_min_m: 경로 검사를 적용하는 최소 거리 (미터)
        min_heading_speed: heading을 신뢰하는 최소 속도 (km/h)

    Returns:
        거리 오름차순으로 정렬된 관련 위험 목록
    """
    kept = []
    dropped_heading = dropped_route = 0

    for c in candidates:
        if not passes_heading_gate(c, heading, speed,
                                   cone_half_angle=cone_half_angle,
                                   close_override_m=close_override_m,
                                   min_heading_speed=min_heading_speed):
            dropped_heading += 1
            continue
        if not passes_route_gate(c, route,
                                 corridor_m=corridor_m,
                                 route_check_min_m=route_check_min_m):
            dropped_route += 1
            continue
        kept.append(c)

    kept.sort(key=lambda c: c.distance_m)

    log.debug("경로 관련성 필터 완료",
              kept=len(kept),
              dropped_heading=dropped_heading,
              dropped_route=dropped_route)
    return kept
