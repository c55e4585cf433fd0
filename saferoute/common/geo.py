"""
Geographic utilities for SafeRoute.

This module provides the geometry kernel: great-circle distance,
initial bearing, encoded polyline decoding and point-to-segment
distance. All distances are in meters on a spherical Earth.
"""

import math
from typing import Sequence

import polyline

from saferoute.core.errors import MalformedRoute
from saferoute.core.models import Coordinate, RoutePath
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.geo")

# 지구 반지름 (미터)
EARTH_RADIUS_M = 6_371_000.0

def haversine_distance_m(a: Coordinate, b: Coordinate) -> float:
    """
    두 지점 간의 Haversine 거리를 계산합니다 (미터).

    Args:
        a: 첫 번째 지점
        b: 두 번째 지점

    Returns:
        두 지점 간의 거리 (미터)
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
    # 부동소수 오차로 1을 살짝 넘는 경우 방지
    h = min(1.0, h)

    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))

def initial_bearing(start: Coordinate, end: Coordinate) -> float:
    """
    start에서 end를 향하는 초기 방위각을 계산합니다.

    Args:
        start: 출발 지점
        end: 목표 지점

    Returns:
        [0, 360) 범위의 방위각 (0 = 정북, 시계 방향). 같은 지점이면 0
    """
    if start == end:
        return 0.0

    lat1 = math.radians(start.latitude)
    lat2 = math.radians(end.latitude)
    dlon = math.radians(end.longitude - start.longitude)

    y = math.sin(dlon) * math.cos(lat2)
    x = (math.cos(lat1) * math.sin(lat2) -
         math.sin(lat1) * math.cos(lat2) * math.cos(dlon))

    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360.0) % 360.0

def angular_difference(a: float, b: float) -> float:
    """두 방위각 사이의 최소 각도 차이 [0, 180]"""
    diff = abs(a - b) % 360.0
    return min(diff, 360.0 - diff)

def validate_coordinates(lat: float, lon: float) -> bool:
    """
    좌표가 유효한지 확인합니다.

    Args:
        lat: 위도
        lon: 경도

    Returns:
        좌표가 유효하면 True
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180

# 폴리라인 인코딩 문자 범위 ('?' ~ '~')
POLYLINE_MIN_CHAR = 63
POLYLINE_MAX_CHAR = 126

def _decode_strict(encoded: str) -> RoutePath:
    bad = next((ch for ch in encoded if not POLYLINE_MIN_CHAR <= ord(ch) <= POLYLINE_MAX_CHAR), None)
    if bad is not None:
        raise MalformedRoute(f"invalid polyline character: {bad!r}")

    try:
        points = polyline.decode(encoded, 5)
    except (IndexError, ValueError, TypeError) as e:
        raise MalformedRoute(f"polyline decode failed: {e}") from e

    for lat, lon in points:
        if not validate_coordinates(lat, lon):
            raise MalformedRoute(f"decoded point out of range: ({lat}, {lon})")

    return tuple(Coordinate(latitude=lat, longitude=lon) for lat, lon in points)

def decode_polyline(encoded: str) -> RoutePath:
    """
    인코딩된 폴리라인(정밀도 1e-5)을 좌표 시퀀스로 디코딩합니다.

    잘못된 입력은 예외 대신 빈 경로를 반환합니다. 호출자는 빈 경로를
    "경로 제약 없음"으로 취급해야 합니다.

    Args:
        encoded: 인코딩된 폴리라인 문자열

    Returns:
        디코딩된 경로 (실패 시 빈 튜플)
    """
    if not encoded:
        return ()

    try:
        return _decode_strict(encoded)
    except MalformedRoute as e:
        log.warning("잘못된 경로 폴리라인, 경로 제약 없이 진행", error=str(e), length=len(encoded))
        return ()

def point_to_segment_distance_m(p: Coordinate, seg_start: Coordinate, seg_end: Coordinate) -> float:
    """
    점에서 선분까지의 수직 거리를 계산합니다 (미터).

    국소 평면(등장방형) 근사로 투영 위치를 구하고 [0, 1]로 클램프한 뒤,
    투영점까지의 거리는 Haversine으로 다시 계산합니다.

    Args:
        p: 대상 지점
        seg_start: 선분 시작점
        seg_end: 선분 끝점

    Returns:
        선분까지의 거리 (미터)
    """
    # 경도 방향 축척 보정
    k = math.cos(math.radians((seg_start.latitude + seg_end.latitude) / 2))

    px = (p.longitude - seg_start.longitude) * k
    py = p.latitude - seg_start.latitude
    dx = (seg_end.longitude - seg_start.longitude) * k
    dy = seg_end.latitude - seg_start.latitude

    len_sq = dx * dx + dy * dy
    if len_sq == 0:
        t = 0.0
    else:
        t = max(0.0, min(1.0, (px * dx + py * dy) / len_sq))

    projected = Coordinate(
        latitude=seg_start.latitude + t * (seg_end.latitude - seg_start.latitude),
        longitude=seg_start.longitude + t * (seg_end.longitude - seg_start.longitude),
    )
    return haversine_distance_m(p, projected)

def is_point_near_route(p: Coordinate, path: Sequence[Coordinate], threshold_m: float) -> bool:
    """
    점이 경로의 어느 한 구간이라도 threshold_m 이내에 있는지 확인합니다.

    Args:
        p: 대상 지점
        path: 경로 좌표 시퀀스
        threshold_m: 경로 회랑 폭 (미터)

    Returns:
        회랑 안에 있으면 True (점이 2개 미만인 경로는 False)
    """
    if len(path) < 2:
        return False

    for i in range(len(path) - 1):
        if point_to_segment_distance_m(p, path[i], path[i + 1]) <= threshold_m:
            return True
    return False
