"""
Hazard detection orchestrator for SafeRoute.

This module composes the geospatial store query, route relevance
filtering, alert zone classification and the cooldown ledger into
one pass per location update.
"""

import asyncio
import time
from typing import Callable, Iterable, List, Optional, Set

from saferoute.common.geo import decode_polyline
from saferoute.core.alert_zone import build_voice_message, classify_zone
from saferoute.core.errors import DependencyUnavailable, SafeRouteError
from saferoute.core.models import AlertRecord, AnnotatedHazard, Coordinate, LocationUpdateResult
from saferoute.core.route_filter import annotate_candidates, filter_relevant_hazards
from saferoute.dedup.cooldown import AlertCooldownCache
from saferoute.observability import metrics
from saferoute.observability.logging_setup import get_logger, with_context
from saferoute.ports.dispatch import AlertDispatchPort
from saferoute.ports.hazard_store import HazardStorePort

log = get_logger("saferoute.detection")

class DetectionOrchestrator:
    """위치 업데이트 단위 위험 감지 오케스트레이터"""

    def __init__(self,
                 store: HazardStorePort,
                 cooldown: AlertCooldownCache,
                 *,
                 dispatcher: Optional[AlertDispatchPort] = None,
                 search_radius_m: float = 2000.0,
                 route_corridor_m: float = 80.0,
                 cone_half_angle: float = 60.0,
                 close_override_m: float = 50.0,
                 route_check_min_m: float = 100.0,
                 min_heading_speed: float = 2.0,
                 query_timeout_sec: float = 2.0,
                 nearby_display_limit: int = 5,
                 voice_language: str = "en",
                 statuses: Iterable[str] = ("active",),
                 clock: Callable[[], float] = time.time):
        """
        초기화합니다.

        Args:
            store: 위험 저장소 포트
            cooldown: 경보 쿨다운 원장
            dispatcher: 경보 발송 포트 (None이면 발송 안 함)
            search_radius_m: 저장소 1차 조회 반경 (미터)
            route_corridor_m: 경로 회랑 폭 (미터)
            cone_half_angle: 진행 방향 콘 반각 (도)
            close_override_m: 방향 무관 근접 거리 (미터)
            route_check_min_m: 경로 검사 최소 거리 (미터)
            min_heading_speed: heading 신뢰 최소 속도 (km/h)
            query_timeout_sec: 저장소 조회 타임아웃 (초)
            nearby_display_limit: 지도 표시용 근처 위험 수
            voice_language: 음성 메시지 언어
            statuses: 경보 대상 위험 상태
            clock: 현재 시각 함수
        """
        self.store = store
        self.cooldown = cooldown
        self.dispatcher = dispatcher
        self.search_radius_m = search_radius_m
        self.route_corridor_m = route_corridor_m
        self.cone_half_angle = cone_half_angle
        self.close_override_m = close_override_m
        self.route_check_min_m = route_check_min_m
        self.min_heading_speed = min_heading_speed
        self.query_timeout_sec = query_timeout_sec
        self.nearby_display_limit = nearby_display_limit
        self.voice_language = voice_language
        self.statuses = tuple(statuses)
        self.clock = clock

        # 발송 태스크 참조 유지
        self._background: Set[asyncio.Task] = set()

    async def detect_relevant_hazards(self,
                                      location: Coordinate,
                                      heading: Optional[float] = None,
                                      speed: Optional[float] = None,
                                      route_polyline: Optional[str] = None) -> List[AnnotatedHazard]:
        """
        사용자에게 관련 있는 위험을 찾습니다.

        저장소 조회가 타임아웃되면 오래된/부분 결과 대신 빈 목록을 반환합니다.

        Args:
            location: 사용자 좌표
            heading: 진행 방향 (0-360)
            speed: 속도 (km/h)
            route_polyline: 인코딩된 경로 폴리라인

        Returns:
            거리 오름차순의 관련 위험 목록

        Raises:
            DependencyUnavailable: 저장소 장애
        """
        try:
            candidates = await asyncio.wait_for(
                self.store.find_near(location, self.search_radius_m, self.statuses),
                timeout=self.query_timeout_sec
            )
        except asyncio.TimeoutError:
            metrics.store_timeouts.inc()
            log.warning("위험 저장소 조회 타임아웃, 경보 없음으로 처리",
                        timeout=self.query_timeout_sec)
            return []
        except SafeRouteError:
            raise
        except Exception as e:
            log.error("위험 저장소 조회 실패", error=str(e))
            raise DependencyUnavailable("hazard store unavailable") from e

        metrics.hazard_candidates.inc(len(candidates))
        if not candidates:
            return []

        now = self.clock()
        live = [h for h in candidates if not h.is_expired(now)]

        route = decode_polyline(route_polyline) if route_polyline else ()

        relevant = filter_relevant_hazards(
            annotate_candidates(location, live),
            heading=heading,
            speed=speed,
            route=route,
            corridor_m=self.route_corridor_m,
            cone_half_angle=self.cone_half_angle,
            close_override_m=self.close_override_m,
            route_check_min_m=self.route_check_min_m,
            min_heading_speed=self.min_heading_speed,
        )
        metrics.hazards_relevant.inc(len(relevant))
        return relevant

    def classify_and_deduplicate(self,
                                 user_id: str,
                                 hazards: Iterable[AnnotatedHazard],
                                 now: Optional[float] = None) -> List[AlertRecord]:
        """
        관련 위험에 경보 구역을 붙이고 쿨다운 중인 경보를 걸러냅니다.

        Args:
            user_id: 사용자 ID
            hazards: 관련 위험 목록
            now: 현재 시각 (None이면 clock 사용)

        Returns:
            새로 발송할 경보 목록
        """
        now = self.clock() if now is None else now
        alerts = []

        for h in hazards:
            zone = classify_zone(h.distance_m, h.severity)
            if zone is None:
                continue

            if not self.cooldown.try_emit(user_id, h.id, now):
                metrics.alerts_suppressed.inc()
                continue

            alerts.append(AlertRecord(
                hazard_id=h.id,
                type=h.type,
                severity=h.severity,
                alert_level=zone,
                distance_m=h.distance_m,
                voice_message=build_voice_message(zone, h.type, h.distance_m,
                                                  language=self.voice_language),
                location=h.location,
            ))
            metrics.alerts_emitted.labels(level=zone).inc()

        metrics.cooldown_entries.set(self.cooldown.size())
        return alerts

    async def process_location_update(self,
                                      user_id: str,
                                      location: Coordinate,
                                      heading: Optional[float] = None,
                                      speed: Optional[float] = None,
                                      route_polyline: Optional[str] = None) -> LocationUpdateResult:
        """
        위치 업데이트 1건을 처리합니다.

        감지 -> 구역 분류 -> 중복 제거 -> (선택) 발송의 파이프라인을 실행합니다.

        Returns:
            새 경보와 지도 표시용 근처 위험 목록
        """
        metrics.location_updates.inc()

        with with_context(user_id=user_id), metrics.detection_seconds.time():
            relevant = await self.detect_relevant_hazards(location, heading, speed, route_polyline)
            alerts = self.classify_and_deduplicate(user_id, relevant)

        nearby = [
            h.model_copy(update={"alert_zone": classify_zone(h.distance_m, h.severity)})
            for h in relevant[:self.nearby_display_limit]
        ]

        if alerts:
            log.info("경보 발송됨",
                     user_id=user_id,
                     count=len(alerts),
                     levels=[a.alert_level for a in alerts])
            if self.dispatcher is not None:
                task = asyncio.create_task(self._broadcast(user_id, alerts))
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        return LocationUpdateResult(alerts=alerts, nearby_display=nearby)

    async def _broadcast(self, user_id: str, alerts: List[AlertRecord]) -> None:
        try:
            await self.dispatcher.publish_alerts(user_id, alerts)
        except Exception as e:
            log.error("경보 발송 실패", user_id=user_id, error=str(e))

    def reset_user(self, user_id: str) -> None:
        """경로가 크게 바뀐 사용자의 경보 이력을 초기화합니다."""
        self.cooldown.clear_user(user_id)
        log.debug("사용자 경보 이력 초기화", user_id=user_id)
