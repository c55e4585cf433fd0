"""
Core domain models for SafeRoute.

This module defines the core domain models using Pydantic v2
for type safety and validation.
"""

from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidInput

# 위험 유형 / 심각도 / 상태 타입 정의
HazardType = Literal[
    "pothole",
    "accident",
    "roadblock",
    "police_checking",
    "waterlogging",
    "construction",
]
Severity = Literal["low", "medium", "high", "critical"]
HazardStatus = Literal["pending", "active", "resolved", "expired"]
AlertZone = Literal["urgent", "warning", "info"]
VoteAction = Literal["confirm", "reject", "resolve"]
Role = Literal["driver", "trusted_user", "admin"]

TERMINAL_STATUSES = frozenset({"resolved", "expired"})
VOTE_ACTIONS = ("confirm", "reject", "resolve")

class Coordinate(BaseModel):
    """위경도 좌표 (불변)"""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    @classmethod
    def parse(cls, lat: float, lng: float) -> "Coordinate":
        """경계 입력을 검증해 좌표로 변환합니다 (실패 시 InvalidInput)."""
        try:
            return cls(latitude=lat, longitude=lng)
        except ValidationError as e:
            raise InvalidInput(f"invalid coordinate: ({lat}, {lng})") from e

# 디코딩된 경로 (비어 있으면 경로 제약 없음)
RoutePath = Tuple[Coordinate, ...]

class Hazard(BaseModel):
    """보고된 도로 위험 스냅샷"""
    id: str
    type: HazardType
    location: Coordinate
    severity: Severity = "medium"
    status: HazardStatus = "pending"
    bearing: Optional[float] = Field(default=None, ge=0, lt=360)
    reported_by: str
    created_at: float
    expires_at: float
    description: Optional[str] = Field(default=None, max_length=500)
    # 합의 카운터 (가중치 반영)
    confirmation_score: int = 0
    rejection_score: int = 0
    resolve_count: int = 0
    resolved_by: Optional[str] = None
    resolved_at: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def verification_score(self) -> int:
        return self.confirmation_score - self.rejection_score

    def is_expired(self, now: float) -> bool:
        return self.status == "expired" or now > self.expires_at

    def is_active(self, now: float) -> bool:
        return self.status == "active" and now < self.expires_at and self.resolved_at is None

class AnnotatedHazard(Hazard):
    """요청 단위로 계산된 거리/방위/경보 구역이 붙은 위험"""
    distance_m: float
    bearing_deg: float
    alert_zone: Optional[AlertZone] = None

    @classmethod
    def from_hazard(cls, hazard: Hazard, *, distance_m: float, bearing_deg: float) -> "AnnotatedHazard":
        return cls(**hazard.model_dump(), distance_m=distance_m, bearing_deg=bearing_deg)

class AlertRecord(BaseModel):
    """사용자에게 발송되는 경보 1건"""
    hazard_id: str
    type: HazardType
    severity: Severity
    alert_level: AlertZone
    distance_m: float
    voice_message: Optional[str] = None
    location: Coordinate

class Vote(BaseModel):
    """투표 원장 레코드 (감사/이력 표시용)"""
    hazard_id: str
    user_id: str
    action: VoteAction
    weight: int = 1
    location: Coordinate
    timestamp: float

class LocationUpdateResult(BaseModel):
    """위치 업데이트 처리 결과"""
    alerts: List[AlertRecord] = Field(default_factory=list)
    nearby_display: List[AnnotatedHazard] = Field(default_factory=list)
