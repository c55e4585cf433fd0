# saferoute/settings.py
from __future__ import annotations
from pydantic import BaseModel, Field

class Detection(BaseModel):
    search_radius_m: float = 2000.0          # 저장소 1차 조회 반경
    route_corridor_m: float = 80.0           # 경로 회랑 폭 (실시간 감지)
    cone_half_angle: float = 60.0            # 진행 방향 콘 반각
    close_override_m: float = 50.0           # 방향 무관 근접 경보 거리
    route_check_min_m: float = 100.0         # 이보다 가까우면 경로 검사 생략
    min_heading_speed: float = 2.0           # km/h, 이하이면 heading 신뢰 안 함
    query_timeout_sec: float = 2.0
    nearby_display_limit: int = 5

class Alerts(BaseModel):
    cooldown_sec: float = 600.0
    sweep_threshold: int = 20
    voice_language: str = "en"               # en | ko

class Validation(BaseModel):
    max_vote_distance_m: float = 500.0
    confirm_threshold: int = 3
    reject_threshold: int = 5
    resolve_threshold: int = 2
    duplicate_radius_m: float = 50.0
    default_ttl_sec: int = 86400
    save_max_retries: int = 2

class Storage(BaseModel):
    hazards_path: str = "/data/hazards.db"
    votes_path: str = "/data/votes.db"

class Reputation(BaseModel):
    enabled: bool = True
    base_url: str = "http://gamification:5000"
    token: str = ""
    timeout_sec: int = 5

class Observability(BaseModel):
    http_port: int = 8099
    metrics_enabled: bool = True
    service_name: str = "SafeRoute"
    build_version: str = "0.3.0"
    build_date: str = "2026-10-01"
    log_level: str = "INFO"
    log_json: bool = False

class Settings(BaseModel):
    dry_run: bool = False

    # 하위 섹션 (기본값/팩토리로 누락 방지)
    detection: Detection = Field(default_factory=Detection)
    alerts: Alerts = Field(default_factory=Alerts)
    validation: Validation = Field(default_factory=Validation)
    storage: Storage = Field(default_factory=Storage)
    reputation: Reputation = Field(default_factory=Reputation)
    observability: Observability = Field(default_factory=Observability)
