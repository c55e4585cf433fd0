# saferoute/main.py
import os, asyncio, signal, time
from dataclasses import dataclass
from typing import Optional
import uvicorn
from saferoute.settings import Settings
from saferoute.observability import metrics
from saferoute.observability.health import create_app
from saferoute.observability.logging_setup import setup_logger, get_logger
from saferoute.adapters.storage.sqlite_hazards import SQLiteHazardStore
from saferoute.adapters.storage.sqlite_votes import SQLiteVoteLedger
from saferoute.adapters.reputation.client import HttpReputationNotifier
from saferoute.core.consensus import ConsensusEngine
from saferoute.dedup.cooldown import AlertCooldownCache
from saferoute.orchestrators.detection import DetectionOrchestrator
from saferoute.orchestrators.validation import ValidationService

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()
    s.dry_run = _b("DRY_RUN", s.dry_run)

    # 감지
    s.detection.search_radius_m = float(os.getenv("SEARCH_RADIUS_M", s.detection.search_radius_m))
    s.detection.route_corridor_m = float(os.getenv("ROUTE_CORRIDOR_M", s.detection.route_corridor_m))
    s.detection.cone_half_angle = float(os.getenv("CONE_HALF_ANGLE", s.detection.cone_half_angle))
    s.detection.query_timeout_sec = float(os.getenv("QUERY_TIMEOUT_SEC", s.detection.query_timeout_sec))

    # 경보
    s.alerts.cooldown_sec = float(os.getenv("ALERT_COOLDOWN_SEC", s.alerts.cooldown_sec))
    s.alerts.sweep_threshold = int(os.getenv("ALERT_SWEEP_THRESHOLD", s.alerts.sweep_threshold))
    s.alerts.voice_language = os.getenv("VOICE_LANGUAGE", s.alerts.voice_language)

    # 검증
    s.validation.max_vote_distance_m = float(os.getenv("MAX_VOTE_DISTANCE_M", s.validation.max_vote_distance_m))
    s.validation.confirm_threshold = int(os.getenv("CONFIRM_THRESHOLD", s.validation.confirm_threshold))
    s.validation.reject_threshold = int(os.getenv("REJECT_THRESHOLD", s.validation.reject_threshold))
    s.validation.resolve_threshold = int(os.getenv("RESOLVE_THRESHOLD", s.validation.resolve_threshold))

    # 저장소
    s.storage.hazards_path = os.getenv("HAZARDS_DB_PATH", s.storage.hazards_path)
    s.storage.votes_path = os.getenv("VOTES_DB_PATH", s.storage.votes_path)

    # 평판
    s.reputation.enabled = _b("REPUTATION_ENABLED", s.reputation.enabled)
    s.reputation.base_url = os.getenv("REPUTATION_BASE_URL", s.reputation.base_url)
    s.reputation.token = os.getenv("REPUTATION_TOKEN", s.reputation.token)

    # 관측성
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.http_port = int(os.getenv("METRICS_PORT", s.observability.http_port))
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)
    s.observability.log_json = _b("LOG_JSON", s.observability.log_json)

    return s

@dataclass
class Runtime:
    """서비스 시작 시 생성되어 종료 시 해제되는 구성 요소 묶음"""
    hazards: SQLiteHazardStore
    votes: SQLiteVoteLedger
    cooldown: AlertCooldownCache
    reputation: Optional[HttpReputationNotifier]
    detection: DetectionOrchestrator
    validation: ValidationService

async def build_runtime(s: Settings) -> Runtime:
    hazards = SQLiteHazardStore(s.storage.hazards_path); await hazards.init()
    votes = SQLiteVoteLedger(s.storage.votes_path); await votes.init()

    cooldown = AlertCooldownCache(s.alerts.cooldown_sec, sweep_threshold=s.alerts.sweep_threshold)

    reputation = None
    if s.reputation.enabled and not s.dry_run:
        reputation = HttpReputationNotifier(
            base_url=s.reputation.base_url,
            token=s.reputation.token,
            timeout=s.reputation.timeout_sec
        )

    detection = DetectionOrchestrator(
        hazards, cooldown,
        search_radius_m=s.detection.search_radius_m,
        route_corridor_m=s.detection.route_corridor_m,
        cone_half_angle=s.detection.cone_half_angle,
        close_override_m=s.detection.close_override_m,
        route_check_min_m=s.detection.route_check_min_m,
        min_heading_speed=s.detection.min_heading_speed,
        query_timeout_sec=s.detection.query_timeout_sec,
        nearby_display_limit=s.detection.nearby_display_limit,
        voice_language=s.alerts.voice_language,
    )

    engine = ConsensusEngine(
        max_vote_distance_m=s.validation.max_vote_distance_m,
        confirm_threshold=s.validation.confirm_threshold,
        reject_threshold=s.validation.reject_threshold,
        resolve_threshold=s.validation.resolve_threshold,
    )
    validation = ValidationService(
        hazards, votes, reputation, engine,
        duplicate_radius_m=s.validation.duplicate_radius_m,
        default_ttl_sec=s.validation.default_ttl_sec,
        save_max_retries=s.validation.save_max_retries,
    )
    return Runtime(hazards, votes, cooldown, reputation, detection, validation)

async def shutdown_runtime(rt: Runtime) -> None:
    await rt.validation.drain()
    if rt.reputation:
        await rt.reputation.close()
    rt.cooldown.clear()

def make_readiness_check(hazards: SQLiteHazardStore):
    """저장소를 열 수 있어야 준비된 것으로 봅니다 (실패 시 DependencyUnavailable)."""
    async def _ready() -> bool:
        await hazards.get_count()
        return True
    return _ready

async def start_http(settings: Settings, rt: Runtime) -> Optional[asyncio.Task]:
    if not settings.observability.metrics_enabled: return None

    app = create_app(settings, readiness_check=make_readiness_check(rt.hazards))
    return asyncio.create_task(uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=settings.observability.http_port, log_level="info")
    ).serve())

async def update_metrics(rt: Runtime, started: float) -> None:
    """주기적으로 게이지 메트릭을 업데이트합니다."""
    while True:
        metrics.uptime_seconds.set(time.time() - started)
        metrics.cooldown_entries.set(rt.cooldown.size())
        await asyncio.sleep(30)

async def main():
    s = build_settings()
    setup_logger(s.observability.log_level, json_logs=s.observability.log_json)
    log = get_logger()
    log.info("설정 로드 완료")

    rt = await build_runtime(s)
    log.info("런타임 구성 완료")

    http_task = await start_http(s, rt)
    if http_task:
        log.info("HTTP 서버 시작됨")
    metrics_task = asyncio.create_task(update_metrics(rt, time.time()))

    stop = asyncio.Future()
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
            except NotImplementedError: pass
    except RuntimeError: pass

    await stop
    log.info("종료 중")
    metrics_task.cancel()
    if http_task: http_task.cancel()
    await shutdown_runtime(rt)

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
