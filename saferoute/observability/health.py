"""
HTTP endpoints for SafeRoute observability.

This module implements health, readiness, metrics, and info endpoints
for monitoring and operational visibility.
"""

from typing import Awaitable, Callable, Optional
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import time
from saferoute.settings import Settings
from saferoute.observability import metrics as m
from saferoute.observability.logging_setup import get_logger

log = get_logger("saferoute.health")

def create_app(settings: Settings,
               readiness_check: Optional[Callable[[], Awaitable[bool]]] = None) -> FastAPI:
    """
    FastAPI 애플리케이션을 생성합니다.

    Args:
        settings: 애플리케이션 설정
        readiness_check: 저장소 준비 상태 확인 함수 (None이면 항상 준비됨)
    """
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="SafeRoute Hazard Alerting Service"
    )

    start_time = time.time()

    @app.get("/health")
    async def health():
        """헬스 체크 엔드포인트"""
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/ready")
    async def ready():
        """레디니스 체크 엔드포인트"""
        ok = True
        if readiness_check is not None:
            try:
                ok = await readiness_check()
            except Exception as e:
                log.warning(f"레디니스 확인 실패: {e}")
                ok = False
        return JSONResponse(
            {
                "status": "ready" if ok else "not_ready",
                "service": settings.observability.service_name,
                "timestamp": time.time()
            },
            status_code=200 if ok else 503
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus 메트릭 엔드포인트"""
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")

        m.uptime_seconds.set(time.time() - start_time)
        return Response(
            generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/info")
    async def info():
        """서비스 정보 엔드포인트"""
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level,
            "cooldown_sec": settings.alerts.cooldown_sec,
            "search_radius_m": settings.detection.search_radius_m
        })

    @app.get("/")
    async def root():
        """루트 엔드포인트"""
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "metrics": "/metrics",
                "info": "/info"
            }
        })

    return app
