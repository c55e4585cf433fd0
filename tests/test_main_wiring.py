"""
서비스 구성(main) 테스트
"""

import pytest
from fastapi.testclient import TestClient

from saferoute.adapters.storage.sqlite_hazards import SQLiteHazardStore
from saferoute.main import build_runtime, build_settings, make_readiness_check, shutdown_runtime
from saferoute.observability.health import create_app


class TestBuildSettings:
    """환경 변수 오버레이 테스트"""

    def test_defaults(self, monkeypatch):
        for name in ("ALERT_COOLDOWN_SEC", "SEARCH_RADIUS_M", "REPUTATION_ENABLED", "VOICE_LANGUAGE"):
            monkeypatch.delenv(name, raising=False)

        s = build_settings()

        assert s.alerts.cooldown_sec == 600.0
        assert s.detection.search_radius_m == 2000.0
        assert s.validation.confirm_threshold == 3

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ALERT_COOLDOWN_SEC", "120")
        monkeypatch.setenv("SEARCH_RADIUS_M", "1500")
        monkeypatch.setenv("VOICE_LANGUAGE", "ko")
        monkeypatch.setenv("REPUTATION_ENABLED", "false")
        monkeypatch.setenv("CONFIRM_THRESHOLD", "4")

        s = build_settings()

        assert s.alerts.cooldown_sec == 120.0
        assert s.detection.search_radius_m == 1500.0
        assert s.alerts.voice_language == "ko"
        assert s.reputation.enabled is False
        assert s.validation.confirm_threshold == 4


class TestBuildRuntime:
    """런타임 구성 테스트"""

    @pytest.mark.asyncio
    async def test_wires_components(self, sample_settings, tmp_path):
        sample_settings.storage.hazards_path = str(tmp_path / "hazards.db")
        sample_settings.storage.votes_path = str(tmp_path / "votes.db")
        sample_settings.reputation.enabled = False
        sample_settings.alerts.cooldown_sec = 90
        sample_settings.validation.confirm_threshold = 5

        rt = await build_runtime(sample_settings)

        assert rt.reputation is None
        assert rt.cooldown.cooldown == 90
        assert rt.validation.engine.confirm_threshold == 5
        assert rt.detection.store is rt.hazards
        assert await rt.hazards.get_count() == 0

        await shutdown_runtime(rt)

    @pytest.mark.asyncio
    async def test_reputation_enabled(self, sample_settings, tmp_path):
        sample_settings.storage.hazards_path = str(tmp_path / "hazards.db")
        sample_settings.storage.votes_path = str(tmp_path / "votes.db")
        sample_settings.reputation.enabled = True

        rt = await build_runtime(sample_settings)

        assert rt.reputation is not None
        assert rt.validation.reputation is rt.reputation

        await shutdown_runtime(rt)


class TestReadinessCheck:
    """저장소 기반 레디니스 확인 테스트"""

    def test_missing_store_directory_is_not_ready(self, sample_settings, tmp_path):
        """열 수 없는 저장소면 /ready 503"""
        store = SQLiteHazardStore(str(tmp_path / "missing" / "hazards.db"))
        client = TestClient(create_app(sample_settings, readiness_check=make_readiness_check(store)))

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    @pytest.mark.asyncio
    async def test_initialized_store_is_ready(self, sample_settings, tmp_path):
        store = SQLiteHazardStore(str(tmp_path / "hazards.db"))
        await store.init()
        client = TestClient(create_app(sample_settings, readiness_check=make_readiness_check(store)))

        assert client.get("/ready").status_code == 200
