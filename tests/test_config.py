"""
Tests for environment-driven settings
"""

from proctoring.config import Settings, load_settings


class TestSettings:
    """Tests for Settings / load_settings"""

    def test_defaults(self, monkeypatch):
        for name in ("STORE_BACKEND", "ALLOWED_ORIGINS", "DETECTION_INTERVAL_MS", "FACE_ABSENT_THRESHOLD_S"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        assert settings.store_backend == "memory"
        assert settings.allowed_origins == ["http://localhost:3000"]
        assert settings.detection_interval_ms == 2000
        assert settings.face_absent_threshold_s == 10.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "Mongo")
        monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test,")
        monkeypatch.setenv("DETECTION_INTERVAL_MS", "500")
        monkeypatch.setenv("FOCUS_LOST_THRESHOLD_S", "2.5")

        settings = load_settings()

        assert settings.store_backend == "mongo"
        assert settings.allowed_origins == ["http://a.test", "http://b.test"]
        assert settings.detection_interval_ms == 500
        assert settings.focus_lost_threshold_s == 2.5

    def test_keyword_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "http://env.test")
        assert Settings(frontend_url="http://kw.test").frontend_url == "http://kw.test"
