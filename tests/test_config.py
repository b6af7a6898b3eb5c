"""
Settings are read from the environment; bad values fall back to defaults.
"""

from backend.app.core.config import DEFAULT_ALLOWED_ORIGINS, Settings


def test_defaults(monkeypatch):
    for key in ("SIM_BATCH_SIZE", "CORS_ALLOWED_ORIGINS", "LOG_JSON", "SIM_PRO_RATIONALES", "SIM_POLL_INTERVAL"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings.from_env()
    assert settings.batch_size == 100
    assert settings.allowed_origins == DEFAULT_ALLOWED_ORIGINS
    assert settings.log_json is False
    assert settings.pro_rationales is True
    assert settings.poll_interval == 0.9


def test_overrides_and_malformed_values(monkeypatch):
    monkeypatch.setenv("SIM_BATCH_SIZE", "cien")
    monkeypatch.setenv("SIM_BASIC_TIMEOUT", "120")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", " https://a.example , ,https://b.example")
    monkeypatch.setenv("LOG_JSON", "yes")
    monkeypatch.setenv("SIM_PRO_RATIONALES", "0")
    settings = Settings.from_env()
    assert settings.batch_size == 100
    assert settings.basic_timeout == 120.0
    assert settings.allowed_origins == ("https://a.example", "https://b.example")
    assert settings.log_json is True
    assert settings.pro_rationales is False
