import pytest

from logstream.core.config import load_settings
from logstream.core.errors import ConfigError


def test_invalid_environment_raises_config_error(monkeypatch):
    monkeypatch.setenv("RETENTION_DAYS", "0")

    with pytest.raises(ConfigError):
        load_settings()


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("RETENTION_DAYS", "7")
    monkeypatch.setenv("MEILISEARCH_API_URL", "http://search:7700")

    loaded = load_settings()

    assert loaded.retention_days == 7
    assert loaded.meilisearch_api_url == "http://search:7700"
