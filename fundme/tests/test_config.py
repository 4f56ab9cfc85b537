"""Tests for configuration loading."""

import pytest

from fundme.config import DEFAULT_PROGRAM_ID, Config


def test_from_env_defaults(monkeypatch):
    monkeypatch.setenv("DB_URL", "sqlite:///ledger.db")
    for name in ("PROGRAM_ID", "LOG_LEVEL", "PUBLISH_EVENTS", "RABBITMQ_PORT"):
        monkeypatch.delenv(name, raising=False)

    config = Config.from_env()

    assert config.db_url == "sqlite:///ledger.db"
    assert config.program_id == DEFAULT_PROGRAM_ID
    assert config.publish_events is False
    assert config.rabbitmq_port == 5672
    config.validate()


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("DB_URL", "postgresql://ledger@localhost/ledger")
    monkeypatch.setenv("PROGRAM_ID", "0x" + "AB" * 20)
    monkeypatch.setenv("PUBLISH_EVENTS", "true")
    monkeypatch.setenv("RABBITMQ_EXCHANGE", "custom_events")

    config = Config.from_env()

    assert config.program_id == "0x" + "ab" * 20
    assert config.publish_events is True
    assert config.rabbitmq_exchange == "custom_events"


def test_db_url_required(monkeypatch):
    monkeypatch.delenv("DB_URL", raising=False)

    with pytest.raises(ValueError, match="DB_URL"):
        Config.from_env()


@pytest.mark.parametrize(
    "overrides",
    [
        {"program_id": "0x1234"},
        {"log_level": "LOUD"},
        {"db_pool_size": 0},
        {"rabbitmq_port": 0},
    ],
)
def test_validate_rejects_bad_values(overrides):
    config = Config(db_url="sqlite://", **overrides)

    with pytest.raises(ValueError):
        config.validate()
