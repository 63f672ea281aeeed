"""Tests for configuration settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from courier.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.server_url == "http://localhost:3000"
    assert settings.max_queue_size == 10_000
    assert settings.sync_interval == 5.0
    assert settings.retry_attempts == 3
    assert settings.snapshot_max_age == 86400
    assert settings.storage_key == "courier_offline_queue"
    assert settings.persist_queue is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("COURIER_MAX_QUEUE_SIZE", "500")
    monkeypatch.setenv("COURIER_SERVER_URL", "https://messages.example.com")
    monkeypatch.setenv("COURIER_PERSIST_QUEUE", "false")

    settings = Settings(_env_file=None)

    assert settings.max_queue_size == 500
    assert settings.server_url == "https://messages.example.com"
    assert settings.persist_queue is False


def test_log_level_normalized():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "field, value",
    [
        ("max_queue_size", 0),
        ("retry_attempts", -1),
        ("sync_interval", 0),
        ("send_delay", -0.5),
        ("log_level", "LOUD"),
    ],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_store_path_under_data_dir(tmp_path):
    settings = Settings(_env_file=None, data_dir=tmp_path)

    assert settings.store_path == tmp_path / "queue.db"


def test_data_path_expands_home():
    settings = Settings(_env_file=None, data_dir=Path("~/courier"))

    assert "~" not in str(settings.data_path)
