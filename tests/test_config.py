from datetime import timedelta

import pytest
from pydantic import ValidationError

from core.config import load_config
from core.duration import duration_seconds, parse_duration


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("NOWMARKET_HOME", str(tmp_path))
    return tmp_path


def test_defaults_without_files(home):
    config = load_config()

    assert config.home_path == home
    assert config.market.tick_seconds == 1.0
    assert config.market.snapshot_every == 5
    assert config.simulation.circuit_breaker == 0.09
    assert config.backfill.batch_delay_seconds == 1.5
    assert (home / "snapshots").is_dir()


def test_yaml_with_env_substitution(home, monkeypatch):
    monkeypatch.setenv("NOW_PORT", "9001")
    (home / "config.yaml").write_text(
        "server:\n"
        "  port: ${NOW_PORT}\n"
        "market:\n"
        "  tick_interval: 250ms\n"
        "  seed: 42\n"
        "backfill:\n"
        "  enabled: false\n"
    )

    config = load_config()

    assert config.server.port == 9001
    assert config.market.tick_seconds == 0.25
    assert config.market.seed == 42
    assert not config.backfill.enabled


def test_dotenv_is_loaded(home):
    (home / ".env").write_text("NOWMARKET_TEST_HOST=0.0.0.0\n")
    (home / "config.yaml").write_text("server:\n  host: ${NOWMARKET_TEST_HOST}\n")

    config = load_config()

    assert config.server.host == "0.0.0.0"


def test_bad_duration_fails_fast(home):
    (home / "config.yaml").write_text("backfill:\n  timeout: soon\n")

    with pytest.raises(ValueError):
        load_config()


def test_invalid_values_fail_validation(home):
    (home / "config.yaml").write_text("market:\n  snapshot_every: 0\n")

    with pytest.raises(ValidationError):
        load_config()


@pytest.mark.parametrize("value,expected", [
    ("1500ms", timedelta(milliseconds=1500)),
    ("1s", timedelta(seconds=1)),
    ("0.5m", timedelta(seconds=30)),
    ("1h", timedelta(hours=1)),
    ("2d", timedelta(days=2)),
    (3, timedelta(seconds=3)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


def test_negative_and_malformed_durations():
    with pytest.raises(ValueError):
        parse_duration(-1)
    with pytest.raises(ValueError):
        duration_seconds("ten seconds")
