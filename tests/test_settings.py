import pytest
from loguru import logger
from pydantic import ValidationError

from log_config import setup_logging
from settings import AnalyticsSettings, get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = AnalyticsSettings()

    assert settings.risk_free_rate == 0.0
    assert settings.monte_carlo_runs == 2000
    assert settings.monte_carlo_sequence_length == 100
    assert settings.ruin_drawdown_threshold == 0.30
    assert settings.prediction_runs == 5000
    assert settings.kelly_multiplier == 1.0
    assert settings.random_seed is None


def test_environment_overrides(monkeypatch, fresh_settings):
    monkeypatch.setenv("ANALYTICS_MONTE_CARLO_RUNS", "50")
    monkeypatch.setenv("ANALYTICS_RANDOM_SEED", "42")

    settings = get_settings()

    assert settings.monte_carlo_runs == 50
    assert settings.random_seed == 42
    assert get_settings() is settings


@pytest.mark.parametrize("field, value", [
    ("ruin_drawdown_threshold", 0),
    ("ruin_drawdown_threshold", 1.5),
    ("kelly_multiplier", 2),
    ("monte_carlo_runs", -1),
    ("monte_carlo_sequence_length", 0),
    ("risk_free_rate", -0.01),
])
def test_out_of_range_values_rejected(field, value):
    with pytest.raises(ValidationError):
        AnalyticsSettings(**{field: value})


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "analytics.log"

    setup_logging("DEBUG", log_file=log_file)
    logger.debug("evaluation replay done")
    logger.remove()

    content = log_file.read_text()
    assert "Logging initialized at DEBUG level" in content
    assert "evaluation replay done" in content


def test_setup_logging_defaults_to_configured_level(tmp_path, monkeypatch, fresh_settings):
    monkeypatch.setenv("ANALYTICS_LOG_LEVEL", "WARNING")
    log_file = tmp_path / "analytics.log"

    setup_logging(log_file=log_file)
    logger.info("not written")
    logger.warning("skipped 2 trades")
    logger.remove()

    content = log_file.read_text()
    assert "skipped 2 trades" in content
    assert "not written" not in content
