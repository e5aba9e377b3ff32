"""
Unit tests for EmbeddingConfig validation and record-state helpers.
No API keys required.
"""

import numpy as np
import pytest

from postclusters.schema import (
    ABSENT,
    ConfigurationError,
    EmbeddingConfig,
    RunSummary,
    is_absent,
    is_embedded,
    is_pending,
)


def test_missing_api_key_raises():
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        EmbeddingConfig(api_key="")


def test_from_env_without_key_raises(monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigurationError):
        EmbeddingConfig.from_env(env_path=str(tmp_path / "missing.env"))


def test_from_env_reads_env_file(monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("OPENAI_API_KEY=sk-from-file\n")
    config = EmbeddingConfig.from_env(env_path=str(env_file), batch_size=50)
    assert config.api_key == "sk-from-file"
    assert config.batch_size == 50
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def test_from_env_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    config = EmbeddingConfig.from_env(env_path=str(tmp_path / "missing.env"))
    assert config.api_key == "sk-env"
    assert config.model == "text-embedding-3-small"
    assert config.dimensions == 1536


@pytest.mark.parametrize("field,value", [
    ("batch_size", 0),
    ("checkpoint_frequency", -5),
    ("max_retries", 0),
    ("dimensions", 0),
    ("rate_limit_delay", -1.0),
    ("timeout", 0),
])
def test_invalid_values_raise(field, value):
    with pytest.raises(ConfigurationError):
        EmbeddingConfig(api_key="sk-test", **{field: value})


def test_describe_hides_api_key():
    info = EmbeddingConfig(api_key="sk-secret").describe()
    assert "api_key" not in info
    assert info["batch_size"] == 100


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_record_states():
    assert is_pending(None)
    assert not is_absent(None) and not is_embedded(None)

    assert is_absent(ABSENT)
    assert is_absent(float("nan"))
    assert is_absent([float("nan"), float("nan")])
    assert is_absent(np.array([np.nan, np.nan]))
    assert is_absent([])

    assert is_embedded([0.1, 0.2])
    assert is_embedded(np.array([0.1, 0.2]))
    assert is_embedded([0.1, float("nan")])
    assert not is_pending([0.1])


def test_run_summary_attempted():
    summary = RunSummary(total=10, succeeded=7, failed=2, pending=1)
    assert summary.attempted == 9
