from pathlib import Path

import pytest

from trainer.api import DEFAULT_TIMEOUT
from trainer.config import load_config
from trainer.settings import DEFAULT_SETTINGS_PATH


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REPHRASE_ENDPOINT", "REPHRASE_TIMEOUT", "REPHRASE_SETTINGS_PATH", "REPHRASE_DEBUG"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    config = load_config(dotenv=False)
    assert config.endpoint is None
    assert config.timeout == DEFAULT_TIMEOUT
    assert config.settings_path == DEFAULT_SETTINGS_PATH
    assert config.debug is True


def test_invalid_timeout_keeps_default(monkeypatch):
    monkeypatch.setenv("REPHRASE_TIMEOUT", "abc")
    assert load_config(dotenv=False).timeout == DEFAULT_TIMEOUT


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("REPHRASE_ENDPOINT", "http://gpu-box:8000/v1/chat/completions")
    monkeypatch.setenv("REPHRASE_TIMEOUT", "5")
    monkeypatch.setenv("REPHRASE_SETTINGS_PATH", str(tmp_path / "s.json"))
    config = load_config(dotenv=False)
    assert config.endpoint == "http://gpu-box:8000/v1/chat/completions"
    assert config.timeout == 5.0
    assert config.settings_path == Path(tmp_path / "s.json")


@pytest.mark.parametrize("raw, expected", [("0", False), ("false", False), ("off", False), ("1", True), ("yes", True)])
def test_debug_flag(monkeypatch, raw, expected):
    monkeypatch.setenv("REPHRASE_DEBUG", raw)
    assert load_config(dotenv=False).debug is expected
