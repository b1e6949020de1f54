import json

from trainer.models import DEFAULT_ENDPOINT, DEFAULT_MODEL
from trainer.settings import JsonFileSettingsBackend, MemorySettingsBackend, SettingsStore


def test_defaults_when_never_saved():
    store = SettingsStore(MemorySettingsBackend())
    settings = store.get()
    assert settings.api_key == ""
    assert settings.model == DEFAULT_MODEL == "local-llama"
    assert settings.endpoint == DEFAULT_ENDPOINT


def test_save_updates_in_memory_and_backend():
    backend = MemorySettingsBackend()
    store = SettingsStore(backend)

    store.save("secret-key", "llama-3-8b")

    assert store.get().api_key == "secret-key"
    assert store.get().model == "llama-3-8b"
    assert backend.save_count == 1
    assert backend.load()["api_key"] == "secret-key"
    assert backend.load()["model"] == "llama-3-8b"


def test_empty_key_is_a_valid_stored_value():
    store = SettingsStore(MemorySettingsBackend({"api_key": "old"}))
    store.save("", "local-llama")
    assert store.get().api_key == ""


def test_save_keeps_endpoint_unless_given():
    store = SettingsStore(MemorySettingsBackend({"endpoint": "http://box:8080/v1/chat/completions"}))
    store.save("k", "m")
    assert store.get().endpoint == "http://box:8080/v1/chat/completions"
    store.save("k", "m", "http://other/v1/chat/completions")
    assert store.get().endpoint == "http://other/v1/chat/completions"


def test_json_backend_round_trip(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    SettingsStore(JsonFileSettingsBackend(path)).save("abc", "phi-3")

    reloaded = SettingsStore(JsonFileSettingsBackend(path)).get()
    assert reloaded.api_key == "abc"
    assert reloaded.model == "phi-3"
    assert json.loads(path.read_text(encoding="utf-8"))["model"] == "phi-3"
    assert list(path.parent.glob(".settings-*")) == []


def test_json_backend_missing_or_corrupt_file_loads_defaults(tmp_path):
    missing = JsonFileSettingsBackend(tmp_path / "nope.json")
    assert missing.load() == {}

    corrupt_path = tmp_path / "bad.json"
    corrupt_path.write_text("{not json", encoding="utf-8")
    store = SettingsStore(JsonFileSettingsBackend(corrupt_path))
    assert store.get().model == DEFAULT_MODEL


def test_json_backend_absent_key_uses_default(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"api_key": "only-key"}), encoding="utf-8")
    settings = SettingsStore(JsonFileSettingsBackend(path)).get()
    assert settings.api_key == "only-key"
    assert settings.model == DEFAULT_MODEL
