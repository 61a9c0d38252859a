from __future__ import annotations

from pathlib import Path

import pytest

from config import JsonConfigStore
from models import RecognitionConfig


def test_config_read_write(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_r"
    assert store.get_language() == "en-US"

    store.set_api_key("abc")
    store.set_hotkey("Key.f9")
    store.set_language("en-GB")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.f9"
    assert reloaded.get_language() == "en-GB"


def test_config_invalid_json_fallback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_r"


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DASHSCOPE_API_KEY", "from-env")
    monkeypatch.setenv("VOICE_EXPENSE_LOG_LEVEL", "debug")

    store = JsonConfigStore(path=tmp_path / "config.json")
    assert store.get_api_key() == "from-env"
    assert store.get_log_level() == "DEBUG"

    store.set_api_key("saved")
    assert store.get_api_key() == "saved"


def test_recognition_config(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"language": "en-AU", "continuous": true, "interim_results": true}', encoding="utf-8")

    config = JsonConfigStore(path=path).recognition_config()
    assert config == RecognitionConfig(language="en-AU", continuous=True, interim_results=True)


def test_recognition_config_defaults(tmp_path: Path) -> None:
    config = JsonConfigStore(path=tmp_path / "config.json").recognition_config()
    assert config == RecognitionConfig()
    assert config.interim_results is False


def test_ledger_path_default(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    assert store.get_ledger_path().endswith("expenses.json")
