"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

from models import RecognitionConfig

CONFIG_DIR = Path.home() / ".config" / "voice_expense"

DEFAULT_HOTKEY = "Key.alt_r"
DEFAULT_LANGUAGE = "en-US"
DEFAULT_LOG_LEVEL = "INFO"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CONFIG_DIR / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", "")) or os.getenv("DASHSCOPE_API_KEY", "")

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_language(self) -> str:
        data = self._read_all()
        return str(data.get("language", DEFAULT_LANGUAGE))

    def set_language(self, language: str) -> None:
        self._set("language", language)

    def get_ledger_path(self) -> str:
        data = self._read_all()
        return str(data.get("ledger_path", CONFIG_DIR / "expenses.json"))

    def get_log_level(self) -> str:
        env_level = os.getenv("VOICE_EXPENSE_LOG_LEVEL")
        if env_level:
            return env_level.upper()
        data = self._read_all()
        return str(data.get("log_level", DEFAULT_LOG_LEVEL)).upper()

    def recognition_config(self) -> RecognitionConfig:
        data = self._read_all()
        defaults = RecognitionConfig()
        return RecognitionConfig(
            language=self.get_language(),
            continuous=bool(data.get("continuous", defaults.continuous)),
            interim_results=bool(data.get("interim_results", defaults.interim_results)),
        )

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
