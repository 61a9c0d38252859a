"""Protocol interfaces for the capabilities the core consumes."""

from __future__ import annotations

from decimal import Decimal
from queue import Queue
from typing import Callable, Optional, Protocol

from models import AddResult, AudioFrame, RecognitionConfig, ReportLevel


class SpeechCapability(Protocol):
    """Host speech recognition facility.

    Handlers are plain attributes assigned by the owner and may be reset to
    ``None`` to detach them. Implementations call them in the order events
    happen and never concurrently.
    """

    on_final_result: Optional[Callable[[str], None]]
    on_interim_result: Optional[Callable[[str], None]]
    on_error: Optional[Callable[[str], None]]
    on_end: Optional[Callable[[], None]]

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def abort(self) -> None: ...


CapabilityFactory = Callable[[RecognitionConfig], Optional[SpeechCapability]]


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class RecordStore(Protocol):
    async def add_record(self, description: str, amount: Decimal) -> AddResult: ...


class WarningSink(Protocol):
    def report(self, level: ReportLevel, message: str) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_language(self) -> str: ...

    def get_ledger_path(self) -> str: ...

    def get_log_level(self) -> str: ...
