"""Core data models for the app."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


class SessionState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"


class ErrorCategory(str, Enum):
    NO_SPEECH = "NO_SPEECH"
    AUDIO_CAPTURE = "AUDIO_CAPTURE"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NETWORK = "NETWORK"
    ABORTED = "ABORTED"
    SERVICE_DENIED = "SERVICE_DENIED"
    BAD_GRAMMAR = "BAD_GRAMMAR"
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"
    UNSUPPORTED_CAPABILITY = "UNSUPPORTED_CAPABILITY"
    UNKNOWN = "UNKNOWN"


class ReportLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass(frozen=True)
class RecognitionConfig:
    language: str = "en-US"
    continuous: bool = False
    interim_results: bool = False


@dataclass(frozen=True)
class RecognitionError:
    category: ErrorCategory
    raw_code: str


@dataclass(frozen=True)
class AmountPattern:
    """One recognised way of saying a number of money; lower priority wins."""

    name: str
    regex: re.Pattern[str]
    priority: int


@dataclass(frozen=True)
class AmountMatch:
    value: Decimal
    matched_span: str

    def __post_init__(self) -> None:
        if not self.value.is_finite() or self.value <= 0:
            raise ValueError(f"amount must be positive and finite, got {self.value}")


@dataclass(frozen=True)
class ParsedCommand:
    amount: Decimal
    description: str

    def __post_init__(self) -> None:
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError(f"amount must be positive and finite, got {self.amount}")
        if not self.description.strip():
            raise ValueError("description must not be empty")


@dataclass
class AddResult:
    success: bool
    reason: str = ""
    record_id: str = ""


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class ExpenseRecord:
    id: str
    description: str
    amount: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExpenseRecord":
        return cls(
            id=str(data.get("id", "")),
            description=str(data.get("description", "")),
            amount=Decimal(str(data.get("amount", "0"))),
            timestamp=_as_utc(datetime.fromisoformat(data["timestamp"])),
        )
