"""Shared error types, reason codes and user-facing messages."""

from __future__ import annotations

from models import ErrorCategory

NO_AMOUNT = "NO_AMOUNT"
NO_DESCRIPTION = "NO_DESCRIPTION"

PARSE_HINT = 'Could not understand the expense details. Try saying "Spent 10 dollars on coffee".'

ERROR_MESSAGES = {
    ErrorCategory.NO_SPEECH: "No speech was detected. Please try speaking clearly.",
    ErrorCategory.AUDIO_CAPTURE: "Audio capture failed. Ensure your microphone is working and properly connected.",
    ErrorCategory.PERMISSION_DENIED: "Microphone access denied. Please allow microphone permissions in system settings.",
    ErrorCategory.NETWORK: "Network error during speech recognition. Please check your connection.",
    ErrorCategory.ABORTED: "Speech recognition aborted.",
    ErrorCategory.SERVICE_DENIED: "Speech recognition service denied. Check your API key.",
    ErrorCategory.BAD_GRAMMAR: "Speech recognition could not understand the grammar.",
    ErrorCategory.UNSUPPORTED_LANGUAGE: "The configured language is not supported for speech recognition.",
    ErrorCategory.UNSUPPORTED_CAPABILITY: "Speech recognition is not available on this system.",
    ErrorCategory.UNKNOWN: "An unexpected speech recognition error occurred.",
}


class ExpenseVoiceError(Exception):
    """Base class for every error raised by the app."""

    def __init__(self, message: str, code: str = "ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class InputError(ExpenseVoiceError):
    """The parser was handed an empty or non-text utterance."""

    def __init__(self, message: str = "utterance must be a non-empty string") -> None:
        super().__init__(message, code="INPUT_ERROR")


class ParseError(ExpenseVoiceError):
    def __init__(self, reason: str, utterance: str = "") -> None:
        self.reason = reason
        self.utterance = utterance
        super().__init__(f"{reason}: {utterance!r}", code=reason)


class SessionError(ExpenseVoiceError):
    def __init__(self, category: ErrorCategory, message: str = "") -> None:
        self.category = category
        super().__init__(message or ERROR_MESSAGES[category], code=category.value)


class UnsupportedCapabilityError(SessionError):
    def __init__(self) -> None:
        super().__init__(ErrorCategory.UNSUPPORTED_CAPABILITY)


class InvalidTransitionError(ExpenseVoiceError):
    def __init__(self, from_state: object, to_state: object) -> None:
        super().__init__(f"illegal transition {from_state} -> {to_state}", code="INVALID_TRANSITION")


class DownstreamError(ExpenseVoiceError):
    """The record-add capability rejected the expense or raised."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason, code="DOWNSTREAM_ERROR")


class AudioCaptureError(ExpenseVoiceError):
    def __init__(self, message: str) -> None:
        # Same code the capability reports through on_error.
        super().__init__(message, code="audio-capture")
