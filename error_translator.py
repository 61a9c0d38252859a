"""Map raw speech engine error codes onto ErrorCategory."""

from __future__ import annotations

import logging

from errors import ERROR_MESSAGES
from models import ErrorCategory, RecognitionError

logger = logging.getLogger(__name__)

UNSUPPORTED_CODE = "unsupported"

CODE_CATEGORIES = {
    "no-speech": ErrorCategory.NO_SPEECH,
    "audio-capture": ErrorCategory.AUDIO_CAPTURE,
    "not-allowed": ErrorCategory.PERMISSION_DENIED,
    "network": ErrorCategory.NETWORK,
    "aborted": ErrorCategory.ABORTED,
    "service-not-allowed": ErrorCategory.SERVICE_DENIED,
    "bad-grammar": ErrorCategory.BAD_GRAMMAR,
    "language-not-supported": ErrorCategory.UNSUPPORTED_LANGUAGE,
    UNSUPPORTED_CODE: ErrorCategory.UNSUPPORTED_CAPABILITY,
}


def translate_error(code: object) -> RecognitionError:
    """Return the category for ``code``; anything unrecognised is UNKNOWN."""
    raw_code = code if isinstance(code, str) else repr(code)
    category = CODE_CATEGORIES.get(raw_code.strip().lower())
    if category is None:
        logger.warning("unhandled speech recognition error code: %r", code)
        category = ErrorCategory.UNKNOWN
    return RecognitionError(category=category, raw_code=raw_code)


def message_for(category: ErrorCategory) -> str:
    return ERROR_MESSAGES.get(category, ERROR_MESSAGES[ErrorCategory.UNKNOWN])
