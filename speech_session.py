"""State machine owning one speech capability instance."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from error_translator import UNSUPPORTED_CODE, translate_error
from errors import InvalidTransitionError, UnsupportedCapabilityError
from interfaces import CapabilityFactory, SpeechCapability
from models import ErrorCategory, RecognitionConfig, RecognitionError, SessionState

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TextCallback = Callable[[str], None]
ErrorCallback = Callable[[RecognitionError], None]

TRANSITIONS = {
    SessionState.IDLE: frozenset({SessionState.LISTENING}),
    SessionState.LISTENING: frozenset({SessionState.IDLE, SessionState.ERROR}),
    SessionState.ERROR: frozenset({SessionState.IDLE}),
}


class SpeechSession:
    def __init__(
        self,
        capability_factory: Optional[CapabilityFactory],
        config: Optional[RecognitionConfig] = None,
        on_transcript: Optional[TextCallback] = None,
        on_interim: Optional[TextCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._factory = capability_factory
        self._config = config or RecognitionConfig()
        self.on_transcript = on_transcript
        self.on_interim = on_interim
        self.on_error = on_error
        self.on_state_change = on_state_change

        self._capability: Optional[SpeechCapability] = None
        self._state = SessionState.IDLE
        self._transcript = ""
        self._error: Optional[RecognitionError] = None
        self._disposed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def listening(self) -> bool:
        return self._state == SessionState.LISTENING

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def error(self) -> Optional[RecognitionError]:
        return self._error

    @property
    def supported(self) -> bool:
        return self._factory is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> None:
        if self._disposed:
            logger.warning("start() called on a disposed session")
            return
        if self._state != SessionState.IDLE:
            logger.warning("start() called while %s", self._state.value)
            return

        self._transcript = ""
        self._error = None

        capability = self._ensure_capability()
        if capability is None:
            self._error = translate_error(UNSUPPORTED_CODE)
            logger.error("no speech recognition capability available")
            raise UnsupportedCapabilityError()

        self._bind(capability)
        self._transition(SessionState.LISTENING)
        logger.info("listening (language=%s)", self._config.language)
        try:
            capability.start()
        except Exception as exc:
            logger.error("speech capability failed to start: %s", exc)
            code = getattr(exc, "code", None)
            if isinstance(code, str):
                error = translate_error(code)
            else:
                error = RecognitionError(category=ErrorCategory.UNKNOWN, raw_code=str(exc))
            self._fail(error)

    def stop(self) -> None:
        if self._state != SessionState.LISTENING or self._capability is None:
            logger.warning("stop() called while %s", self._state.value)
            return
        try:
            self._capability.stop()
        except Exception as exc:
            logger.error("speech capability failed to stop: %s", exc)
            try:
                self._capability.abort()
            except Exception as abort_exc:
                logger.warning("speech capability failed to abort: %s", abort_exc)
            self._transition(SessionState.IDLE)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        capability = self._capability
        self._capability = None
        if capability is not None:
            self._unbind(capability)
            try:
                capability.abort()
            except Exception as exc:  # pragma: no cover - defensive
                logger.debug("abort during dispose failed: %s", exc)
        if self._state != SessionState.IDLE:
            self._transition(SessionState.IDLE)
        self.on_transcript = None
        self.on_interim = None
        self.on_error = None
        self.on_state_change = None
        logger.debug("session disposed")

    # ------------------------------------------------------------------
    # Capability events
    # ------------------------------------------------------------------

    def _handle_final_result(self, text: str) -> None:
        if not self._accepts("final result"):
            return
        if not text or not text.strip():
            return
        self._transcript = text
        self._error = None
        if self.on_transcript:
            self.on_transcript(text)

    def _handle_interim_result(self, text: str) -> None:
        if not self._accepts("interim result"):
            return
        if self.on_interim:
            self.on_interim(text)

    def _handle_error(self, code: str) -> None:
        if not self._accepts("error"):
            return
        self._fail(translate_error(code))

    def _handle_end(self) -> None:
        if not self._accepts("end"):
            return
        self._transition(SessionState.IDLE)
        logger.info("capture turn ended")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _accepts(self, event: str) -> bool:
        if self._state != SessionState.LISTENING:
            logger.debug("ignoring %s event while %s", event, self._state.value)
            return False
        return True

    def _ensure_capability(self) -> Optional[SpeechCapability]:
        if self._capability is None and self._factory is not None:
            self._capability = self._factory(self._config)
        return self._capability

    def _bind(self, capability: SpeechCapability) -> None:
        capability.on_final_result = self._handle_final_result
        capability.on_interim_result = self._handle_interim_result
        capability.on_error = self._handle_error
        capability.on_end = self._handle_end

    def _unbind(self, capability: SpeechCapability) -> None:
        capability.on_final_result = None
        capability.on_interim_result = None
        capability.on_error = None
        capability.on_end = None

    def _fail(self, error: RecognitionError) -> None:
        self._error = error
        logger.warning("recognition error %s (%s)", error.category.value, error.raw_code)
        self._transition(SessionState.ERROR)
        self._transition(SessionState.IDLE)
        if self.on_error:
            self.on_error(error)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        if to_state not in TRANSITIONS.get(from_state, frozenset()):
            raise InvalidTransitionError(from_state.value, to_state.value)
        self._state = to_state
        if self.on_state_change:
            self.on_state_change(from_state, to_state)
