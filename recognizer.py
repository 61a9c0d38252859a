"""Speech capability backed by the microphone and DashScope qwen3-asr-flash.

The qwen3-asr-flash model accepts complete audio (file path, URL, or base64)
and streams back recognition results via ``stream=True``.  Audio frames are
collected from the recorder until the turn ends, wrapped in a WAV container
and sent to the model.  Results and failures are reported through the
handler attributes of the speech capability interface using Web Speech
style error codes ("no-speech", "network", ...).
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import time
import wave
from queue import Empty, Queue
from typing import Any, Callable, Optional

from errors import AudioCaptureError
from interfaces import Recorder
from models import AudioFrame, RecognitionConfig
from recorder import MicrophoneRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

Dispatch = Callable[..., Any]

NO_SPEECH = "no-speech"
NETWORK = "network"
SERVICE_NOT_ALLOWED = "service-not-allowed"
LANGUAGE_NOT_SUPPORTED = "language-not-supported"
ASR_PROTOCOL = "asr-protocol"

SUPPORTED_LANGUAGES = {"zh", "yue", "en", "ja", "de", "ko", "ru", "fr", "pt", "ar", "it", "es"}


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV data URI payload."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _language_code(language: str) -> str:
    return language.split("-")[0].lower()


class DashscopeSpeechCapability:
    def __init__(
        self,
        api_key: str,
        config: Optional[RecognitionConfig] = None,
        recorder: Optional[Recorder] = None,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
        max_turn_s: float = 15.0,
        queue_maxsize: int = 600,
        dispatch: Optional[Dispatch] = None,
    ) -> None:
        self._api_key = api_key
        self._config = config or RecognitionConfig()
        self._recorder = recorder or MicrophoneRecorder()
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._max_turn_s = max_turn_s
        self._queue_maxsize = queue_maxsize
        self._dispatch = dispatch

        self.on_final_result: Optional[Callable[[str], None]] = None
        self.on_interim_result: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None

        self._thread: Optional[threading.Thread] = None
        self._abort_event = threading.Event()
        self._finish_event = threading.Event()
        self._audio_queue: Queue[AudioFrame | None] = Queue(maxsize=queue_maxsize)

    def start(self) -> None:
        if self._thread and self._thread.is_alive() and not self._abort_event.is_set():
            logger.warning("capture already running")
            return
        # Fresh events per turn; an aborted worker may still be winding down.
        self._abort_event = threading.Event()
        self._finish_event = threading.Event()
        if _language_code(self._config.language) not in SUPPORTED_LANGUAGES:
            self._emit_failure(self._abort_event, LANGUAGE_NOT_SUPPORTED)
            return
        self._audio_queue = Queue(maxsize=self._queue_maxsize)
        # AudioCaptureError propagates so the session can classify it.
        self._recorder.start(self._audio_queue)
        self._thread = threading.Thread(
            target=self._worker,
            args=(self._audio_queue, self._abort_event, self._finish_event),
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._finish_event.set()
        self._recorder.stop()

    def abort(self) -> None:
        """Discard the current turn without waiting for the worker."""
        self._abort_event.set()
        self._finish_event.set()
        try:
            self._recorder.stop()
        except AudioCaptureError as exc:  # pragma: no cover - defensive
            logger.debug("recorder stop during abort failed: %s", exc)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _emit(self, abort_event: threading.Event, name: str, *args: Any) -> None:
        if abort_event.is_set():
            return
        handler = getattr(self, name)
        if handler is None:
            return
        if self._dispatch is not None:
            self._dispatch(handler, *args)
        else:
            handler(*args)

    def _emit_failure(self, abort_event: threading.Event, code: str) -> None:
        self._emit(abort_event, "on_error", code)
        self._emit(abort_event, "on_end")

    def _worker(
        self,
        audio_queue: Queue[AudioFrame | None],
        abort_event: threading.Event,
        finish_event: threading.Event,
    ) -> None:
        """Collect frames until the turn ends, then recognise."""
        pcm = bytearray()
        sample_rate = 16000
        channels = 1
        started = time.monotonic()

        while not abort_event.is_set():
            if (
                not self._config.continuous
                and not finish_event.is_set()
                and time.monotonic() - started > self._max_turn_s
            ):
                logger.info("turn reached %.0fs, stopping capture", self._max_turn_s)
                finish_event.set()
                self._recorder.stop()
            try:
                frame = audio_queue.get(timeout=0.2)
            except Empty:
                if finish_event.is_set():
                    break
                continue
            if frame is None:  # Sentinel
                break
            pcm.extend(frame.pcm16_bytes)
            sample_rate = frame.sample_rate
            channels = frame.channels

        if abort_event.is_set():
            return
        if not pcm:
            self._emit_failure(abort_event, NO_SPEECH)
            return

        wav_b64 = _pcm_to_wav_base64(bytes(pcm), sample_rate, channels)
        self._recognize_stream(wav_b64, abort_event)

    def _recognize_stream(self, wav_base64: str, abort_event: threading.Event) -> None:
        """Send audio to dashscope and report the final transcript."""
        if dashscope is None:
            logger.error("dashscope is not installed")
            self._emit_failure(abort_event, SERVICE_NOT_ALLOWED)
            return

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            logger.error("no DashScope API key configured")
            self._emit_failure(abort_event, SERVICE_NOT_ALLOWED)
            return

        latest_text = ""
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": f"data:audio/wav;base64,{wav_base64}"}]},
                ],
                result_format="message",
                asr_options={
                    "language": _language_code(self._config.language),
                    "enable_itn": True,
                },
                stream=True,
                timeout=self._request_timeout_s,
            )
            for chunk in response:
                if abort_event.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    if self._config.interim_results:
                        self._emit(abort_event, "on_interim_result", text)
        except Exception as exc:
            logger.warning("recognition failed: %s", exc)
            self._emit_failure(abort_event, self._to_error_code(exc))
            return

        if not latest_text.strip():
            self._emit_failure(abort_event, NO_SPEECH)
            return
        self._emit(abort_event, "on_final_result", latest_text)
        self._emit(abort_event, "on_end")

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if not isinstance(chunk, dict):
            return ""
        status = chunk.get("status_code")
        if status is not None and status != 200:
            raise RuntimeError(f"{status} {chunk.get('code', '')}: {chunk.get('message', '')}")
        output = chunk.get("output") or {}
        choices = output.get("choices") or []
        if not choices:
            return ""
        content = (choices[0].get("message") or {}).get("content") or []
        if not content:
            return ""
        value = content[0]
        if isinstance(value, dict):
            return str(value.get("text", ""))
        return ""

    def _to_error_code(self, exc: Exception) -> str:
        """Map an SDK/network exception to a Web Speech style code."""
        low = str(exc).lower()
        if "401" in low or "403" in low or "auth" in low or "api key" in low or "api-key" in low:
            return SERVICE_NOT_ALLOWED
        if "timeout" in low or "timed out" in low or "network" in low or "connection" in low:
            return NETWORK
        return ASR_PROTOCOL
