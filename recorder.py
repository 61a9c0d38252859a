"""Microphone capture feeding PCM frames into a queue."""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import Any

from errors import AudioCaptureError
from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover - PortAudio missing raises OSError
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class MicrophoneRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self.captured_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        """Open the input stream; raises AudioCaptureError if that fails."""
        with self._lock:
            if self._running:
                return
            if sd is None or np is None:
                raise AudioCaptureError("sounddevice/numpy is not installed")
            self._audio_queue = audio_queue
            self.dropped_chunks = 0
            self.captured_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    device=self.device,
                    callback=self._on_audio,
                )
                self._stream.start()
            except Exception as exc:
                self._stream = None
                raise AudioCaptureError(f"cannot open microphone: {exc}") from exc
            self._running = True
            logger.debug("microphone open at %d Hz", self.sample_rate)

    def stop(self) -> None:
        with self._lock:
            if self._running:
                self._running = False
                if self._stream is not None:
                    self._stream.stop()
                    self._stream.close()
                    self._stream = None
                logger.debug(
                    "microphone closed, %d chunks captured, %d dropped",
                    self.captured_chunks,
                    self.dropped_chunks,
                )
            self._put_sentinel()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None or np is None:
            return
        if status:
            logger.debug("input stream status: %s", status)
        frame = AudioFrame(
            pcm16_bytes=np.asarray(indata, dtype=np.int16).tobytes(),
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            self._audio_queue.put_nowait(frame)
            self.captured_chunks += 1
        except Full:
            self.dropped_chunks += 1

    def _put_sentinel(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            logger.debug("audio queue full, sentinel dropped")
