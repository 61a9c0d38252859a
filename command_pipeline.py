"""Glue between the speech session, the parser and the expense store."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from error_translator import message_for
from errors import (
    PARSE_HINT,
    DownstreamError,
    ExpenseVoiceError,
    InputError,
    ParseError,
    SessionError,
)
from formatting import format_currency
from interfaces import RecordStore, WarningSink
from models import ParsedCommand, RecognitionError, ReportLevel, SessionState
from speech_session import SpeechSession
from transcript_parser import TranscriptParser

logger = logging.getLogger(__name__)


class CommandPipeline:
    """Runs each finalized utterance through parse and add, one at a time.

    Must be driven from a single asyncio loop; ``_busy`` is the only guard
    against overlapping cycles.
    """

    def __init__(
        self,
        session: SpeechSession,
        store: RecordStore,
        sink: WarningSink,
        parser: Optional[TranscriptParser] = None,
    ) -> None:
        self._session = session
        self._store = store
        self._sink = sink
        self._parser = parser or TranscriptParser()
        self._busy = False
        self._tasks: set[asyncio.Task] = set()
        self.last_error: Optional[ExpenseVoiceError] = None

        session.on_transcript = self.submit
        session.on_error = self._on_session_error

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def state(self) -> SessionState:
        if self._busy:
            return SessionState.PROCESSING
        return self._session.state

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def start_capture(self) -> None:
        try:
            self._session.start()
        except SessionError as exc:
            self.last_error = exc
            self._sink.report(ReportLevel.ERROR, message_for(exc.category))

    def stop_capture(self) -> None:
        self._session.stop()

    def toggle_capture(self) -> None:
        if self._busy:
            logger.info("ignoring capture toggle while processing")
            return
        if self._session.listening:
            self.stop_capture()
        else:
            self.start_capture()

    def dispose(self) -> None:
        self._session.dispose()

    # ------------------------------------------------------------------
    # Utterance handling
    # ------------------------------------------------------------------

    def submit(self, utterance: str) -> Optional[asyncio.Task]:
        if self._busy:
            logger.info("dropping utterance %r, previous one still processing", utterance)
            return None
        loop = asyncio.get_running_loop()
        self._busy = True
        task = loop.create_task(self._run(utterance))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def process(self, utterance: str) -> Optional[ParsedCommand]:
        if self._busy:
            logger.info("dropping utterance %r, previous one still processing", utterance)
            return None
        self._busy = True
        return await self._run(utterance)

    async def _run(self, utterance: str) -> Optional[ParsedCommand]:
        try:
            self._sink.report(ReportLevel.INFO, "Processing your command...")
            try:
                command = self._parser.parse(utterance)
            except (InputError, ParseError) as exc:
                self.last_error = exc
                self._sink.report(ReportLevel.WARNING, PARSE_HINT)
                return None

            self._sink.report(ReportLevel.INFO, "Adding expense...")
            try:
                await self._add(command)
            except DownstreamError as exc:
                self.last_error = exc
                logger.error("failed to add expense %s: %s", command, exc.reason)
                self._sink.report(ReportLevel.ERROR, f"Error adding expense: {exc.reason}")
                return None

            self.last_error = None
            self._sink.report(
                ReportLevel.SUCCESS,
                f"Expense added: {command.description} {format_currency(command.amount)}",
            )
            return command
        finally:
            self._busy = False

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("utterance processing failed", exc_info=task.exception())

    async def _add(self, command: ParsedCommand) -> None:
        try:
            result = await self._store.add_record(command.description, command.amount)
        except Exception as exc:
            raise DownstreamError(str(exc) or "Please try again.") from exc
        if not result.success:
            raise DownstreamError(result.reason or "Please try again.")
        logger.info("expense stored as %s", result.record_id)

    def _on_session_error(self, error: RecognitionError) -> None:
        self.last_error = SessionError(error.category)
        self._sink.report(ReportLevel.ERROR, message_for(error.category))
