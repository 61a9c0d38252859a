"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from decimal import Decimal
from pathlib import Path
from typing import Optional

import recorder
from command_pipeline import CommandPipeline
from config import JsonConfigStore
from formatting import describe_record, format_currency
from hotkey import GlobalHotkeyAdapter
from ledger import JsonLedgerStore
from models import ExpenseRecord, RecognitionConfig, ReportLevel, SessionState
from overlay import StatusOverlay
from recognizer import DashscopeSpeechCapability
from speech_session import SpeechSession

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

ICON_IDLE = "#888888"
ICON_LISTENING = "#FF4444"
ICON_ERROR = "#FF8800"

RECENT_LIMIT = 10


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _create_icon(color: str = ICON_IDLE, size: int = 22) -> QIcon:
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


class UIBridge(QObject):
    report_signal = Signal(str, str)  # level, message
    interim_signal = Signal(str)
    state_signal = Signal(str, str)  # from_state, to_state
    ledger_signal = Signal(object)


class SignalSink:
    """WarningSink that hands reports from the loop thread to the Qt thread."""

    def __init__(self, bridge: UIBridge) -> None:
        self._bridge = bridge

    def report(self, level: ReportLevel, message: str) -> None:
        self._bridge.report_signal.emit(level.value, message)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        configure_logging(self.config_store.get_log_level())

        self.overlay = StatusOverlay()
        self.ui = UIBridge()
        self.ui.report_signal.connect(self._on_report_ui)
        self.ui.interim_signal.connect(self._on_interim_ui)
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.ledger_signal.connect(self._on_ledger_ui)
        self._records: list[ExpenseRecord] = []

        # The core runs on this loop only; other threads post work onto it.
        self.loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(target=self.loop.run_forever, daemon=True)
        self._loop_thread.start()

        self.ledger = JsonLedgerStore(Path(self.config_store.get_ledger_path()))
        self.pipeline: Optional[CommandPipeline] = None
        self._post(self._build_pipeline)
        self._unsubscribe = self.ledger.subscribe(self.ui.ledger_signal.emit)

        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self._set_status("Ready")
        self._setup_menu()
        self.tray.show()

    # ------------------------------------------------------------------
    # Core wiring (loop thread)
    # ------------------------------------------------------------------

    def _post(self, callback, *args) -> None:  # noqa: ANN001
        self.loop.call_soon_threadsafe(callback, *args)

    def _make_capability(self, config: RecognitionConfig) -> Optional[DashscopeSpeechCapability]:
        if recorder.sd is None:
            return None
        return DashscopeSpeechCapability(
            api_key=self.config_store.get_api_key(),
            config=config,
            dispatch=self.loop.call_soon_threadsafe,
        )

    def _build_pipeline(self) -> None:
        if self.pipeline is not None:
            self.pipeline.dispose()
        session = SpeechSession(
            capability_factory=self._make_capability,
            config=self.config_store.recognition_config(),
            on_interim=self.ui.interim_signal.emit,
            on_state_change=lambda f, t: self.ui.state_signal.emit(f.value, t.value),
        )
        self.pipeline = CommandPipeline(session, self.ledger, SignalSink(self.ui))

    def _toggle_capture(self) -> None:
        if self.pipeline is not None:
            self.pipeline.toggle_capture()

    def _shutdown_core(self) -> None:
        if self.pipeline is not None:
            self.pipeline.dispose()
            self.pipeline = None
        self.loop.stop()

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    def _setup_menu(self) -> None:
        menu = QMenu()

        record_action = QAction("Record Expense", menu)
        record_action.triggered.connect(lambda: self._post(self._toggle_capture))
        menu.addAction(record_action)

        recent_action = QAction("Recent Expenses", menu)
        recent_action.triggered.connect(self._show_recent)
        menu.addAction(recent_action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self._menu = menu
        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self._post(self._build_pipeline)
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(None, "Hotkey", "Use pynput key format, e.g. Key.alt_r")
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    def _show_recent(self) -> None:
        if not self._records:
            QMessageBox.information(None, "Recent Expenses", "No expenses yet. Say something like \"Spent $5 on coffee\".")
            return
        lines = [describe_record(r) for r in self._records[:RECENT_LIMIT]]
        total = sum((r.amount for r in self._records), Decimal("0"))
        lines.append("")
        lines.append(f"Total: {format_currency(total)}")
        QMessageBox.information(None, "Recent Expenses", "\n".join(lines))

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _set_status(self, status: str) -> None:
        self.tray.setToolTip(f"Voice Expense — {status}")

    def _on_report_ui(self, level: str, message: str) -> None:
        self.overlay.report(ReportLevel(level), message)

    def _on_interim_ui(self, text: str) -> None:
        self.overlay.show_listening(f"🎙️ {text}")

    def _on_ledger_ui(self, records: list[ExpenseRecord]) -> None:
        self._records = list(records)

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.LISTENING.value:
            self.tray.setIcon(_create_icon(ICON_LISTENING))
            self._set_status("Listening...")
            self.overlay.show_listening()
        elif to_state == SessionState.ERROR.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        elif to_state == SessionState.IDLE.value:
            if from_state != SessionState.ERROR.value:
                self.tray.setIcon(_create_icon(ICON_IDLE))
            self._set_status("Ready")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        logger.info("ledger at %s, hotkey %s", self.ledger.path, self.hotkey.hotkey_name)
        try:
            self.hotkey.start(on_toggle=lambda: self._post(self._toggle_capture))
        except RuntimeError as exc:
            self.overlay.report(ReportLevel.WARNING, f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self._unsubscribe()
        self._post(self._shutdown_core)
        self._loop_thread.join(timeout=1.0)
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
