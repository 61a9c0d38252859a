"""Overlay window showing capture status and pipeline reports."""

from __future__ import annotations

from models import ReportLevel

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore


LEVEL_COLORS = {
    ReportLevel.INFO: "white",
    ReportLevel.SUCCESS: "#7CFC9A",
    ReportLevel.WARNING: "#FFD166",
    ReportLevel.ERROR: "#FF6B6B",
}

# How long a message stays visible before the overlay hides itself.
LEVEL_HIDE_MS = {
    ReportLevel.INFO: 0,
    ReportLevel.SUCCESS: 1500,
    ReportLevel.WARNING: 3500,
    ReportLevel.ERROR: 4000,
}

_STYLE = "color: {color}; font-size: 18px; padding: 16px; background: rgba(0,0,0,200); border-radius: 12px;"


class StatusOverlay(QWidget):
    """Frameless top-centre window; also usable directly as a WarningSink."""

    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool)
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(560)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_STYLE.format(color=LEVEL_COLORS[ReportLevel.INFO]))

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def report(self, level: ReportLevel, message: str) -> None:
        self._cancel_hide_timer()
        self._label.setStyleSheet(_STYLE.format(color=LEVEL_COLORS.get(level, "white")))
        prefix = "⚠️ " if level in (ReportLevel.WARNING, ReportLevel.ERROR) else ""
        self._label.setText(f"{prefix}{message}")
        self._center_top()
        self.show()
        hide_after = LEVEL_HIDE_MS.get(level, 0)
        if hide_after:
            self.hide_with_delay(hide_after)

    def show_listening(self, text: str = "") -> None:
        self.report(ReportLevel.INFO, text or "🎙️ Listening...")

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        if QTimer is not None:
            self._hide_timer = QTimer()
            self._hide_timer.setSingleShot(True)
            self._hide_timer.timeout.connect(self.hide)
            self._hide_timer.start(delay_ms)

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        self.move(geom.x() + (geom.width() - self.width()) // 2, geom.y() + 40)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None
