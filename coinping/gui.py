"""
coinping — PySide 6
--------------------------------------

Main Qt GUI for CoinPing.

The window holds the Start/Stop control, a live spectrum of the 4–20 kHz
analysis band, and the detection log.  The coin database editor and the
settings dialog are opened from the menu bar.  Preferences, the selected
input device and the coin database are persisted through ``QSettings``.
"""

from __future__ import annotations

import math
import sys
from typing import Optional, Sequence

from q_materialise import inject_style

# ``sounddevice`` is only needed to enumerate devices here; the frontend
# imports it again when a stream is opened.
try:
    import sounddevice as sd  # type: ignore
except ImportError:
    sd = None

# ─── Qt ────────────────────────────────────────────────────────────────────────
from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtCore import QSettings

from . import constants
from .chart import (
    SERIES_AMPLITUDE,
    SERIES_COIN_RANGE,
    SERIES_DETECTED,
    SERIES_NON_MATCHING,
)
from .database import CoinDatabase, default_export_path
from .history import EventLog
from .logging_config import setup_logging
from .session import CoinSession
from .settings import AppSettings
from .spectrum import SpectralFrontend

# Drawing order and colours of the chart series
SERIES_STYLE: dict[str, QtGui.QColor] = {
    SERIES_COIN_RANGE: QtGui.QColor(0, 255, 0, 30),
    SERIES_AMPLITUDE: QtGui.QColor(0, 123, 255, 128),
    SERIES_NON_MATCHING: QtGui.QColor(255, 0, 0, 180),
    SERIES_DETECTED: QtGui.QColor(0, 255, 0, 255),
}


# ─── Chart ────────────────────────────────────────────────────────────────────
class SpectrumWidget(QtWidgets.QWidget):
    """Bar chart of the analysis band implementing the renderer interface."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self.labels: list[float] = []
        self.series: dict[str, list[Optional[float]]] = {}
        self.scale_mode = constants.DEFAULT_SCALE_MODE
        self.setMinimumHeight(260)

    def setLabels(self, labels: Sequence[str]) -> None:
        self.labels = [float(label) for label in labels]

    def setSeries(self, series_id: str, values: Sequence[Optional[float]]) -> None:
        self.series[series_id] = list(values)

    def refresh(self) -> None:
        self.update()

    def set_scale_mode(self, mode: str) -> None:
        self.scale_mode = mode
        self.update()

    def _x_for(self, frequency: float, width: int) -> float:
        low, high = constants.ANALYSIS_BAND
        if self.scale_mode == "logarithmic":
            pos = (math.log10(frequency) - math.log10(low)) / (
                math.log10(high) - math.log10(low)
            )
        else:
            pos = (frequency - low) / (high - low)
        return pos * width

    def paintEvent(self, _event: QtGui.QPaintEvent) -> None:  # noqa: N802
        painter = QtGui.QPainter(self)
        rect = self.rect().adjusted(4, 4, -4, -20)
        painter.fillRect(self.rect(), self.palette().base())

        painter.setPen(self.palette().text().color())
        low, high = constants.ANALYSIS_BAND
        for tick in range(int(low), int(high) + 1, 2000):
            x = rect.left() + self._x_for(tick, rect.width())
            painter.drawText(QtCore.QPointF(x - 12, self.height() - 4), f"{tick // 1000}k")

        if not self.labels:
            painter.end()
            return

        for series_id, colour in SERIES_STYLE.items():
            values = self.series.get(series_id) or []
            bar = 3.0 if series_id in (SERIES_DETECTED, SERIES_NON_MATCHING) else 1.0
            for freq, value in zip(self.labels, values):
                if value is None or freq <= 0:
                    continue
                x = rect.left() + self._x_for(freq, rect.width())
                h = rect.height() * min(float(value), 255.0) / 255.0
                painter.fillRect(QtCore.QRectF(x, rect.bottom() - h, bar, h), colour)
        painter.end()


# ─── Log table ────────────────────────────────────────────────────────────────
class LogTable(QtWidgets.QTableWidget):
    """Detection log, newest row first, limited to ``capacity`` rows."""

    HEADERS = ("Time", "Peaks", "Coin", "Confidence")

    def __init__(self, capacity: int = constants.LOG_CAPACITY, parent=None) -> None:
        super().__init__(0, len(self.HEADERS), parent)
        self.capacity = capacity
        self.setHorizontalHeaderLabels(list(self.HEADERS))
        self.horizontalHeader().setSectionResizeMode(
            1, QtWidgets.QHeaderView.ResizeMode.Stretch
        )
        self.setEditTriggers(QtWidgets.QAbstractItemView.EditTrigger.NoEditTriggers)
        self.verticalHeader().setVisible(False)

    def prepend(self, row: Sequence[str]) -> None:
        self.insertRow(0)
        for col, text in enumerate(row):
            self.setItem(0, col, QtWidgets.QTableWidgetItem(text))
        while self.rowCount() > self.capacity:
            self.removeRow(self.rowCount() - 1)


# ─── Main Window ──────────────────────────────────────────────────────────────
class MainWindow(QtWidgets.QMainWindow):
    def __init__(self):
        super().__init__()

        self.settings = QSettings(
            constants.SETTINGS_ORGANISATION, constants.SETTINGS_APPLICATION
        )
        self.app_settings = AppSettings(self.settings)
        self.database = CoinDatabase(self.settings)
        self.database.load()
        self.event_log = EventLog()
        self.session: Optional[CoinSession] = None

        self.setWindowTitle("CoinPing")
        self._build_ui()
        self._create_menu()

    # -----------------------------------------------------------------
    def _make_heading(self, text: str):
        title = QtWidgets.QLabel(text)
        font = title.font()
        font.setPointSize(font.pointSize() + 2)
        font.setBold(True)
        title.setFont(font)
        return title

    def _build_ui(self):
        central = QtWidgets.QWidget()
        root_layout = QtWidgets.QVBoxLayout(central)
        root_layout.setSpacing(12)
        root_layout.setContentsMargins(8, 8, 8, 8)

        ctrl_layout = QtWidgets.QHBoxLayout()
        self.start_btn = QtWidgets.QPushButton("Start Listening")
        self.start_btn.clicked.connect(self._start_listening)
        self.stop_btn = QtWidgets.QPushButton("Stop")
        self.stop_btn.setEnabled(False)
        self.stop_btn.clicked.connect(self._stop_listening)
        self.status_lbl = QtWidgets.QLabel()
        ctrl_layout.addWidget(self.start_btn)
        ctrl_layout.addWidget(self.stop_btn)
        ctrl_layout.addWidget(self.status_lbl)
        ctrl_layout.addStretch()
        root_layout.addLayout(ctrl_layout)
        self._on_status("Idle")

        root_layout.addWidget(self._make_heading("Spectrum"))
        self.chart = SpectrumWidget()
        self.chart.set_scale_mode(self.app_settings.scale_mode)
        root_layout.addWidget(self.chart, 2)

        root_layout.addWidget(self._make_heading("Detection Log"))
        self.log_table = LogTable()
        root_layout.addWidget(self.log_table, 1)

        self.setCentralWidget(central)
        self.resize(900, 700)

    # -----------------------------------------------------------------
    def _start_listening(self) -> None:
        if self.session is not None and self.session.is_running:
            return

        frontend = SpectralFrontend(self.current_device_index())
        self.session = CoinSession(
            frontend,
            self.database,
            settings=self.app_settings,
            event_log=self.event_log,
            renderer=self.chart,
            log_view=self.log_table,
            parent=self,
        )
        self.session.statusChanged.connect(self._on_status)
        self.session.errorOccurred.connect(self._on_error)
        if self.session.start():
            self.start_btn.setEnabled(False)
            self.stop_btn.setEnabled(True)
        else:
            self.session.deleteLater()
            self.session = None

    def _stop_listening(self) -> None:
        if self.session is not None:
            self.session.stop()
            self.session.deleteLater()
            self.session = None
        self.start_btn.setEnabled(True)
        self.stop_btn.setEnabled(False)
        self._on_status("Idle")

    def _on_status(self, text: str) -> None:
        colour = {"Listening...": "green", "Idle": "green", "Error": "red"}.get(text, "orange")
        self.status_lbl.setText(f"Status: {text}")
        self.status_lbl.setStyleSheet(f"color: {colour}")

    def _on_error(self, message: str) -> None:
        QtWidgets.QMessageBox.warning(
            self, "Microphone unavailable", f"Microphone access denied or not available.\n{message}"
        )
        self.start_btn.setEnabled(True)
        self.stop_btn.setEnabled(False)

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802
        self._stop_listening()
        super().closeEvent(event)

    # -----------------------------------------------------------------
    def _create_menu(self) -> None:
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        exit_action = file_menu.addAction("Exit")
        exit_action.triggered.connect(self.close)

        coins_menu = menubar.addMenu("Coins")
        edit_action = coins_menu.addAction("Edit Coin Database…")
        edit_action.triggered.connect(self._open_coin_editor)

        settings_menu = menubar.addMenu("Settings")
        prefs_action = settings_menu.addAction("Preferences…")
        prefs_action.triggered.connect(self._open_settings_dialog)
        self.device_menu = settings_menu.addMenu("Input Device")
        self._update_device_menu()

    def _update_device_menu(self) -> None:
        """Rebuild the device submenu with every input-capable device."""
        self.device_menu.clear()

        if sd is None:
            act = QtGui.QAction("sounddevice module not available", self)
            act.setEnabled(False)
            self.device_menu.addAction(act)
            return

        try:
            devices = sd.query_devices()
        except Exception as e:
            act = QtGui.QAction(f"Audio enumeration failed: {e}", self)
            act.setEnabled(False)
            self.device_menu.addAction(act)
            return

        group = QtGui.QActionGroup(self)
        group.setExclusive(True)
        preferred = self.settings.value("device_in", None)
        for idx, dev in enumerate(devices):
            if dev.get("max_input_channels", 0) < 1:
                continue
            action = QtGui.QAction(f"{idx}: {dev['name']}", self, checkable=True)
            action.setData(idx)
            group.addAction(action)
            self.device_menu.addAction(action)
            action.triggered.connect(lambda _checked, i=idx: self.settings.setValue("device_in", i))
            if preferred is not None and str(preferred) == str(idx):
                action.setChecked(True)

    def current_device_index(self) -> Optional[int]:
        for action in self.device_menu.actions():
            if action.isChecked() and action.data() is not None:
                return int(action.data())
        return None

    # -----------------------------------------------------------------
    def _open_coin_editor(self) -> None:
        CoinEditorDialog(self).exec()

    def _open_settings_dialog(self) -> None:
        dlg = SettingsDialog(self)
        if dlg.exec() == QtWidgets.QDialog.DialogCode.Accepted:
            self.chart.set_scale_mode(self.app_settings.scale_mode)
            if self.session is not None:
                self.session.apply_settings()


# ─── Dialogs ────────────────────────────────────────────────────────────────
class CoinEditorDialog(QtWidgets.QDialog):
    """Tree of coins and their bands with add/delete controls.

    Every change is written straight to the database, which re-saves itself.
    """

    def __init__(self, main_window: MainWindow) -> None:
        super().__init__(main_window)
        self.database = main_window.database
        self.setWindowTitle("Coin Database")
        self.setModal(True)

        layout = QtWidgets.QVBoxLayout(self)
        self.tree = QtWidgets.QTreeWidget()
        self.tree.setHeaderLabels(["Coin / Frequency (Hz)", "Tolerance (%)"])
        layout.addWidget(self.tree, 1)

        row = QtWidgets.QHBoxLayout()
        for text, slot in (
            ("Add Coin", self._add_coin),
            ("Add Frequency", self._add_component),
            ("Delete", self._delete_selected),
            ("Import…", self._import),
            ("Export…", self._export),
        ):
            btn = QtWidgets.QPushButton(text)
            btn.clicked.connect(slot)
            row.addWidget(btn)
        row.addStretch()
        close_btn = QtWidgets.QPushButton("Close")
        close_btn.clicked.connect(self.accept)
        row.addWidget(close_btn)
        layout.addLayout(row)

        self.refresh()
        self.setMinimumSize(520, 420)

    def refresh(self) -> None:
        self.tree.clear()
        for coin_index, signature in enumerate(self.database):
            item = QtWidgets.QTreeWidgetItem([signature.name, ""])
            item.setData(0, QtCore.Qt.ItemDataRole.UserRole, (coin_index, None))
            for comp_index, band in enumerate(signature.components):
                child = QtWidgets.QTreeWidgetItem(
                    [f"{band.center_frequency:.0f}", f"{band.tolerance_percent:g}"]
                )
                child.setData(0, QtCore.Qt.ItemDataRole.UserRole, (coin_index, comp_index))
                item.addChild(child)
            self.tree.addTopLevelItem(item)
        self.tree.expandAll()

    def _selection(self) -> Optional[tuple[int, Optional[int]]]:
        item = self.tree.currentItem()
        if item is None:
            return None
        return item.data(0, QtCore.Qt.ItemDataRole.UserRole)

    def _add_coin(self) -> None:
        name, ok = QtWidgets.QInputDialog.getText(self, "Add Coin", "Coin name:")
        if ok and name.strip():
            self.database.add_coin(name)
            self.refresh()

    def _add_component(self) -> None:
        selection = self._selection()
        if selection is None:
            QtWidgets.QMessageBox.information(self, "No coin", "Select a coin first.")
            return
        dlg = ComponentDialog(self)
        if dlg.exec() == QtWidgets.QDialog.DialogCode.Accepted:
            centre, tolerance = dlg.values()
            self.database.add_component(selection[0], centre, tolerance)
            self.refresh()

    def _delete_selected(self) -> None:
        selection = self._selection()
        if selection is None:
            return
        coin_index, comp_index = selection
        if comp_index is None:
            self.database.delete_coin(coin_index)
        else:
            self.database.delete_component(coin_index, comp_index)
        self.refresh()

    def _import(self) -> None:
        path, _ = QtWidgets.QFileDialog.getOpenFileName(
            self, "Import Coins", str(default_export_path()), "JSON (*.json)"
        )
        if not path:
            return
        try:
            self.database.import_json(path)
        except (OSError, ValueError) as e:
            QtWidgets.QMessageBox.warning(self, "Import failed", str(e))
        self.refresh()

    def _export(self) -> None:
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export Coins", str(default_export_path()), "JSON (*.json)"
        )
        if not path:
            return
        try:
            self.database.export_json(path)
        except OSError as e:
            QtWidgets.QMessageBox.warning(self, "Export failed", str(e))


class ComponentDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget) -> None:
        super().__init__(parent)
        self.setWindowTitle("Add Frequency")
        form = QtWidgets.QFormLayout(self)

        self.centre_spin = QtWidgets.QDoubleSpinBox()
        self.centre_spin.setRange(*constants.ANALYSIS_BAND)
        self.centre_spin.setDecimals(0)
        self.centre_spin.setSingleStep(50.0)
        self.centre_spin.setValue(8_000.0)
        form.addRow("Frequency (Hz)", self.centre_spin)

        self.tolerance_spin = QtWidgets.QDoubleSpinBox()
        self.tolerance_spin.setRange(0.0, 50.0)
        self.tolerance_spin.setDecimals(1)
        self.tolerance_spin.setValue(5.0)
        form.addRow("Tolerance (%)", self.tolerance_spin)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.StandardButton.Ok
            | QtWidgets.QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

    def values(self) -> tuple[float, float]:
        return self.centre_spin.value(), self.tolerance_spin.value()


class SettingsDialog(QtWidgets.QDialog):
    """Dialog for the persisted preferences."""

    def __init__(self, parent: MainWindow) -> None:
        super().__init__(parent)
        self.app_settings = parent.app_settings
        self.setWindowTitle("Preferences")

        layout = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()
        layout.addLayout(form)

        self.scale_combo = QtWidgets.QComboBox()
        self.scale_combo.addItems(list(constants.SCALE_MODES))
        form.addRow("Frequency axis", self.scale_combo)

        self.timeout_spin = QtWidgets.QSpinBox()
        self.timeout_spin.setRange(0, 10_000)
        self.timeout_spin.setSingleStep(50)
        self.timeout_spin.setSuffix(" ms")
        form.addRow("Ping timeout", self.timeout_spin)

        self.trigger_combo = QtWidgets.QComboBox()
        self.trigger_combo.addItems(list(constants.TRIGGER_POLICIES))
        form.addRow("Ping trigger", self.trigger_combo)

        self.strictness_combo = QtWidgets.QComboBox()
        self.strictness_combo.addItems(list(constants.MATCH_STRICTNESS))
        form.addRow("Matching", self.strictness_combo)

        self._load()

        reset_btn = QtWidgets.QPushButton("Reset to Defaults")
        reset_btn.clicked.connect(self._reset)
        layout.addWidget(reset_btn)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.StandardButton.Ok
            | QtWidgets.QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)
        self.setMinimumWidth(380)

    def _load(self) -> None:
        self._show(
            self.app_settings.scale_mode,
            self.app_settings.ping_timeout_ms,
            self.app_settings.trigger_policy,
            self.app_settings.match_strictness,
        )

    def _show(self, scale_mode: str, timeout_ms: int, trigger: str, strictness: str) -> None:
        self.scale_combo.setCurrentText(scale_mode)
        self.timeout_spin.setValue(timeout_ms)
        self.trigger_combo.setCurrentText(trigger)
        self.strictness_combo.setCurrentText(strictness)

    def _reset(self) -> None:
        # Widgets only; nothing is stored until accept()
        self._show(
            constants.DEFAULT_SCALE_MODE,
            constants.DEFAULT_PING_TIMEOUT_MS,
            constants.DEFAULT_TRIGGER_POLICY,
            constants.DEFAULT_MATCH_STRICTNESS,
        )

    def accept(self) -> None:
        self.app_settings.scale_mode = self.scale_combo.currentText()
        self.app_settings.ping_timeout_ms = self.timeout_spin.value()
        self.app_settings.trigger_policy = self.trigger_combo.currentText()
        self.app_settings.match_strictness = self.strictness_combo.currentText()
        super().accept()


# ─── main ─────────────────────────────────────────────────────────────────────
def run_gui():
    setup_logging()
    app = QtWidgets.QApplication(sys.argv)

    inject_style(app, style="crimson_depth")

    win = MainWindow()
    win.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    run_gui()
