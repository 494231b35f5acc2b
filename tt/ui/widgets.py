from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QAbstractItemView,
    QFrame,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)
from tt.core.timer_state import elapsed_seconds
from tt.util import format_time, format_timestamp


# Widgets never touch the store. They render whatever state they are handed and report user intent through signals;
# MainWindow performs the actual store/ledger calls.


# The timer controls for the one task this panel is bound to. A timer running for another task renders as inactive.
class TimerPanel(QWidget):

    start_requested = Signal()
    pause_requested = Signal()
    resume_requested = Signal()
    log_requested = Signal(str)
    discard_requested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.task = None

        lay = QVBoxLayout(self)
        self._title = QLabel("No task selected")
        self._title.setFont(QFont("Calibri", 14, QFont.Bold))
        lay.addWidget(self._title)

        self._time = QLabel(format_time(0))
        self._time.setFont(QFont("Consolas", 28, QFont.Bold))
        self._time.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._time)

        self._status = QLabel("")
        self._status.setAlignment(Qt.AlignCenter)
        lay.addWidget(self._status)

        self._notes = QLineEdit()
        self._notes.setPlaceholderText("What did you work on?")
        lay.addWidget(self._notes)

        btn_row = QHBoxLayout()
        self._start_btn = QPushButton("Start")
        self._pause_btn = QPushButton("Pause")
        self._resume_btn = QPushButton("Resume")
        self._log_btn = QPushButton("Log Session")
        self._discard_btn = QPushButton("Discard")
        for btn in (self._start_btn, self._pause_btn, self._resume_btn, self._log_btn, self._discard_btn):
            btn_row.addWidget(btn)
        lay.addLayout(btn_row)

        self._start_btn.clicked.connect(self.start_requested)
        self._pause_btn.clicked.connect(self.pause_requested)
        self._resume_btn.clicked.connect(self.resume_requested)
        self._log_btn.clicked.connect(lambda: self.log_requested.emit(self._notes.text().strip()))
        self._discard_btn.clicked.connect(self.discard_requested)

        self.render(None, 0)

    # Re-binding a fresh copy of the same task (after a reload) keeps whatever notes are being typed.
    def bind(self, task):
        if task is None or self.task is None or task.id != self.task.id:
            self._notes.clear()
        self.task = task
        self._title.setText(task.title if task is not None else "No task selected")

    def notes(self):
        return self._notes.text().strip()

    def clear_notes(self):
        self._notes.clear()

    # Redraws from the shared state. Called on every broadcast and every poll tick.
    def render(self, state, now):
        mine = self.task is not None and state is not None and state.task_id == self.task.id
        running = mine and not state.is_paused
        paused = mine and state.is_paused

        self._time.setText(format_time(elapsed_seconds(state, now) if mine else 0))
        if paused:
            self._status.setText("Paused")
        elif running:
            self._status.setText("Running")
        elif state is not None and self.task is not None:
            self._status.setText(f"Timer running on '{state.label or state.task_id}'")
        else:
            self._status.setText("")

        self._start_btn.setEnabled(self.task is not None and not mine)
        self._pause_btn.setEnabled(running)
        self._resume_btn.setEnabled(paused)
        self._log_btn.setEnabled(mine)
        self._discard_btn.setEnabled(mine)


# Small always-visible strip showing whichever task's timer is live, bound or not.
class ActiveTimerIndicator(QFrame):

    discard_requested = Signal()
    activated = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFrameShape(QFrame.StyledPanel)
        self._task_id = None

        lay = QHBoxLayout(self)
        self._label = QPushButton("")
        self._label.setFlat(True)
        self._label.clicked.connect(lambda: self._task_id and self.activated.emit(self._task_id))
        lay.addWidget(self._label, 1)

        self._time = QLabel(format_time(0))
        self._time.setFont(QFont("Consolas", 12, QFont.Bold))
        lay.addWidget(self._time)

        close_btn = QPushButton("X")
        close_btn.setFixedWidth(28)
        close_btn.setToolTip("Discard running timer")
        close_btn.clicked.connect(self.discard_requested)
        lay.addWidget(close_btn)

        self.setVisible(False)

    def render(self, state, now):
        if state is None:
            self._task_id = None
            self.setVisible(False)
            return
        self._task_id = state.task_id
        self._label.setText(state.label or "Timer Active")
        self._time.setText(format_time(elapsed_seconds(state, now)))
        self._time.setStyleSheet("color: #888888;" if state.is_paused else "")
        self.setVisible(True)


# Read-only list of a task's logged sessions with per-row edit/delete buttons.
class SessionTable(QTableWidget):

    edit_requested = Signal(str)
    delete_requested = Signal(str)

    _HEADERS = ["Start", "End", "Duration", "Notes", "", ""]

    def __init__(self, parent=None):
        super().__init__(0, len(self._HEADERS), parent)
        self.setHorizontalHeaderLabels(self._HEADERS)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setSectionResizeMode(3, QHeaderView.Stretch)

    def populate(self, sessions):
        self.setRowCount(0)
        for row, session in enumerate(sessions):
            self.insertRow(row)
            self.setItem(row, 0, QTableWidgetItem(format_timestamp(session.start_time)))
            self.setItem(row, 1, QTableWidgetItem(format_timestamp(session.end_time)))
            self.setItem(row, 2, QTableWidgetItem(format_time(session.duration_seconds)))
            self.setItem(row, 3, QTableWidgetItem(session.notes))

            edit_btn = QPushButton("Edit")
            edit_btn.clicked.connect(lambda _=False, sid=session.id: self.edit_requested.emit(sid))
            self.setCellWidget(row, 4, edit_btn)
            delete_btn = QPushButton("Delete")
            delete_btn.clicked.connect(lambda _=False, sid=session.id: self.delete_requested.emit(sid))
            self.setCellWidget(row, 5, delete_btn)
