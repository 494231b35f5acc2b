import sys
from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core import config
from tt.core.billing import billable_amount, billing_summary, total_tracked_seconds
from tt.core.errors import ConflictError, NoActiveTimerError, TaskTimerError
from tt.core.ledger import SessionLedger
from tt.core.store import TimerStore
from tt.core.tasks import TaskBinding, TaskRepository
from tt.ui.dialogs import SessionEditDialog
from tt.ui.sync import QtSyncBridge
from tt.ui.widgets import ActiveTimerIndicator, SessionTable, TimerPanel
from tt.util import format_money, format_time


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# One view onto the shared timer. Any number of these can be open at once (in one process or several); each one
# rebuilds its display from the persisted record on every broadcast and every poll tick.
class MainWindow(QMainWindow):

    def __init__(self, settings=None, store=None, repository=None):
        super().__init__()
        self.setWindowTitle("Task Timer")

        # -- Settings --
        self.settings = settings or config.load_settings()
        self.conflict_policy = self.settings["conflict_policy"]
        self.confirm_delete = self.settings["confirm_delete"]
        self.confirm_discard = self.settings["confirm_discard"]

        # -- Core --
        self.store = store or TimerStore(PATHS.current / self.settings["timer_record_name"])
        self.repository = repository or TaskRepository()
        self.binding = TaskBinding(self.repository, snapshot_on_edit=self.settings["snapshot_on_edit"])
        self.task = None
        self.ledger = None
        self._live = None

        # -- Build UI skeleton --
        central = QWidget()
        self.setCentralWidget(central)
        main_lay = QVBoxLayout(central)
        body = QHBoxLayout()
        main_lay.addLayout(body, 1)

        left = QVBoxLayout()
        self._task_list = QListWidget()
        self._task_list.setFixedWidth(220)
        self._task_list.currentItemChanged.connect(self._on_task_selected)
        left.addWidget(self._task_list, 1)
        new_btn = QPushButton("New Task")
        new_btn.clicked.connect(self._on_new_task)
        left.addWidget(new_btn)
        body.addLayout(left)

        right = QVBoxLayout()
        self._panel = TimerPanel()
        self._panel.start_requested.connect(self._on_start)
        self._panel.pause_requested.connect(self._on_pause)
        self._panel.resume_requested.connect(self._on_resume)
        self._panel.log_requested.connect(self._on_log)
        self._panel.discard_requested.connect(self._on_discard)
        right.addWidget(self._panel)

        self._sessions = SessionTable()
        self._sessions.edit_requested.connect(self._on_edit_session)
        self._sessions.delete_requested.connect(self._on_delete_session)
        right.addWidget(self._sessions, 1)

        totals_row = QHBoxLayout()
        self._totals_lbl = QLabel("")
        totals_row.addWidget(self._totals_lbl, 1)
        finalize_btn = QPushButton("Log Total Time")
        finalize_btn.clicked.connect(self._on_finalize)
        totals_row.addWidget(finalize_btn)
        right.addLayout(totals_row)
        body.addLayout(right, 1)

        self._summary_lbl = QLabel("")
        self._summary_lbl.setAlignment(Qt.AlignRight)
        main_lay.addWidget(self._summary_lbl)

        self._indicator = ActiveTimerIndicator()
        self._indicator.discard_requested.connect(self._on_discard)
        self._indicator.activated.connect(self._select_task)
        main_lay.addWidget(self._indicator)

        self._reload_tasks()

        # -- Sync: broadcast + 1 s poll --
        self._sync = QtSyncBridge(self.store, self.settings["poll_interval_ms"], self,
                                  ledger_dir=self.repository.path.parent)
        self._sync.stateChanged.connect(self._on_state)
        self._sync.start()

    # ------------------------------------------------------------------ #
    #  Tasks                                                               #
    # ------------------------------------------------------------------ #

    def _reload_tasks(self, select_id=None):
        select_id = select_id or (self.task.id if self.task else None)
        self._tasks = {t.id: t for t in self.repository.all()}
        self._task_list.blockSignals(True)
        self._task_list.clear()
        for task in self._tasks.values():
            item = QListWidgetItem(task.title)
            item.setData(Qt.UserRole, task.id)
            self._task_list.addItem(item)
            if task.id == select_id:
                self._task_list.setCurrentItem(item)
        self._task_list.blockSignals(False)
        self._bind(self._tasks.get(select_id))

    def _bind(self, task):
        self.task = task
        self.ledger = SessionLedger(task, self.store, self.binding) if task is not None else None
        self._panel.bind(task)
        self._sessions.populate(task.sessions if task is not None else [])
        self._render()

    def _select_task(self, task_id):
        self._reload_tasks(select_id=task_id)

    def _on_task_selected(self, current, _previous):
        if current is None:
            self._bind(None)
            return
        self._bind(self._tasks.get(current.data(Qt.UserRole)))

    def _on_new_task(self):
        title, ok = QInputDialog.getText(self, "New Task", "Task title:")
        if not ok or not title.strip():
            return
        rate = self.settings["default_billable_rate"]
        billable = self.settings["default_billable"]
        if billable:
            rate, ok = QInputDialog.getDouble(self, "New Task", "Billable rate (per hour):", rate, 0, 100000, 2)
            if not ok:
                return
        task = self.repository.create(title.strip(), is_billable=billable, billable_rate=rate)
        self._reload_tasks(select_id=task.id)

    # ------------------------------------------------------------------ #
    #  Timer actions                                                       #
    # ------------------------------------------------------------------ #

    def _on_start(self):
        if self.task is None:
            return
        try:
            self.store.start(self.task.id, self.task.title)
        except ConflictError as e:
            self._resolve_conflict(e.active_state)
        except (TaskTimerError, OSError) as e:
            log.warning(f"Could not start timer for '{self.task.id}'", exc_info=True)
            QMessageBox.warning(self, "Timer Error", f"Could not start the timer:\n{e}")

    # Another task's timer is running. Its time is never dropped silently: either it gets logged to its own task
    # first, or nothing happens.
    def _resolve_conflict(self, active):
        if self.conflict_policy != "log_previous":
            if QMessageBox.question(
                    self, "Timer Already Running",
                    f"A timer is running for '{active.label or active.task_id}'.\n"
                    f"Log that session and start '{self.task.title}'?"
            ) != QMessageBox.Yes:
                return
        try:
            previous = self.repository.get(active.task_id)
            if previous is not None:
                try:
                    SessionLedger(previous, self.store, self.binding).log_current_session("Logged when switching tasks")
                except NoActiveTimerError:
                    log.info(f"Previous timer for '{active.task_id}' had no time to log, replacing it")
            else:
                log.warning(f"Running timer belongs to unknown task '{active.task_id}', replacing it")
            self.store.start(self.task.id, self.task.title, replace=True)
        except (TaskTimerError, OSError) as e:
            # A failed log leaves the previous run going.
            log.warning(f"Could not switch timer from '{active.task_id}' to '{self.task.id}'", exc_info=True)
            QMessageBox.warning(self, "Timer Error", f"Could not switch timers:\n{e}")
            return
        self._reload_tasks()

    def _on_pause(self):
        try:
            self.store.pause()
        except OSError as e:
            log.warning("Could not pause timer", exc_info=True)
            QMessageBox.warning(self, "Timer Error", f"Could not pause the timer:\n{e}")

    def _on_resume(self):
        try:
            self.store.resume()
        except OSError as e:
            log.warning("Could not resume timer", exc_info=True)
            QMessageBox.warning(self, "Timer Error", f"Could not resume the timer:\n{e}")

    def _on_log(self, notes):
        if self.ledger is None:
            return
        try:
            session = self.ledger.log_current_session(notes)
        except NoActiveTimerError as e:
            QMessageBox.warning(self, "Nothing To Log", str(e))
            return
        except (TaskTimerError, OSError) as e:
            log.warning(f"Could not log session for '{self.task.id}'", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to log session:\n{e}")
            return
        self._panel.clear_notes()
        self._sessions.populate(self.task.sessions)
        self.statusBar().showMessage(f"Session logged: {format_time(session.duration_seconds)}", 5000)

    def _on_discard(self):
        if self._live is None:
            return
        if self.confirm_discard:
            if QMessageBox.question(
                    self, "Discard Timer",
                    f"Discard the running timer for '{self._live.label or self._live.task_id}'? Its time will be lost."
            ) != QMessageBox.Yes:
                return
        try:
            self.store.clear()
        except OSError as e:
            log.warning("Could not discard timer", exc_info=True)
            QMessageBox.warning(self, "Timer Error", f"Could not discard the timer:\n{e}")

    def _on_finalize(self):
        if self.ledger is None:
            return
        try:
            session = self.ledger.finalize(self._panel.notes())
        except (TaskTimerError, OSError) as e:
            log.warning(f"Could not finalize task '{self.task.id}'", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to save time:\n{e}")
            return
        if session is not None:
            self._panel.clear_notes()
        self._sessions.populate(self.task.sessions)
        self.statusBar().showMessage(f"Saved {format_time(self.task.duration)} for '{self.task.title}'", 5000)

    # ------------------------------------------------------------------ #
    #  Ledger edits                                                        #
    # ------------------------------------------------------------------ #

    def _on_edit_session(self, session_id):
        if self.ledger is None:
            return
        session = next((s for s in self.task.sessions if s.id == session_id), None)
        if session is None:
            return
        dlg = SessionEditDialog(self, session)
        if dlg.exec() != QDialog.Accepted:
            return
        try:
            self.ledger.edit_session(session_id, dlg.chosen_hours, dlg.chosen_minutes, dlg.chosen_notes,
                                     duration_seconds=dlg.chosen_duration_seconds)
        except (TaskTimerError, OSError) as e:
            QMessageBox.warning(self, "Invalid Session", str(e))
            return
        self._sessions.populate(self.task.sessions)
        self._render()

    def _on_delete_session(self, session_id):
        if self.ledger is None:
            return
        if self.confirm_delete:
            if QMessageBox.question(self, "Confirm Delete", "Delete this session?") != QMessageBox.Yes:
                return
        try:
            self.ledger.delete_session(session_id)
        except (TaskTimerError, OSError) as e:
            log.warning(f"Could not delete session '{session_id}'", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to delete session:\n{e}")
            return
        self._sessions.populate(self.task.sessions)
        self._render()

    # ------------------------------------------------------------------ #
    #  Display                                                             #
    # ------------------------------------------------------------------ #

    def _on_state(self, state, reason):
        previous = self._live
        self._live = state
        # Some view (maybe in another process) committed to the task store.
        if reason == "ledger":
            self._reload_tasks()
            return
        # A run on our task just ended, possibly in another window that also logged it. Pick up the ledger.
        if (self.task is not None and previous is not None and previous.task_id == self.task.id
                and (state is None or state.task_id != self.task.id)):
            self._reload_tasks()
            return
        self._render()

    def _render(self):
        now = self.store.clock.now()
        self._panel.render(self._live, now)
        self._indicator.render(self._live, now)

        if self.task is not None:
            total = total_tracked_seconds(self.task, self._live, now)
            text = f"Total: {format_time(total)}"
            if self.task.is_billable:
                text += f"    Billable: {format_money(billable_amount(self.task, total))} @ {format_money(self.task.billable_rate)}/h"
            self._totals_lbl.setText(text)
        else:
            self._totals_lbl.setText("")

        summary = billing_summary(self._tasks.values(), self._live, now)
        self._summary_lbl.setText(
            f"All tasks: {format_time(summary.total_seconds)}    Billable: {format_money(summary.total_amount)}")

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    # Closing a view never touches the timer itself; it keeps running in the persisted record.
    def closeEvent(self, event):
        self._sync.close()
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
