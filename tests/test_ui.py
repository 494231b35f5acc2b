"""Tests for the main window's timer and ledger slots and the session edit dialog, on an offscreen Qt platform.

Covers: tt.ui.app, tt.ui.dialogs.session_edit, tt.ui.widgets
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch


T0 = 1_700_000_000_000


def _qt_app():
    from PySide6.QtWidgets import QApplication
    return QApplication.instance() or QApplication([])


# ──────────────────────────────────────────────────────────────────────────
# dialogs/session_edit.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestSessionEditDialog(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.app = _qt_app()

    def _dialog(self, seconds=3725, notes="first pass"):
        from tt.core.ledger import TimeSession
        from tt.ui.dialogs import SessionEditDialog
        return SessionEditDialog(None, TimeSession("session_1", T0, T0 + seconds * 1000, seconds, notes))

    def test_prefill_rounds_partial_minute_up(self):
        dlg = self._dialog(3725)
        self.assertEqual((dlg._hours.value(), dlg._minutes.value()), (1, 3))
        self.assertEqual(dlg._notes.text(), "first pass")

    def test_notes_only_edit_keeps_exact_duration(self):
        from PySide6.QtWidgets import QDialog
        dlg = self._dialog(3725)
        dlg._notes.setText("  renamed  ")
        dlg._on_save()
        self.assertEqual(dlg.result(), QDialog.Accepted)
        self.assertEqual(dlg.chosen_duration_seconds, 3725)
        self.assertEqual(dlg.chosen_notes, "renamed")

    def test_changed_minutes_recomputes_duration(self):
        dlg = self._dialog(3725)
        dlg._minutes.setValue(30)
        dlg._on_save()
        self.assertEqual(dlg.chosen_duration_seconds, 5400)

    def test_zero_duration_stays_open(self):
        from PySide6.QtWidgets import QDialog
        dlg = self._dialog(3725)
        dlg._hours.setValue(0)
        dlg._minutes.setValue(0)
        dlg._on_save()
        self.assertNotEqual(dlg.result(), QDialog.Accepted)
        self.assertFalse(dlg._error_lbl.isHidden())
        self.assertEqual(dlg.chosen_duration_seconds, 3725)


# ──────────────────────────────────────────────────────────────────────────
# app.py tests
# ──────────────────────────────────────────────────────────────────────────

class _WindowCase(unittest.TestCase):
    """MainWindow over a temp timer record and task file, driven by a ManualClock."""

    conflict_policy = "block"

    @classmethod
    def setUpClass(cls):
        cls.app = _qt_app()

    def setUp(self):
        from tt.core.clock import ManualClock
        from tt.core.store import TimerStore
        from tt.core.tasks import TaskRepository

        self.tmpdir = tempfile.mkdtemp()
        tmp = Path(self.tmpdir)
        self.clock = ManualClock(T0)
        self.store = TimerStore(tmp / "current" / "active_timer.json", clock=self.clock)
        self.repo = TaskRepository(tmp / "tasks" / "tasks.json")
        self.alpha = self.repo.create("Alpha")
        self.beta = self.repo.create("Beta")
        self.windows = []
        self.window = self._open_window()

    def tearDown(self):
        for window in self.windows:
            window._sync.close()
            window.deleteLater()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _open_window(self):
        from tt.core.config import build_default_settings
        from tt.ui.app import MainWindow
        settings = build_default_settings()
        settings["conflict_policy"] = self.conflict_policy
        settings["snapshot_on_edit"] = False
        settings["confirm_delete"] = False
        window = MainWindow(settings=settings, store=self.store, repository=self.repo)
        self.windows.append(window)
        return window

    def _run_alpha(self, seconds):
        self.store.start(self.alpha.id, self.alpha.title)
        self.clock.advance(seconds)


class TestConflictBlockPolicy(_WindowCase):

    def test_declining_keeps_running_timer(self):
        from PySide6.QtWidgets import QMessageBox
        self._run_alpha(120)
        self.window._select_task(self.beta.id)
        with patch.object(QMessageBox, "question", return_value=QMessageBox.No) as ask:
            self.window._on_start()
        ask.assert_called_once()
        self.assertEqual(self.store.read().task_id, self.alpha.id)
        self.assertEqual(self.repo.get(self.alpha.id).sessions, [])

    def test_accepting_logs_previous_then_switches(self):
        from PySide6.QtWidgets import QMessageBox
        self._run_alpha(120)
        self.window._select_task(self.beta.id)
        with patch.object(QMessageBox, "question", return_value=QMessageBox.Yes):
            self.window._on_start()
        self.assertEqual(self.store.read().task_id, self.beta.id)
        self.assertEqual([s.duration_seconds for s in self.repo.get(self.alpha.id).sessions], [120])
        self.assertEqual(self.window.task.id, self.beta.id)


class TestConflictLogPreviousPolicy(_WindowCase):

    conflict_policy = "log_previous"

    def test_switch_logs_previous_without_asking(self):
        from PySide6.QtWidgets import QMessageBox
        self._run_alpha(90)
        self.window._select_task(self.beta.id)
        with patch.object(QMessageBox, "question") as ask:
            self.window._on_start()
        ask.assert_not_called()
        self.assertEqual(self.store.read().task_id, self.beta.id)
        alpha = self.repo.get(self.alpha.id)
        self.assertEqual([s.duration_seconds for s in alpha.sessions], [90])
        self.assertEqual(alpha.sessions[0].notes, "Logged when switching tasks")
        self.assertEqual(alpha.duration, 90)

    def test_failed_log_keeps_previous_timer(self):
        from PySide6.QtWidgets import QMessageBox
        self._run_alpha(90)
        self.window._select_task(self.beta.id)
        with patch.object(self.repo, "save", side_effect=OSError("disk full")), \
                patch.object(QMessageBox, "warning") as warn:
            self.window._on_start()
        warn.assert_called_once()
        self.assertEqual(self.store.read().task_id, self.alpha.id)
        self.assertEqual(self.repo.get(self.alpha.id).sessions, [])


class TestWindowLedgerSlots(_WindowCase):

    def test_log_session_from_panel(self):
        self.window._select_task(self.alpha.id)
        self._run_alpha(45)
        self.window._on_log("Drafting")
        self.assertIsNone(self.store.read())
        self.assertEqual([s.notes for s in self.window.task.sessions], ["Drafting"])
        self.assertEqual(self.window._sessions.rowCount(), 1)

    def test_log_write_failure_is_reported(self):
        from PySide6.QtWidgets import QMessageBox
        self.window._select_task(self.alpha.id)
        self._run_alpha(45)
        with patch.object(self.repo, "save", side_effect=OSError("disk full")), \
                patch.object(QMessageBox, "warning") as warn:
            self.window._on_log("Drafting")
        warn.assert_called_once()
        self.assertIsNotNone(self.store.read(self.alpha.id))
        self.assertEqual(self.repo.get(self.alpha.id).sessions, [])

    def test_delete_write_failure_is_reported(self):
        from PySide6.QtWidgets import QMessageBox
        self.window._select_task(self.alpha.id)
        self._run_alpha(45)
        self.window._on_log("")
        session_id = self.window.task.sessions[0].id
        with patch.object(self.repo, "save", side_effect=OSError("disk full")), \
                patch.object(QMessageBox, "warning") as warn:
            self.window._on_delete_session(session_id)
        warn.assert_called_once()
        self.assertEqual([s.id for s in self.repo.get(self.alpha.id).sessions], [session_id])

    def test_notes_only_edit_keeps_billed_seconds(self):
        from tt.ui.dialogs import SessionEditDialog

        def save_notes_only(dlg):
            dlg._notes.setText("renamed")
            dlg._on_save()
            return dlg.result()

        self.window._select_task(self.alpha.id)
        self._run_alpha(3725)
        self.window._on_log("first pass")
        session_id = self.window.task.sessions[0].id
        with patch.object(SessionEditDialog, "exec", save_notes_only):
            self.window._on_edit_session(session_id)
        saved = self.repo.get(self.alpha.id).sessions[0]
        self.assertEqual((saved.duration_seconds, saved.notes), (3725, "renamed"))

    def test_other_window_picks_up_ledger_changes(self):
        other = self._open_window()
        self.window._select_task(self.alpha.id)
        other._select_task(self.alpha.id)

        self._run_alpha(3600)
        self.window._on_log("a")
        self.assertEqual([s.notes for s in other.task.sessions], ["a"])

        session_id = other.task.sessions[0].id
        other.ledger.edit_session(session_id, 0, 30, "a")
        self.assertEqual(self.window.task.duration, 1800)

        self._run_alpha(60)
        self.window._on_log("b")
        saved = self.repo.get(self.alpha.id)
        self.assertEqual([s.duration_seconds for s in saved.sessions], [1800, 60])
        self.assertEqual(other.task.duration, 1860)


if __name__ == "__main__":
    unittest.main()
