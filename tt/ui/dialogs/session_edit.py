from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)
from tt.core.errors import InvalidDurationError
from tt.core.ledger import duration_from_dialog

# Edit dialog for one logged session. Opens pre-filled from the session and only closes with Accepted once the duration
# validates; the caller then reads chosen_hours / chosen_minutes / chosen_notes / chosen_duration_seconds. Leaving
# hours and minutes untouched keeps the exact stored duration, so a notes-only edit never changes billed time.
class SessionEditDialog(QDialog):

    def __init__(self, parent, session):
        super().__init__(parent)
        self.setWindowTitle("Edit Session")
        self.setModal(True)

        hours, rem = divmod(int(session.duration_seconds), 3600)
        # Sub-minute remainders round up so reopening a short session never pre-fills 0:00.
        minutes = -(-rem // 60)
        if minutes == 60:
            hours, minutes = hours + 1, 0

        # Output attributes, read by MainWindow after the dialog closes
        self.chosen_hours = hours
        self.chosen_minutes = minutes
        self.chosen_notes = session.notes
        self.chosen_duration_seconds = int(session.duration_seconds)
        self._original = (hours, minutes, int(session.duration_seconds))

        outer = QVBoxLayout(self)
        form = QFormLayout()

        self._hours = QSpinBox()
        self._hours.setRange(0, 999)
        self._hours.setValue(hours)
        form.addRow("Hours", self._hours)

        self._minutes = QSpinBox()
        self._minutes.setRange(0, 59)
        self._minutes.setValue(minutes)
        form.addRow("Minutes", self._minutes)

        self._notes = QLineEdit(session.notes)
        form.addRow("Notes", self._notes)
        outer.addLayout(form)

        self._error_lbl = QLabel("")
        self._error_lbl.setFont(QFont("Calibri", 10))
        self._error_lbl.setStyleSheet("color: #cc3333;")
        self._error_lbl.setVisible(False)
        outer.addWidget(self._error_lbl)

        btn_row = QHBoxLayout()
        btn_row.addStretch(1)
        cancel_btn = QPushButton("Cancel")
        cancel_btn.clicked.connect(self.reject)
        save_btn = QPushButton("Save")
        save_btn.setDefault(True)
        save_btn.clicked.connect(self._on_save)
        btn_row.addWidget(cancel_btn)
        btn_row.addWidget(save_btn)
        outer.addLayout(btn_row)

        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

    def _on_save(self):
        initial_hours, initial_minutes, original_duration = self._original
        if (self._hours.value(), self._minutes.value()) == (initial_hours, initial_minutes) and original_duration > 0:
            duration = original_duration
        else:
            try:
                duration = duration_from_dialog(self._hours.value(), self._minutes.value())
            except InvalidDurationError:
                self._error_lbl.setText("Duration must be greater than zero.")
                self._error_lbl.setVisible(True)
                return
        self.chosen_hours = self._hours.value()
        self.chosen_minutes = self._minutes.value()
        self.chosen_notes = self._notes.text().strip()
        self.chosen_duration_seconds = duration
        self.accept()
