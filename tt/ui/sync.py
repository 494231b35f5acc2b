from pathlib import Path
from PySide6.QtCore import QFileSystemWatcher, QObject, QTimer, Signal
from tt.common.logger import log
from tt.core.channel import StatePoller

# Qt side of the synchronization channel. Re-emits every channel publish as a Qt signal, watches the record's folder
# so writes from other windows/processes show up immediately, and polls once per interval as the fallback that also
# drives the 1 Hz display refresh. When given the task store's folder as ledger_dir, changes there are re-announced
# with reason "ledger" so views re-bind their task.
class QtSyncBridge(QObject):

    # (TimerState | None, reason)
    stateChanged = Signal(object, str)

    def __init__(self, store, poll_interval_ms=1000, parent=None, ledger_dir=None):
        super().__init__(parent)
        self.store = store
        self._unsubscribe = store.channel.subscribe(self._on_publish)
        self._poller = StatePoller(store.read, store.channel)

        self._timer = QTimer(self)
        self._timer.setInterval(poll_interval_ms)
        self._timer.timeout.connect(self.poll)

        # Watch folders, not files: files are swapped out by os.replace and may not exist at all.
        self._watcher = QFileSystemWatcher(self)
        self._timer_dir = str(store.path.parent)
        store.path.parent.mkdir(parents=True, exist_ok=True)
        self._watcher.addPath(self._timer_dir)
        self._ledger_dir = None
        if ledger_dir is not None and str(ledger_dir) != self._timer_dir:
            Path(ledger_dir).mkdir(parents=True, exist_ok=True)
            self._ledger_dir = str(ledger_dir)
            self._watcher.addPath(self._ledger_dir)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    def start(self):
        self._timer.start()
        self.poll()
        log.debug(f"Sync bridge polling '{self.store.path}' every {self._timer.interval()} ms")

    def stop(self):
        self._timer.stop()

    def close(self):
        self.stop()
        self._unsubscribe()

    def poll(self):
        return self._poller.poll()

    def _on_publish(self, state, reason):
        self.stateChanged.emit(state, reason)

    def _on_directory_changed(self, path):
        if path == self._ledger_dir:
            self._poller.poll("ledger")
        else:
            self._poller.poll("external")
