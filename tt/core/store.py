import json
import os
import tempfile
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.channel import SyncChannel
from tt.core.clock import SystemClock
from tt.core.errors import ConflictError, PersistenceReadError
from tt.core.timer_state import TimerState

DEFAULT_RECORD_NAME = "active_timer.json"

# The one persisted timer record shared by every view. All timer mutations funnel through here so the record's
# invariants hold no matter which window performs them. Each write replaces the whole file atomically and is then
# broadcast on the channel.
class TimerStore:

    def __init__(self, path: Path | None = None, channel: SyncChannel | None = None, clock=None):
        self.path = Path(path) if path is not None else PATHS.current / DEFAULT_RECORD_NAME
        self.channel = channel if channel is not None else SyncChannel()
        self.clock = clock if clock is not None else SystemClock()
        self._corrupt_logged = False

    #region === Reading ===

    # Raw load of the record. Returns None when nothing is persisted, raises PersistenceReadError when something is
    # persisted but unusable.
    def _load(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise PersistenceReadError(self.path, e) from e
        try:
            return TimerState.from_record(record)
        except (ValueError, TypeError, OverflowError) as e:
            raise PersistenceReadError(self.path, e) from e

    # Returns the live TimerState, or None when there is no active timer. If task_id is given, a timer belonging to
    # any other task also reads as None. A corrupt record reads as None and gets overwritten on the next write.
    def read(self, task_id=None):
        try:
            state = self._load()
        except PersistenceReadError:
            # Polls hit this every second until the next write, only say so once.
            if not self._corrupt_logged:
                log.warning("Discarding unreadable timer record, treating as no active timer.", exc_info=True)
                self._corrupt_logged = True
            return None
        if state is None or not state.is_active:
            return None
        if task_id is not None and state.task_id != task_id:
            return None
        return state

    #endregion === Reading ===

    #region === Writing ===

    # Writes the whole record to a temp file next to the target and swaps it in, so a concurrent reader sees either
    # the old record or the new one. The broadcast only goes out after the swap.
    def _write(self, state, reason):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".timer_", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_record(), f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            try: os.remove(tmp_name)
            except OSError: pass
            raise
        self._corrupt_logged = False
        log.debug(f"Timer record '{reason}': {state.to_record()}")
        self.channel.publish(state, reason)
        return state

    # Starts a timer for task_id. Starting the task that is already running is a no-op. Starting while another task
    # runs raises ConflictError unless replace=True, in which case the other run is dropped (callers that want to
    # keep it log it first).
    def start(self, task_id, label="", replace=False):
        if not task_id:
            raise ValueError("task_id is required to start a timer")
        current = self.read()
        if current is not None:
            if current.task_id == task_id:
                log.debug(f"Ignored start for '{task_id}', its timer is already running")
                return current
            if not replace:
                log.warning(f"Refused to start '{task_id}' while '{current.task_id}' is running")
                raise ConflictError(current)
            log.warning(f"Replacing running timer for '{current.task_id}' with '{task_id}'")
        return self._write(TimerState.started(task_id, label, self.clock.now()), "start")

    # Pauses a running timer. Anything else (no timer, already paused) is silently ignored.
    def pause(self):
        current = self.read()
        if current is None or current.is_paused:
            log.debug("Ignored pause, no running timer")
            return current
        return self._write(current.paused(self.clock.now()), "pause")

    # Resumes a paused timer, folding the closed pause into total_paused_duration. Ignored unless paused.
    def resume(self):
        current = self.read()
        if current is None or not current.is_paused:
            log.debug("Ignored resume, no paused timer")
            return current
        return self._write(current.resumed(self.clock.now()), "resume")

    # Removes the record entirely (after logging, or to discard the run).
    def clear(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        log.debug("Timer record cleared")
        self.channel.publish(None, "clear")

    #endregion === Writing ===
