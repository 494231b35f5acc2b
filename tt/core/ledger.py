from dataclasses import dataclass, replace
from tt.common.logger import log
from tt.core.clock import SystemClock
from tt.core.errors import InvalidDurationError, NoActiveTimerError, SessionNotFoundError
from tt.core.timer_state import elapsed_seconds


# One closed run of a task. Sessions are only created by logging the live timer, changed by an explicit edit and
# removed one at a time. duration_seconds is authoritative once a session exists; start/end record the original run.
@dataclass(frozen=True)
class TimeSession:
    id: str
    start_time: int           # epoch ms
    end_time: int             # epoch ms
    duration_seconds: int
    notes: str = ""

    def to_record(self):
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationSeconds": self.duration_seconds,
            "notes": self.notes,
        }

    @staticmethod
    def from_record(record):
        return TimeSession(
            id=str(record["id"]),
            start_time=int(record["startTime"]),
            end_time=int(record["endTime"]),
            duration_seconds=int(record["durationSeconds"]),
            notes=str(record.get("notes") or ""),
        )



# Turns the edit dialog's hours/minutes into a validated duration in whole seconds. Non-numeric or non-finite input
# and totals that are not strictly positive raise InvalidDurationError.
def duration_from_dialog(hours, minutes):
    try:
        total = int(round(float(hours) * 3600 + float(minutes) * 60))
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidDurationError(f"Duration must be numeric, got hours={hours!r} minutes={minutes!r}") from e
    if total <= 0:
        raise InvalidDurationError(f"Duration must be greater than zero, got {total} seconds")
    return total


# Ledger operations for one task. `task` is any object with a mutable `sessions` list (normally a tasks.Task). With a
# binding, every mutation starts from the task's persisted sessions and commits through the binding, so two views
# holding the same task never undo each other's changes. Successful commits are announced on the store's channel
# with reason "ledger".
class SessionLedger:

    def __init__(self, task, store, binding=None, clock=None):
        self.task = task
        self.store = store
        self.binding = binding
        self.clock = clock if clock is not None else (store.clock if store is not None else SystemClock())

    @property
    def sessions(self):
        return list(self.task.sessions)

    def total_seconds(self):
        return sum(s.duration_seconds for s in self.task.sessions)

    def _index_of(self, session_id):
        for i, session in enumerate(self.task.sessions):
            if session.id == session_id:
                return i
        return -1

    # session_<epoch ms>, with a counter suffix if two sessions land on the same millisecond.
    def _new_session_id(self, now):
        taken = {s.id for s in self.task.sessions}
        candidate = f"session_{now}"
        n = 1
        while candidate in taken:
            candidate = f"session_{now}_{n}"
            n += 1
        return candidate

    # Pulls the persisted sessions into the in-memory task so the mutation applies on top of whatever other views
    # committed since this task was loaded.
    def _refresh(self):
        if self.binding is None:
            return
        persisted = self.binding.reload(self.task.id)
        if persisted is None:
            return
        if persisted.sessions != self.task.sessions:
            log.debug(f"Task '{self.task.id}' changed on disk, reloading {len(persisted.sessions)} sessions")
        self.task.sessions[:] = persisted.sessions
        self.task.duration = persisted.duration

    def _commit(self, reason):
        if self.binding is None:
            return
        self.binding.commit(self.task, reason)
        if self.store is not None:
            self.store.channel.publish(self.store.read(), "ledger")

    # Closes the live run for this task into a new session and clears the timer. The task is persisted before the
    # timer record is cleared, so a failed write leaves the run intact.
    def log_current_session(self, notes=""):
        now = self.clock.now()
        state = self.store.read(self.task.id)
        duration = int(elapsed_seconds(state, now)) if state is not None else 0
        if duration <= 0:
            log.warning(f"Nothing to log for task '{self.task.id}' (active={state is not None}, elapsed={duration}s)")
            raise NoActiveTimerError(f"No running timer with elapsed time for task '{self.task.id}'")

        self._refresh()
        session = TimeSession(
            id=self._new_session_id(now),
            start_time=state.start_time,
            end_time=now,
            duration_seconds=duration,
            notes=notes,
        )
        self.task.sessions.append(session)
        try:
            self._commit("log_session")
        except Exception:
            self.task.sessions.pop()
            raise
        self.store.clear()
        log.info(f"Logged session '{session.id}' of {duration}s for task '{self.task.id}'")
        return session

    # Replaces a session's duration and notes in place, keeping its id, start and end. When duration_seconds is
    # given it wins over hours/minutes, which lets a caller keep an exact duration the dialog can only show rounded.
    def edit_session(self, session_id, hours, minutes, notes, duration_seconds=None):
        self._refresh()
        index = self._index_of(session_id)
        if index < 0:
            raise SessionNotFoundError(f"Task '{self.task.id}' has no session '{session_id}'")
        if duration_seconds is None:
            duration = duration_from_dialog(hours, minutes)
        elif isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int) or duration_seconds <= 0:
            raise InvalidDurationError(f"Duration must be a positive whole number of seconds, got {duration_seconds!r}")
        else:
            duration = duration_seconds
        old = self.task.sessions[index]
        self.task.sessions[index] = replace(old, duration_seconds=duration, notes=notes)
        try:
            self._commit("edit_session")
        except Exception:
            self.task.sessions[index] = old
            raise
        log.info(f"Edited session '{session_id}' on task '{self.task.id}': {old.duration_seconds}s -> {duration}s")
        return self.task.sessions[index]

    # Removes the session if present. Returns the removed session, or None if there was nothing to remove.
    def delete_session(self, session_id):
        self._refresh()
        index = self._index_of(session_id)
        if index < 0:
            log.debug(f"Delete ignored, task '{self.task.id}' has no session '{session_id}'")
            return None
        removed = self.task.sessions.pop(index)
        try:
            self._commit("delete_session")
        except Exception:
            self.task.sessions.insert(index, removed)
            raise
        log.info(f"Deleted session '{session_id}' ({removed.duration_seconds}s) from task '{self.task.id}'")
        return removed

    # Logs any live run for this task, then persists the whole ledger. Returns the new session, if any.
    def finalize(self, notes=""):
        state = self.store.read(self.task.id)
        if state is not None and int(elapsed_seconds(state, self.clock.now())) > 0:
            return self.log_current_session(notes)
        self._refresh()
        self._commit("finalize")
        return None
