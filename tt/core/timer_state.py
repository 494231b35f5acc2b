import math
from dataclasses import dataclass, replace


# The single persisted timer record. Immutable, so every transition builds a whole new record and the store writes
# it in one go; a reader can never observe a half-applied transition.
@dataclass(frozen=True)
class TimerState:
    task_id: str
    label: str = ""
    is_active: bool = True
    is_paused: bool = False
    start_time: int = 0                     # epoch ms the current run began
    pause_time: int | None = None           # epoch ms the open pause began, None unless paused
    total_paused_duration: float = 0.0      # seconds, closed pauses only

    # Fresh running state for a task.
    @staticmethod
    def started(task_id, label, now):
        return TimerState(task_id=task_id, label=label, start_time=now)

    def paused(self, now):
        return replace(self, is_paused=True, pause_time=now)

    def resumed(self, now):
        open_pause = max(0.0, (now - self.pause_time) / 1000)
        return replace(self, is_paused=False, pause_time=None,
                       total_paused_duration=self.total_paused_duration + open_pause)

    # Persisted record shape. Keys are camelCase because the record is shared with other views/processes that
    # read the same key.
    def to_record(self):
        return {
            "taskId": self.task_id,
            "label": self.label,
            "isActive": self.is_active,
            "isPaused": self.is_paused,
            "startTime": self.start_time,
            "pauseTime": self.pause_time,
            "totalPausedDuration": self.total_paused_duration,
        }

    # Rebuilds a TimerState from a persisted record. Raises ValueError describing the first problem found; the
    # store turns that into a PersistenceReadError.
    @staticmethod
    def from_record(record):
        if not isinstance(record, dict):
            raise ValueError(f"expected an object, got {type(record).__name__}")

        def _number(key, nullable=False):
            value = record.get(key)
            if value is None and nullable:
                return None
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"'{key}' must be a finite number, got {value!r}")
            return value

        for key in ("isActive", "isPaused"):
            if not isinstance(record.get(key), bool):
                raise ValueError(f"'{key}' must be a boolean, got {record.get(key)!r}")
        task_id = record.get("taskId")
        if record["isActive"] and (not isinstance(task_id, str) or not task_id):
            raise ValueError("'taskId' is required while a timer is active")

        state = TimerState(
            task_id=task_id or "",
            label=str(record.get("label") or ""),
            is_active=record["isActive"],
            is_paused=record["isPaused"],
            start_time=int(_number("startTime")),
            pause_time=_number("pauseTime", nullable=True),
            total_paused_duration=float(_number("totalPausedDuration")),
        )
        if state.is_paused and not state.is_active:
            raise ValueError("record is paused but not active")
        if state.is_paused != (state.pause_time is not None):
            raise ValueError("'pauseTime' must be set exactly when paused")
        if state.total_paused_duration < 0:
            raise ValueError("'totalPausedDuration' cannot be negative")
        return state


# Active seconds of the current run at `now` (epoch ms), excluding every paused interval including an open one.
# Never negative, even when `now` is before start_time because of clock skew.
def elapsed_seconds(state, now):
    if state is None or not state.is_active:
        return 0.0
    raw_elapsed = (now - state.start_time) / 1000
    open_pause = 0.0
    if state.is_paused and state.pause_time is not None:
        open_pause = (now - state.pause_time) / 1000
    return max(0.0, raw_elapsed - state.total_paused_duration - open_pause)
