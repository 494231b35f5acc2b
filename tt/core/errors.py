# Error taxonomy for the timer and session ledger. Every error here is recoverable: callers fall back to "no active
# timer" (or leave the ledger untouched) and show a message.


# Base class for all recoverable timer/ledger errors.
class TaskTimerError(Exception):
    pass


# Starting a timer while a different task's timer is active.
class ConflictError(TaskTimerError):

    def __init__(self, active_state):
        self.active_state = active_state
        super().__init__(
            f"A timer is already running for '{active_state.label or active_state.task_id}'"
        )


# Logging a session with nothing running (or nothing elapsed) for the task.
class NoActiveTimerError(TaskTimerError):
    pass


# An edited session duration that is not numeric, not finite, or not greater than zero.
class InvalidDurationError(TaskTimerError, ValueError):
    pass


# Editing a session id the ledger does not hold.
class SessionNotFoundError(TaskTimerError, LookupError):
    pass


# The persisted timer record is missing fields or unparseable.
class PersistenceReadError(TaskTimerError):

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Unreadable timer record at '{path}': {reason}")
