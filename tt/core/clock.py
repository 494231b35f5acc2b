from tt.util import now_ms

# Clock sources hand out wall-clock epoch milliseconds. Wall clock (not monotonic) is required here because the
# timestamps are persisted and compared across processes and reloads.
class SystemClock:

    def now(self):
        return now_ms()

# Deterministic clock for tests and replays. Starts wherever you tell it and only moves when told to.
class ManualClock:

    def __init__(self, start_ms=0):
        self._now = int(start_ms)

    def now(self):
        return self._now

    # Moves the clock forward (or backward, to simulate skew) by the given number of seconds.
    def advance(self, seconds):
        self._now += int(round(seconds * 1000))
        return self._now

    def set(self, ms):
        self._now = int(ms)
        return self._now
