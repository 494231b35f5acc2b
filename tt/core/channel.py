from collections.abc import Callable
from tt.common.logger import log


# Minimal publish/subscribe fan-out for the shared timer record. The store publishes after every write and the
# ledger after every commit; subscribers are called synchronously, in subscription order, with (state, reason) where
# state is the current TimerState or None. Nothing here depends on a UI toolkit, tt.ui.sync drives it from Qt.
class SyncChannel:

    def __init__(self):
        self._subscribers: list[Callable] = []

    # Registers a callback and returns a zero-argument function that removes it again.
    def subscribe(self, callback: Callable):
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callable):
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def publish(self, state, reason):
        # Iterate over a copy, a subscriber may unsubscribe itself mid-fan-out.
        for callback in list(self._subscribers):
            try:
                callback(state, reason)
            except Exception:
                # One broken view must not stop the others from converging.
                log.exception(f"Subscriber {callback!r} failed while handling '{reason}' broadcast")


# Fallback for views that cannot hear the publishes (another window, another process): re-reads the persisted record
# and republishes it. poll() is meant to be called about once a second by whatever loop the host has.
class StatePoller:

    def __init__(self, read: Callable, channel: SyncChannel):
        self._read = read
        self._channel = channel

    def poll(self, reason="poll"):
        state = self._read()
        self._channel.publish(state, reason)
        return state
