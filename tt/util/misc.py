import math
import time
from datetime import datetime


# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()

# Current wall-clock time as integer epoch milliseconds, the unit every persisted timestamp uses.
def now_ms():
    return int(time.time() * 1000)

# Renders epoch milliseconds as a short local date/time for session lists.
def format_timestamp(ms):
    return datetime.fromtimestamp(ms / 1000).astimezone().strftime("%Y-%m-%d %H:%M")

# Format seconds as HH:MM:SS. Negative and non-finite values clamp to zero, hours are allowed past 99.
def format_time(seconds):
    if seconds is None or not math.isfinite(seconds):
        seconds = 0
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"

# Two decimal currency rendering, without any currency symbol.
def format_money(amount):
    return f"{amount:,.2f}"
