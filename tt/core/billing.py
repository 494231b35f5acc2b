from dataclasses import dataclass
from tt.core.timer_state import elapsed_seconds

# Billing figures are always derived on the fly from the ledger plus the live timer. Nothing here is persisted.

# Ledger total plus the live run, but only when the live timer belongs to this task.
def total_tracked_seconds(task, live_state, now):
    logged = sum(s.duration_seconds for s in task.sessions)
    if live_state is not None and live_state.task_id == task.id:
        return logged + elapsed_seconds(live_state, now)
    return logged

# Hours times the task's hourly rate, or 0 for non-billable tasks.
def billable_amount(task, total_seconds):
    if not task.is_billable:
        return 0.0
    return (total_seconds / 3600) * task.billable_rate


@dataclass(frozen=True)
class BillingLine:
    task_id: str
    title: str
    seconds: float
    amount: float
    is_live: bool


@dataclass(frozen=True)
class BillingSummary:
    lines: list
    total_seconds: float
    total_amount: float


# Per-task lines plus grand totals. Amounts are computed from unrounded seconds; rounding is a display concern.
def billing_summary(tasks, live_state, now):
    lines = []
    for task in tasks:
        seconds = total_tracked_seconds(task, live_state, now)
        lines.append(BillingLine(
            task_id=task.id,
            title=task.title,
            seconds=seconds,
            amount=billable_amount(task, seconds),
            is_live=live_state is not None and live_state.task_id == task.id,
        ))
    return BillingSummary(
        lines=lines,
        total_seconds=sum(line.seconds for line in lines),
        total_amount=sum(line.amount for line in lines),
    )
