import copy
import json
import os
from datetime import datetime
from pathlib import Path
from tt.common.logger import log

# Time-tier targets in seconds. For each tier we keep the snapshot whose timestamp is closest to (now - tier).
# Edits are rare compared to ticks, so the tiers stretch out further than a tick-driven backup would need.
TIERS = [
    10 * 60,      # ~10 minutes ago
    60 * 60,      # ~1 hour ago
    6 * 3600,     # ~6 hours ago
    24 * 3600,    # ~1 day ago
    3 * 86400,    # ~3 days ago
    7 * 86400,    # ~1 week ago
    30 * 86400,   # ~1 month ago
]

# Writes a full copy of the task data as it was right before a destructive ledger change, so an edit or delete that
# turns out wrong can be recovered by hand.
def create_snapshot(data, directory, reason, priority="normal"):
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    snap = {
        "meta": {
            "snapshot_reason": reason,
            "snapshot_priority": priority,
            "taken_at": datetime.now().astimezone().isoformat(),
        },
        "data": copy.deepcopy(data),
    }

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    target_path = directory / f"tasks_{timestamp}.json"
    with open(target_path, "w", encoding="utf-8") as f:
        json.dump(snap, f, indent=2)
    log.debug(f"Saved snapshot for reason '{reason}', priority '{priority}' to {target_path}")
    return target_path

# Extracts the datetime from a snapshot filename, such as tasks_20260212_140311_123456.json -> 2/12/2026 14:03:11.123456
def _parse_snapshot_time(filename):
    base = os.path.splitext(filename)[0]
    parts = base.split("_", 1)
    if len(parts) < 2:
        return None
    try:
        return datetime.strptime(parts[1], "%Y%m%d_%H%M%S_%f")
    except ValueError:
        return None

# Tiered retention: the newest snapshot is always kept, plus the one closest to each tier in TIERS. Everything else
# is deleted. Returns how many files were removed.
def prune_snapshots(directory, now=None):
    directory = Path(directory)
    if not directory.exists():
        return 0
    entries = []
    for path in directory.iterdir():
        if not path.name.startswith("tasks_") or not path.name.endswith(".json"):
            continue
        ts = _parse_snapshot_time(path.name)
        if ts is not None:
            entries.append((path.name, ts))

    if len(entries) <= 1:
        return 0

    entries.sort(key=lambda e: e[1], reverse=True)
    now = now or datetime.now()

    keep = {entries[0][0]}
    for tier_secs in TIERS:
        target = now.timestamp() - tier_secs
        best = min(entries, key=lambda e: abs(e[1].timestamp() - target))
        keep.add(best[0])

    pruned_count = 0
    for filename, _ in entries:
        if filename not in keep:
            try:
                os.remove(directory / filename)
                pruned_count += 1
            except OSError:
                log.warning(f"Could not prune snapshot '{filename}'", exc_info=True)
    if pruned_count > 0:
        log.info(f"Pruned {pruned_count} files from '{directory}'")
    return pruned_count
