import json
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.util import now_iso


_SCHEMA_VERSION = 1

SETTINGS_PATH = PATHS.data / "settings.json"

CONFLICT_POLICIES = ("block", "log_previous")
MIN_POLL_INTERVAL_MS = 100

# Default values for every setting, and the type each one must have.
_SETTINGS_DEFAULTS = {
    "timer_record_name": "active_timer.json",
    "poll_interval_ms": 1000,
    "conflict_policy": "block",
    "default_billable": True,
    "default_billable_rate": 100.0,
    "confirm_delete": True,
    "confirm_discard": True,
    "snapshot_on_edit": True,
}

def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

# Checks one loaded value against its default's type. Ints are accepted where floats are expected, bools never
# count as numbers.
def _valid(key, value):
    default = _SETTINGS_DEFAULTS[key]
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, type(default))

# Loads settings.json, filling in defaults for anything missing or malformed. Never raises; an unreadable file just
# means default settings.
def load_settings(path=None):
    path = path or SETTINGS_PATH
    try:
        if not path.exists():
            log.info(f"No settings file at '{path}', using defaults.")
            return build_default_settings()
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise TypeError(f"settings root must be an object, got {type(raw).__name__}")
        stored = raw.get("settings", {})
        if not isinstance(stored, dict):
            stored = {}

        settings = {}
        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            if key in stored and _valid(key, stored[key]):
                settings[key] = stored[key]
            else:
                defaulted_values.add(key)
                settings[key] = default

        # Value-level checks on top of the type checks
        if settings["conflict_policy"] not in CONFLICT_POLICIES:
            defaulted_values.add("conflict_policy")
            settings["conflict_policy"] = _SETTINGS_DEFAULTS["conflict_policy"]
        if settings["poll_interval_ms"] < MIN_POLL_INTERVAL_MS:
            settings["poll_interval_ms"] = MIN_POLL_INTERVAL_MS
        if not settings["timer_record_name"].strip():
            defaulted_values.add("timer_record_name")
            settings["timer_record_name"] = _SETTINGS_DEFAULTS["timer_record_name"]
        settings["default_billable_rate"] = float(settings["default_billable_rate"])

        if defaulted_values:
            log.warning(f"Loaded settings from '{path}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{path}'.")
        return settings
    except (json.JSONDecodeError, UnicodeDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to defaults.", exc_info=True)
        return build_default_settings()

def save_settings(settings, path=None):
    path = path or SETTINGS_PATH
    payload = {
        "meta": {"schema_version": _SCHEMA_VERSION, "saved_at": now_iso()},
        "settings": settings,
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    log.info(f"Successfully saved settings to '{path}'")
