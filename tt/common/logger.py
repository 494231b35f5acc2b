import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler
from tt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Returns True if the logger already carries a handler under this name, so repeated get_logger() calls (tests,
# re-imports) never stack duplicate handlers.
def _has_handler(logger, handler_name):
    return any(h.get_name() == handler_name for h in logger.handlers)

def _attach(logger, handler, handler_name, level, fmt):
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.set_name(handler_name)
    logger.addHandler(handler)

# Deletes all but the newest `keep` per-run debug logs.
def _prune_debug_runs(debug_dir: Path, name, keep):
    runs = sorted(debug_dir.glob(f"{name}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
    for run in runs[keep:]:
        try: run.unlink()
        except OSError: pass

def get_logger(
        name = "tasktimer",
        level = logging.INFO,
        log_dir: Path | None = None,
        max_bytes = 5 * 1024 * 1024,
        backup_count = 5,
        persistent = True,
        console = False,
        historical_debugs: int = 10
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(min(level, logging.DEBUG) if historical_debugs > 0 else level)

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log that survives across runs
    if persistent and not _has_handler(logger, f"{name}:persistent"):
        _attach(logger, RotatingFileHandler(filename=log_dir / f"{name}.log", maxBytes=max_bytes,
                                            backupCount=backup_count, encoding="utf-8"),
                f"{name}:persistent", level, fmt)

    # latest.log only ever holds the current run
    if not _has_handler(logger, f"{name}:latest"):
        _attach(logger, logging.FileHandler(filename=log_dir / "latest.log", mode="w", encoding="utf-8"),
                f"{name}:latest", level, fmt)

    # One full DEBUG log per run, oldest runs pruned
    if historical_debugs > 0 and not _has_handler(logger, f"{name}:historical_debug"):
        debug_dir = log_dir / "debug"
        debug_dir.mkdir(parents=True,exist_ok=True)
        run_path = debug_dir / f"{name}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
        _attach(logger, logging.FileHandler(filename=run_path, encoding="utf-8"),
                f"{name}:historical_debug", logging.DEBUG, fmt)
        _prune_debug_runs(debug_dir, name, historical_debugs)

    if console and not _has_handler(logger, f"{name}:console"):
        _attach(logger, logging.StreamHandler(), f"{name}:console", level, fmt)

    return logger

# TASKTIMER_LOG_CONSOLE=1 mirrors the log to stderr, handy when running from a terminal.
log = get_logger(level=logging.DEBUG,console=os.getenv("TASKTIMER_LOG_CONSOLE") == "1",historical_debugs=10)
log.info("=== INITIALIZED NEW SESSION ===")
