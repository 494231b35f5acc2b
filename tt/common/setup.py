import os
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories, returns the path for chaining.
def ensure_directory(path: Path):
    path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the root data folder. TASKTIMER_DATA wins, then the usual Windows APPDATA location, then a dotfolder in home.
def _resolve_data_root():
    override = os.getenv("TASKTIMER_DATA")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "TaskTimer"
    return Path.home() / ".tasktimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path

    logs: Path
    current: Path
    snapshots: Path
    tasks: Path

    @staticmethod
    def build(data_root: Path | None = None):
        data = ensure_directory(data_root or _resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        current = ensure_directory(data / "current")
        snapshots = ensure_directory(data / "snapshots")
        tasks = ensure_directory(data / "tasks")

        return ProjectPaths(
            data = data,
            logs = logs,
            current = current,
            snapshots = snapshots,
            tasks = tasks
        )
PATHS = ProjectPaths.build()
