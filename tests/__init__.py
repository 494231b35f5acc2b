import os
import tempfile

# Point the app's data folder (logs, default record paths) at a throwaway directory before anything imports tt.
os.environ.setdefault("TASKTIMER_DATA", tempfile.mkdtemp(prefix="tasktimer_tests_"))

# Widget tests run without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
