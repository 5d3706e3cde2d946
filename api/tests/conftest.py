from __future__ import annotations

import os

# Keep tracing local to the process during tests.
os.environ.setdefault("JT_OTEL_ENABLED", "false")
