from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Keep the service's settings file out of the working tree during tests
os.environ.setdefault(
    "CODA_FRAMER_SETTINGS",
    str(Path(tempfile.mkdtemp(prefix="coda-framer-")) / "settings.json"),
)
