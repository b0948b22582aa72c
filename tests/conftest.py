"""Root conftest — sets env vars BEFORE any podstart module is imported.

Tests must never read or write the real ~/.podstart, and a GITHUB_TOKEN
from the developer's shell must not leak into request headers.
"""

import os
import tempfile

# Force-set (not setdefault) to prevent real env vars from leaking into tests
os.environ["PODSTART_DIR"] = tempfile.mkdtemp(prefix="podstart-test-")
os.environ.pop("PODSTART_WORKSPACE", None)
os.environ.pop("GITHUB_TOKEN", None)
