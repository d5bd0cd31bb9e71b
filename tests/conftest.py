from __future__ import annotations

import os
import tempfile

# The config singleton is created at import time; keep it out of the real ~/.dirac.
os.environ["DIRAC_HOME"] = tempfile.mkdtemp(prefix="dirac-test-")
