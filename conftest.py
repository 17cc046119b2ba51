"""Global pytest configuration."""

import os

# Tests run against the offline deterministic replanner unless a test says otherwise
os.environ.pop("REPLANNER_URL", None)
