from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OPIK_ENABLED", "false")
os.environ.setdefault("TIMEZONE", "UTC")
