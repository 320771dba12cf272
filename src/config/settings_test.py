"""Settings for the pytest suite.

Layers test defaults over ``config.settings``: in-memory SQLite, no
trace exporter, and a catalog URL that is never actually reached
(tests inject fake catalog clients or ``httpx.MockTransport``).
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")

from config.settings import *  # noqa: E402,F401,F403

DEBUG = False

OTEL_TRACES_EXPORTER = "none"
CATALOG_BASE_URL = "http://catalog.test"
CATALOG_TIMEOUT_SECONDS = 1.0
CATALOG_MAX_WORKERS = 4
