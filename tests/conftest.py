# tests/conftest.py
"""
Global test bootstrap
- Sets required settings env BEFORE any `app.*` import
- Keeps SlowAPI bypassed and every background component off
- Pulls in the in-memory fakes (stores, storage, event recorder, clock)
"""

from __future__ import annotations

import os

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (must precede app imports; `settings` is built at import time)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-entropy-1234")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("AWS_BUCKET_NAME", "test-bucket")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("SEARCH_ENABLED", "false")
os.environ.setdefault("PUBLICATION_SCHEDULER_ENABLED", "false")
os.environ.setdefault("UPLOAD_CONSUMER_ENABLED", "false")

import pytest  # noqa: E402

from tests.fixtures.services import *  # noqa: F401,F403,E402
from tests.fixtures.app import *  # noqa: F401,F403,E402


@pytest.fixture(scope="session", autouse=True)
def anyio_backend():
    return "asyncio"
