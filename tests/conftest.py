"""
Pytest Configuration and Fixtures

Environment defaults for offline unit tests, plus session-scoped fixtures
for live tests that need the running stack (API on localhost:8000).
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults, set before any mod_notes import.
#
# 1. Load .env first so that Docker-matching credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones
#    without a .env file) so that pydantic Settings validation doesn't crash.
#    OPENAI_API_KEY=mock keeps every embedding synthetic and offline.
# ---------------------------------------------------------------------------
load_dotenv()  # .env → os.environ (no-op if file is missing)

_test_env = {
    "POSTGRES_USER": "notes",
    "POSTGRES_PASSWORD": "notes_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "notes_db",
    "OPENAI_API_KEY": "mock",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import time  # noqa: E402
from collections.abc import Generator  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

BASE_URL = os.getenv("NOTES_API_URL", "http://localhost:8000")


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health with 1s intervals for up to 30s and fails the session
    if the API never answers (stack likely not running).
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Is the stack running?")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """
    Pre-configured HTTP client for live tests.

    Base URL points to /api/v1 for cleaner test assertions.
    """
    with httpx.Client(base_url=f"{BASE_URL}/api/v1", timeout=10.0) as client:
        yield client
