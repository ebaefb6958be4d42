"""
Pytest configuration file for backend testing.
"""
import os
import sys
from pathlib import Path

import pytest

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are read once per process; pin test values before anything imports them
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "200")
os.environ.setdefault("RATE_LIMIT_STORAGE", "memory")


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    from core.rate_limiter import rate_limiter

    rate_limiter.reset()
    yield
    rate_limiter.reset()
