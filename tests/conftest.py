"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path so tests run without an installed package
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest


@pytest.fixture
def seed_plan():
    """Listing cliff, a six-month cliff, then monthly linear releases."""
    return {
        "name": "seed",
        "amount": 1_000_000,
        "schedule": [
            {"type": "onetime", "time": "2024-01-01T00:00:00Z", "part": 60_000},
            {"type": "onetime", "time": "2024-07-01T00:00:00Z", "part": 90_000},
            {"type": "offseted", "offset": "P6M", "period": "P2M", "count": 6},
        ],
    }
