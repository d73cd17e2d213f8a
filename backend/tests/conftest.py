import sys
import os

import pytest

# project root = repository root (one level above backend/)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
BACKEND_ROOT = os.path.join(PROJECT_ROOT, "backend")

# Add PROJECT_ROOT and BACKEND_ROOT to sys.path
for path in [PROJECT_ROOT, BACKEND_ROOT]:
    if path not in sys.path:
        sys.path.insert(0, path)


@pytest.fixture
def sales_rows():
    return [
        {"region": "A", "sales": 10},
        {"region": "A", "sales": 20},
        {"region": "B", "sales": 5},
    ]


@pytest.fixture
def wide_rows():
    """30 rows: a high-cardinality numeric id, a 3-level category and a numeric measure."""
    regions = ["North", "South", "East"]
    return [
        {"id": i, "region": regions[i % 3], "sales": str(i * 10)}
        for i in range(1, 31)
    ]
