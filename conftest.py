"""
Top-level conftest.py for the order-book collector.

Pytest plugins that affect the entire test suite should be defined here.
"""

import sys
from pathlib import Path

# Put the service directory on the path so that ``orderbook_collector`` and
# ``main`` import without an installed package.
sys.path.insert(0, str(Path(__file__).parent / "services" / "orderbook-collector"))
