"""Pytest configuration for the aquery-check test suite."""

import sys
from pathlib import Path

# Add src directory to path so tests run without an install
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
