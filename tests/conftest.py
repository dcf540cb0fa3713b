"""Pytest configuration for Quick Train Times tests."""

import sys
from pathlib import Path

import pytest

# Add custom_components to path so we can import properly
sys.path.insert(0, str(Path(__file__).parent.parent))

from custom_components.quick_train_times.lookup import CodeLookup, CodeTable  # noqa: E402


@pytest.fixture
def lookup() -> CodeLookup:
    """Small station/operator tables."""
    return CodeLookup(
        CodeTable(
            [
                ("PAD", "London Paddington"),
                ("RDG", "Reading"),
                ("TWY", "Twyford"),
                ("MAN", "Manchester Piccadilly"),
            ],
            version="test",
        ),
        CodeTable([("GW", "Great Western Railway"), ("XC", "CrossCountry")], version="test"),
    )
