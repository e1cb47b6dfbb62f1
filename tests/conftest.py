"""
Pump Batch Test Configuration
=============================
Shared fixtures and pytest markers for the test suite.
"""

import pytest
import os
import sys

from solders.keypair import Keypair
from solders.pubkey import Pubkey

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "network: marks tests that require network access"
    )


# ============================================================================
# SHARED FIXTURES
# ============================================================================

@pytest.fixture
def sender():
    """Trader wallet."""
    return Keypair()


@pytest.fixture
def fee_payer():
    """Separate fee payer wallet."""
    return Keypair()


@pytest.fixture
def mint():
    return Pubkey.new_unique()


@pytest.fixture
def recipient():
    return Pubkey.new_unique()
