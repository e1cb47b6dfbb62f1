"""
Unit Test Configuration
=======================
Fixtures for pure logic tests - NO I/O ALLOWED.

All unit tests should be completely isolated from:
- Network (RPC, HTTP)
- File system (except tmp_path)
"""

import pytest

from tests.mocks import MockRpcClient, MockAmmSdk


# ============================================================================
# AUTOUSE: ENFORCE I/O ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolate_unit_tests(monkeypatch):
    """
    Automatically disable all network I/O for unit tests.
    Any test that accidentally tries to make a network call will fail.
    """
    def block_network(*args, **kwargs):
        raise RuntimeError(
            "Network I/O detected in unit test! "
            "Unit tests must be pure logic with no external dependencies. "
            "Use MockRpcClient for RPC-facing code."
        )

    # Block the HTTP client solana-py rides on
    monkeypatch.setattr("httpx.AsyncClient.send", block_network)
    monkeypatch.setattr("httpx.Client.send", block_network)


@pytest.fixture(autouse=True)
def quiet_logger(monkeypatch):
    """No console output and no log files from unit tests."""
    monkeypatch.setattr("src.shared.system.logging.Logger._silent_mode", True)
    monkeypatch.setattr("src.shared.system.logging._file_handler_ready", True)


# ============================================================================
# RPC / SDK FIXTURES
# ============================================================================


@pytest.fixture
def mock_rpc():
    return MockRpcClient()


@pytest.fixture
def mock_amm():
    return MockAmmSdk()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
