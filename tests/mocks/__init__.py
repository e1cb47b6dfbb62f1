"""
Pump Batch Test Mocks
=====================
Reusable mock classes for isolated testing.
"""

from tests.mocks.mock_rpc import MockRpcClient
from tests.mocks.mock_amm import MockAmmSdk

__all__ = [
    "MockRpcClient",
    "MockAmmSdk",
]
