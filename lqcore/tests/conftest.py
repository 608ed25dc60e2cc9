"""
Test configuration for lqcore tests.
"""

from __future__ import annotations

import pytest

from lqcore.constants import REGTEST_POLICY_ASSET


@pytest.fixture
def policy_asset() -> str:
    return REGTEST_POLICY_ASSET


@pytest.fixture
def usdt_asset() -> str:
    """Arbitrary issued asset id."""
    return "ce091c998b83c78bb71a632313ba3760f1763d9cfcffae02258ffa9865a37bd2"


@pytest.fixture
def sample_txid() -> str:
    return "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
