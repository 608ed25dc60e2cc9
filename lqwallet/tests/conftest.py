"""
Test configuration and fixtures for lqwallet tests.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable

import pytest
from loguru import logger

from lqcore.constants import REGTEST_POLICY_ASSET
from lqcore.models import Coin, Recipient

# P2WPKH: OP_0 <20 bytes>
RECIPIENT_SCRIPT = "0014" + "ab" * 20
CHANGE_SCRIPT = bytes.fromhex("0014" + "cd" * 20)
BLINDING_PUBKEY = "02" + "11" * 32

_txids = itertools.count(1)


@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru output out of the test report."""
    logger.remove()
    yield


@pytest.fixture
def policy_asset() -> str:
    return REGTEST_POLICY_ASSET


@pytest.fixture
def other_asset() -> str:
    return "ce091c998b83c78bb71a632313ba3760f1763d9cfcffae02258ffa9865a37bd2"


@pytest.fixture
def make_coin() -> Callable[..., Coin]:
    """Factory for unblinded coins with unique outpoints."""

    def _make(asset: str, value: int, vout: int = 0) -> Coin:
        return Coin(txid=f"{next(_txids):064x}", vout=vout, asset=asset, value=value)

    return _make


@pytest.fixture
def make_recipient() -> Callable[..., Recipient]:
    def _make(asset: str, value: int, confidential: bool = False) -> Recipient:
        return Recipient(
            asset=asset,
            value=value,
            script=RECIPIENT_SCRIPT,
            blinding_pubkey=BLINDING_PUBKEY if confidential else None,
        )

    return _make


@pytest.fixture
def change_getter() -> Callable[[str], bytes]:
    """Explicit P2WPKH change script for every asset."""
    return lambda asset: CHANGE_SCRIPT
