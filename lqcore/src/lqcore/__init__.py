"""
lqcore - Core library for Liquid transaction building

Provides network parameters, value types, asset ledger helpers and address
decoding shared by the wallet components.
"""

__version__ = "0.3.0"

from lqcore.address import AddressCodec, InvalidAddress, LiquidAddressCodec
from lqcore.constants import (
    DEFAULT_SATS_PER_BYTE,
    LIQUID_POLICY_ASSET,
    MIN_SATS_PER_BYTE,
    REGTEST_POLICY_ASSET,
    TESTNET_POLICY_ASSET,
)
from lqcore.ledger import balances, group_by_asset, sum_by_asset, sum_values
from lqcore.models import (
    AssetAmount,
    Coin,
    NetworkParams,
    NetworkType,
    OutputShape,
    Recipient,
    get_network_params,
)

__all__ = [
    "AddressCodec",
    "AssetAmount",
    "Coin",
    "DEFAULT_SATS_PER_BYTE",
    "InvalidAddress",
    "LIQUID_POLICY_ASSET",
    "LiquidAddressCodec",
    "MIN_SATS_PER_BYTE",
    "NetworkParams",
    "NetworkType",
    "OutputShape",
    "REGTEST_POLICY_ASSET",
    "Recipient",
    "TESTNET_POLICY_ASSET",
    "balances",
    "get_network_params",
    "group_by_asset",
    "sum_by_asset",
    "sum_values",
]
