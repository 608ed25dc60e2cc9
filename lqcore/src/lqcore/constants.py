"""
Liquid network constants.

Policy assets are the native assets (L-BTC) in which network fees are paid.
Address prefixes follow the Elements chain parameters for each network.
"""

from __future__ import annotations

# Policy (fee) asset ids, hex in display byte order
LIQUID_POLICY_ASSET = "6f0279e9ed041c3d710a9f57d0c02928416460c4b722ae3457a11eec381c526d"
TESTNET_POLICY_ASSET = "144c654344aa716d6f3abcc1ca90e5641e4e2a7f633bc09fe3baf64585819a49"
REGTEST_POLICY_ASSET = "5ac9f65c0efcc4775e0baec4ec03abdde22473cd3cf33c0419ca290e0751b225"

# Fee rates are expressed in sats per virtual byte
DEFAULT_SATS_PER_BYTE = 0.1
MIN_SATS_PER_BYTE = 0.1

# Asset ids and txids are 32 bytes
HASH_LENGTH = 32

# Blinding public keys are compressed secp256k1 points
BLINDING_PUBKEY_LENGTH = 33

# Prefix byte of an explicit (unblinded) asset tag or value
EXPLICIT_PREFIX = 0x01
