"""
Transaction size and fee estimation for confidential transactions.

Size is modelled segwit-style: base bytes weigh 4, witness bytes weigh 1.
Confidential outputs carry full commitments in the base part and a range
proof plus a surjection proof in the witness part, which makes them roughly
twenty times heavier than explicit outputs.

Every estimate includes one explicit fee output, whether or not the caller
ends up needing it, so that estimates stay stable across selection passes.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_CEILING, Decimal

from lqcore.constants import MIN_SATS_PER_BYTE
from lqcore.models import OutputShape, Recipient

# Version (4) + locktime (4) + segwit flag (1)
HEADER_SIZE = 9

# Outpoint hash (32) + outpoint index and sequence (8)
INPUT_BASE_SIZE = 32 + 8

# Confidential output: asset commitment + value commitment + nonce (ECDH pubkey)
CONFIDENTIAL_ASSET_SIZE = 33
CONFIDENTIAL_VALUE_SIZE = 33
CONFIDENTIAL_NONCE_SIZE = 33

# Explicit output: asset tag + explicit value + empty nonce
EXPLICIT_ASSET_SIZE = 33
EXPLICIT_VALUE_SIZE = 9
EMPTY_NONCE_SIZE = 1

# Fee output: explicit asset + explicit value + empty script + empty nonce
FEE_OUTPUT_BASE_SIZE = EXPLICIT_ASSET_SIZE + EXPLICIT_VALUE_SIZE + 1 + EMPTY_NONCE_SIZE

# Single-sig P2WPKH spend: signature (72) + pubkey (33), their stack and length
# bytes (3) and the empty issuance / peg-in witness markers (3)
INPUT_WITNESS_SIZE = 72 + 33 + 3 + 3

# Upper bounds for a 52-bit range proof and a single-input surjection proof.
# Each proof is counted with its own varint length prefix (3 + 1 bytes) instead
# of a flat 32-byte allowance, so a confidential output witness is 4245 bytes.
RANGE_PROOF_SIZE = 4174
SURJECTION_PROOF_SIZE = 67

# Explicit outputs (fee included) carry an empty proof pair
EMPTY_PROOF_SIZE = 1

WITNESS_SCALE_FACTOR = 4


def varint_size(n: int) -> int:
    """Serialized size of n as a Bitcoin varint."""
    if n < 0xFD:
        return 1
    elif n <= 0xFFFF:
        return 3
    elif n <= 0xFFFFFFFF:
        return 5
    else:
        return 9


CONFIDENTIAL_OUTPUT_WITNESS_SIZE = (
    varint_size(RANGE_PROOF_SIZE)
    + RANGE_PROOF_SIZE
    + varint_size(SURJECTION_PROOF_SIZE)
    + SURJECTION_PROOF_SIZE
)


def output_base_size(shape: OutputShape) -> int:
    script = varint_size(shape.script_length) + shape.script_length
    if shape.is_confidential:
        return CONFIDENTIAL_ASSET_SIZE + CONFIDENTIAL_VALUE_SIZE + CONFIDENTIAL_NONCE_SIZE + script
    return EXPLICIT_ASSET_SIZE + EXPLICIT_VALUE_SIZE + EMPTY_NONCE_SIZE + script


def output_witness_size(shape: OutputShape) -> int:
    if shape.is_confidential:
        return CONFIDENTIAL_OUTPUT_WITNESS_SIZE
    return EMPTY_PROOF_SIZE


def base_size(num_inputs: int, outputs: list[OutputShape]) -> int:
    """Non-witness bytes, fee output included."""
    num_outputs = len(outputs) + 1
    return (
        HEADER_SIZE
        + varint_size(num_inputs)
        + varint_size(num_outputs)
        + num_inputs * INPUT_BASE_SIZE
        + sum(output_base_size(shape) for shape in outputs)
        + FEE_OUTPUT_BASE_SIZE
    )


def witness_size(num_inputs: int, outputs: list[OutputShape]) -> int:
    """Witness bytes, fee output included."""
    return (
        num_inputs * INPUT_WITNESS_SIZE
        + sum(output_witness_size(shape) for shape in outputs)
        + EMPTY_PROOF_SIZE
    )


def estimate_size(num_inputs: int, outputs: Iterable[OutputShape]) -> int:
    """
    Estimate the virtual size of a transaction.

    Args:
        num_inputs: Number of inputs (all assumed single-sig segwit)
        outputs: Shapes of all outputs except the fee output

    Returns:
        Virtual size in vbytes, ceil((weight + 3) / 4)
    """
    if num_inputs < 0:
        raise ValueError(f"Negative input count: {num_inputs}")

    shapes = list(outputs)
    base = base_size(num_inputs, shapes)
    total = base + witness_size(num_inputs, shapes)
    weight = base * (WITNESS_SCALE_FACTOR - 1) + total
    # ceil((weight + 3) / 4), kept in integers
    padded = weight + WITNESS_SCALE_FACTOR - 1
    return (padded + WITNESS_SCALE_FACTOR - 1) // WITNESS_SCALE_FACTOR


def fee_for(vbytes: int, sats_per_byte: float | Decimal | str) -> int:
    """
    Fee for a transaction of the given size, rounded up to a whole sat.

    The rate goes through Decimal so 0.1 sat/vbyte means exactly 0.1.
    """
    rate = Decimal(str(sats_per_byte))
    return int((Decimal(vbytes) * rate).to_integral_value(rounding=ROUND_CEILING))


def estimate_fee(
    num_inputs: int, outputs: Iterable[OutputShape], sats_per_byte: float | Decimal | str
) -> int:
    return fee_for(estimate_size(num_inputs, outputs), sats_per_byte)


def check_fee_rate(sats_per_byte: float | Decimal | str) -> bool:
    """True if the rate is at least the relay minimum."""
    return Decimal(str(sats_per_byte)) >= Decimal(str(MIN_SATS_PER_BYTE))


def make_fee_output(fee: int, asset: str) -> Recipient:
    """Fee outputs have an empty script and are never blinded."""
    return Recipient(asset=asset, value=fee, script="")
