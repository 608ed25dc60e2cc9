"""
Core data models using Pydantic for validation.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, StrictInt, field_validator, model_validator

from lqcore.constants import (
    BLINDING_PUBKEY_LENGTH,
    HASH_LENGTH,
    LIQUID_POLICY_ASSET,
    REGTEST_POLICY_ASSET,
    TESTNET_POLICY_ASSET,
)

_HEX_RE = re.compile(r"^(?:[0-9a-f]{2})*$")


def validate_hex(value: str, length: int | None = None, name: str = "value") -> str:
    """
    Normalise a hex string to lower case and check it.

    Args:
        value: Hex string
        length: Expected length in bytes, or None for any even length
        name: Field name used in the error message

    Raises:
        ValueError: If the string is not hex or has the wrong length
    """
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a hex string")
    value = value.lower()
    if not _HEX_RE.match(value):
        raise ValueError(f"{name} is not valid hex: {value!r}")
    if length is not None and len(value) != 2 * length:
        raise ValueError(f"{name} must be {length} bytes, got {len(value) // 2}")
    return value


class NetworkType(str, Enum):
    LIQUID = "liquid"
    TESTNET = "testnet"
    REGTEST = "regtest"


class NetworkParams(BaseModel):
    """Chain parameters needed for address decoding and fee payment."""

    network: NetworkType
    policy_asset: str
    bech32_hrp: str
    blech32_hrp: str
    pubkey_hash_version: int
    script_hash_version: int
    confidential_prefix: int

    model_config = {"frozen": True}


NETWORK_PARAMS: dict[NetworkType, NetworkParams] = {
    NetworkType.LIQUID: NetworkParams(
        network=NetworkType.LIQUID,
        policy_asset=LIQUID_POLICY_ASSET,
        bech32_hrp="ex",
        blech32_hrp="lq",
        pubkey_hash_version=57,
        script_hash_version=39,
        confidential_prefix=12,
    ),
    NetworkType.TESTNET: NetworkParams(
        network=NetworkType.TESTNET,
        policy_asset=TESTNET_POLICY_ASSET,
        bech32_hrp="tex",
        blech32_hrp="tlq",
        pubkey_hash_version=36,
        script_hash_version=19,
        confidential_prefix=23,
    ),
    NetworkType.REGTEST: NetworkParams(
        network=NetworkType.REGTEST,
        policy_asset=REGTEST_POLICY_ASSET,
        bech32_hrp="ert",
        blech32_hrp="el",
        pubkey_hash_version=235,
        script_hash_version=75,
        confidential_prefix=4,
    ),
}


def get_network_params(network: NetworkType | str) -> NetworkParams:
    """Get chain parameters for a network."""
    return NETWORK_PARAMS[NetworkType(network)]


class AssetAmount(BaseModel):
    """An integer amount of a single asset."""

    asset: str
    value: StrictInt = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v: str) -> str:
        return validate_hex(v, HASH_LENGTH, "asset")


class Coin(BaseModel):
    """
    A spendable output.

    Blinded coins (asset or value unknown) can be carried around but never
    take part in coin selection.
    """

    txid: str
    vout: int = Field(..., ge=0)
    asset: str | None = None
    value: Annotated[StrictInt, Field(ge=0)] | None = None
    script: str = ""
    # Opaque witness utxo handed to the PSET container as-is
    prevout: Any = None
    unblind_data: dict[str, Any] | None = None

    model_config = {"frozen": True}

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        return validate_hex(v, HASH_LENGTH, "txid")

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_hex(v, HASH_LENGTH, "asset")

    @field_validator("script")
    @classmethod
    def validate_script(cls, v: str) -> str:
        return validate_hex(v, name="script")

    @property
    def is_blinded(self) -> bool:
        return self.asset is None or self.value is None

    @property
    def outpoint(self) -> tuple[str, int]:
        return (self.txid, self.vout)

    def to_str(self) -> str:
        return f"{self.txid}:{self.vout}"


class Recipient(BaseModel):
    """
    A desired output.

    The destination is an address, a raw script in hex, or both (the script
    wins). An empty script is only meaningful for the fee output.
    """

    asset: str
    value: StrictInt = Field(..., gt=0)
    address: str = ""
    script: str | None = None
    blinding_pubkey: str | None = None

    model_config = {"frozen": True}

    @field_validator("asset")
    @classmethod
    def validate_asset(cls, v: str) -> str:
        return validate_hex(v, HASH_LENGTH, "asset")

    @field_validator("script")
    @classmethod
    def validate_script(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_hex(v, name="script")

    @field_validator("blinding_pubkey")
    @classmethod
    def validate_blinding_pubkey(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_hex(v, BLINDING_PUBKEY_LENGTH, "blinding_pubkey")

    @model_validator(mode="after")
    def check_destination(self) -> Recipient:
        if not self.address and self.script is None:
            raise ValueError("recipient needs an address or a script")
        return self


class OutputShape(BaseModel):
    """What the size estimator needs to know about an output."""

    script_length: int = Field(..., ge=0)
    is_confidential: bool = False

    model_config = {"frozen": True}
