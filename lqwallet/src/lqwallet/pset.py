"""
Unsigned transaction container.

The transaction builder only needs a container it can append inputs and
outputs to and read back from, so the real PSET encoder stays behind the
PsetContainer protocol. PsetDraft is the in-memory implementation used by the
wallet and the CLI; its document can be handed to the blinding and signing
tools.
"""

from __future__ import annotations

import base64
import json
import struct
from dataclasses import dataclass, field
from typing import Any, Protocol

from lqcore.constants import EXPLICIT_PREFIX
from lqcore.ledger import from_asset_hash, to_asset_hash
from lqcore.models import OutputShape

# Unblinded outputs have an empty (single zero byte) nonce
EMPTY_NONCE = b"\x00"


def explicit_value(value: int) -> bytes:
    """Encode an amount as a 9-byte explicit confidential value."""
    if value < 0:
        raise ValueError(f"Negative value: {value}")
    return bytes([EXPLICIT_PREFIX]) + struct.pack(">Q", value)


def value_from_explicit(data: bytes) -> int:
    if len(data) != 9 or data[0] != EXPLICIT_PREFIX:
        raise ValueError(f"Not an explicit value: {data.hex()}")
    return struct.unpack(">Q", data[1:])[0]


@dataclass
class PsetInput:
    txid: str
    vout: int
    witness_utxo: Any = None


@dataclass
class PsetOutput:
    asset: bytes
    value: bytes
    script: bytes
    nonce: bytes = EMPTY_NONCE
    blinding_pubkey: bytes | None = None

    @property
    def is_confidential(self) -> bool:
        return self.blinding_pubkey is not None

    @property
    def shape(self) -> OutputShape:
        return OutputShape(script_length=len(self.script), is_confidential=self.is_confidential)


class PsetContainer(Protocol):
    @property
    def inputs(self) -> list[Any]: ...

    @property
    def outputs(self) -> list[Any]: ...

    def add_input(self, txid: str, vout: int, witness_utxo: Any = None) -> None: ...

    def add_output(
        self,
        asset: bytes,
        value: bytes,
        script: bytes,
        nonce: bytes = EMPTY_NONCE,
        blinding_pubkey: bytes | None = None,
    ) -> None: ...

    def output_shapes(self) -> list[OutputShape]: ...


@dataclass
class PsetDraft:
    """In-memory unsigned transaction."""

    version: int = 2
    locktime: int = 0
    inputs: list[PsetInput] = field(default_factory=list)
    outputs: list[PsetOutput] = field(default_factory=list)

    def add_input(self, txid: str, vout: int, witness_utxo: Any = None) -> None:
        self.inputs.append(PsetInput(txid=txid, vout=vout, witness_utxo=witness_utxo))

    def add_output(
        self,
        asset: bytes,
        value: bytes,
        script: bytes,
        nonce: bytes = EMPTY_NONCE,
        blinding_pubkey: bytes | None = None,
    ) -> None:
        self.outputs.append(
            PsetOutput(
                asset=asset,
                value=value,
                script=script,
                nonce=nonce,
                blinding_pubkey=blinding_pubkey,
            )
        )

    def output_shapes(self) -> list[OutputShape]:
        return [out.shape for out in self.outputs]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "locktime": self.locktime,
            "inputs": [
                {"txid": inp.txid, "vout": inp.vout, "witness_utxo": inp.witness_utxo}
                for inp in self.inputs
            ],
            "outputs": [
                {
                    "asset": to_asset_hash(out.asset),
                    "value": value_from_explicit(out.value),
                    "script": out.script.hex(),
                    "nonce": out.nonce.hex(),
                    "blinding_pubkey": out.blinding_pubkey.hex() if out.blinding_pubkey else None,
                }
                for out in self.outputs
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PsetDraft:
        pset = cls(version=data.get("version", 2), locktime=data.get("locktime", 0))
        for inp in data.get("inputs", []):
            pset.add_input(inp["txid"], inp["vout"], inp.get("witness_utxo"))
        for out in data.get("outputs", []):
            pubkey = out.get("blinding_pubkey")
            pset.add_output(
                asset=from_asset_hash(out["asset"]),
                value=explicit_value(out["value"]),
                script=bytes.fromhex(out["script"]),
                nonce=bytes.fromhex(out.get("nonce", EMPTY_NONCE.hex())),
                blinding_pubkey=bytes.fromhex(pubkey) if pubkey else None,
            )
        return pset

    def to_base64(self) -> str:
        return base64.b64encode(json.dumps(self.to_dict()).encode("utf-8")).decode("ascii")

    @classmethod
    def from_base64(cls, data: str) -> PsetDraft:
        return cls.from_dict(json.loads(base64.b64decode(data)))
