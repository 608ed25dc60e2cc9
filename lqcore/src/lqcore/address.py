"""
Liquid address to scriptPubKey decoding.

Supports:
- Unconfidential segwit (ex1..., tex1..., ert1...)
- Base58 P2PKH / P2SH (Liquid version bytes)
- Base58 confidential addresses (blinding pubkey + P2PKH / P2SH)
- Blech32 confidential segwit (lq1..., tlq1..., el1...), checked by lwk
"""

from __future__ import annotations

from typing import Protocol

from lqcore.constants import BLINDING_PUBKEY_LENGTH
from lqcore.models import NetworkParams, NetworkType, get_network_params

# Blech32 uses a 12 character checksum instead of bech32's 6
BLECH32_CHECKSUM_LENGTH = 12


class InvalidAddress(ValueError):
    """Raised when an address cannot be turned into a script."""

    pass


class AddressCodec(Protocol):
    def script_from_address(self, address: str) -> bytes: ...

    def blinding_pubkey(self, address: str) -> bytes | None: ...

    def is_confidential(self, address: str) -> bool: ...


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    # OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
    return bytes([0x76, 0xA9, 0x14]) + pubkey_hash + bytes([0x88, 0xAC])


def p2sh_script(script_hash: bytes) -> bytes:
    # OP_HASH160 <20-byte-scripthash> OP_EQUAL
    return bytes([0xA9, 0x14]) + script_hash + bytes([0x87])


def segwit_script(witver: int, witprog: bytes) -> bytes:
    if witver == 0 and len(witprog) in (20, 32):
        # OP_0 <20-byte-pubkeyhash> or OP_0 <32-byte-scripthash>
        return bytes([0x00, len(witprog)]) + witprog
    if witver == 1 and len(witprog) == 32:
        # OP_1 <32-byte-pubkey>
        return bytes([0x51, 0x20]) + witprog
    raise InvalidAddress(f"Unsupported witness program: v{witver}, {len(witprog)} bytes")


class LiquidAddressCodec:
    """Address codec for one Liquid network."""

    def __init__(self, network: NetworkType | str = NetworkType.LIQUID):
        self.params: NetworkParams = get_network_params(network)

    def _is_segwit(self, address: str) -> bool:
        return address.lower().startswith(self.params.bech32_hrp + "1")

    def _is_blech32(self, address: str) -> bool:
        return address.lower().startswith(self.params.blech32_hrp + "1")

    def _decode_blech32(self, address: str) -> tuple[bytes, bytes]:
        """Return (script_pubkey, blinding_pubkey)."""
        import bech32
        from lwk import Address, LwkError

        try:
            parsed = Address(address)
        except LwkError as e:
            raise InvalidAddress(f"Invalid blech32 address: {address}") from e
        if not parsed.is_blinded():
            raise InvalidAddress(f"Blech32 address without a blinding key: {address}")
        script = bytes.fromhex(str(parsed.script_pubkey()))

        # Data part: witness version, then blinding pubkey || witness program
        data_part = address.lower()[address.rfind("1") + 1 : -BLECH32_CHECKSUM_LENGTH]
        data = [bech32.CHARSET.find(c) for c in data_part]
        payload = bech32.convertbits(data[1:], 5, 8, False)
        if payload is None or len(payload) <= BLINDING_PUBKEY_LENGTH:
            raise InvalidAddress(f"Invalid blech32 payload: {address}")
        return script, bytes(payload[:BLINDING_PUBKEY_LENGTH])

    def _decode_base58(self, address: str) -> tuple[int | None, int, bytes, bytes | None]:
        """Return (confidential_prefix, version, hash, blinding_pubkey)."""
        import base58

        try:
            decoded = base58.b58decode_check(address)
        except ValueError as e:
            raise InvalidAddress(f"Invalid base58 address: {address}") from e

        if len(decoded) == 21:
            return None, decoded[0], decoded[1:], None

        if len(decoded) == 2 + BLINDING_PUBKEY_LENGTH + 20:
            prefix = decoded[0]
            if prefix != self.params.confidential_prefix:
                raise InvalidAddress(f"Unknown confidential prefix {prefix}: {address}")
            pubkey = decoded[2 : 2 + BLINDING_PUBKEY_LENGTH]
            return prefix, decoded[1], decoded[2 + BLINDING_PUBKEY_LENGTH :], pubkey

        raise InvalidAddress(f"Unexpected base58 payload length {len(decoded)}: {address}")

    def script_from_address(self, address: str) -> bytes:
        if not address:
            raise InvalidAddress("Empty address")

        if self._is_blech32(address):
            script, _ = self._decode_blech32(address)
            return script

        if self._is_segwit(address):
            import bech32

            witver, witprog = bech32.decode(self.params.bech32_hrp, address.lower())
            if witver is None or witprog is None:
                raise InvalidAddress(f"Invalid bech32 address: {address}")
            return segwit_script(witver, bytes(witprog))

        _, version, payload, _ = self._decode_base58(address)
        if version == self.params.pubkey_hash_version:
            return p2pkh_script(payload)
        if version == self.params.script_hash_version:
            return p2sh_script(payload)
        raise InvalidAddress(f"Unknown address version {version}: {address}")

    def blinding_pubkey(self, address: str) -> bytes | None:
        if self._is_blech32(address):
            _, pubkey = self._decode_blech32(address)
            return pubkey
        if self._is_segwit(address):
            return None
        _, _, _, pubkey = self._decode_base58(address)
        return pubkey

    def is_confidential(self, address: str) -> bool:
        if self._is_blech32(address):
            return True
        if self._is_segwit(address):
            return False
        prefix, _, _, _ = self._decode_base58(address)
        return prefix is not None


def encode_base58_address(
    version: int, payload: bytes, blinding_pubkey: bytes | None = None, prefix: int | None = None
) -> str:
    """
    Encode a base58 (optionally confidential) address.

    Used to produce change and test addresses from known hashes.
    """
    import base58

    if blinding_pubkey is None:
        return base58.b58encode_check(bytes([version]) + payload).decode()
    if prefix is None:
        raise ValueError("Confidential addresses need a prefix")
    return base58.b58encode_check(bytes([prefix, version]) + blinding_pubkey + payload).decode()
