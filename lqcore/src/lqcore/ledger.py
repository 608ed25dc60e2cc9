"""
Asset amount ledger.

Grouping and summation helpers over anything carrying an ``asset`` and a
``value`` (coins, recipients, planned outputs, AssetAmount).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar

from lqcore.constants import EXPLICIT_PREFIX, HASH_LENGTH
from lqcore.models import AssetAmount, Coin, validate_hex


class HasAssetValue(Protocol):
    asset: Any
    value: Any


T = TypeVar("T")


def group_by(items: Iterable[T], key: Callable[[T], str]) -> dict[str, list[T]]:
    """Group items by key, preserving first-seen key order."""
    groups: dict[str, list[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return dict(groups)


def group_by_asset(items: Iterable[T]) -> dict[str, list[T]]:
    return group_by(items, lambda item: item.asset)  # type: ignore[attr-defined]


def sum_values(items: Iterable[HasAssetValue]) -> int:
    """Sum values, counting unknown (blinded) values as zero."""
    return sum(item.value for item in items if item.value is not None)


def sum_by_asset(items: Iterable[HasAssetValue]) -> dict[str, int]:
    """
    Total value per asset.

    Items with an unknown asset are skipped.
    """
    totals: dict[str, int] = {}
    for item in items:
        if item.asset is None:
            continue
        totals[item.asset] = totals.get(item.asset, 0) + (item.value or 0)
    return totals


def balances(coins: Iterable[Coin]) -> dict[str, int]:
    """Spendable balance per asset, ignoring coins that are still blinded."""
    return sum_by_asset(coin for coin in coins if not coin.is_blinded)


def to_asset_amounts(totals: dict[str, int]) -> list[AssetAmount]:
    return [AssetAmount(asset=asset, value=value) for asset, value in totals.items()]


def is_valid_amount(amount: Any) -> bool:
    """A payable amount is a strictly positive int (bools excluded)."""
    return isinstance(amount, int) and not isinstance(amount, bool) and amount > 0


def is_blinded(coin: Coin) -> bool:
    return coin.is_blinded


def to_outpoint(coin: Coin) -> tuple[str, int]:
    return coin.outpoint


def from_asset_hash(asset: str) -> bytes:
    """
    Encode an asset id as an explicit 33-byte asset tag.

    The tag is the explicit prefix followed by the id in internal (reversed)
    byte order.
    """
    asset = validate_hex(asset, HASH_LENGTH, "asset")
    return bytes([EXPLICIT_PREFIX]) + bytes.fromhex(asset)[::-1]


def to_asset_hash(tag: bytes) -> str:
    """Decode an explicit 33-byte asset tag back to the asset id."""
    if len(tag) != HASH_LENGTH + 1 or tag[0] != EXPLICIT_PREFIX:
        raise ValueError(f"Not an explicit asset tag: {tag.hex()}")
    return tag[1:][::-1].hex()
