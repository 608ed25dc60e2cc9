"""
Greedy per-asset coin selection and change computation.

Each asset is selected independently: coins of that asset are sorted (by
default smallest first, which consolidates dust) and accumulated until they
cover the requirement. What happens when they do not is decided by a
shortfall handler, so the same loop serves callers that must fail hard and
callers that want to spend whatever is available.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from loguru import logger

from lqcore.ledger import group_by_asset, sum_by_asset
from lqcore.models import Coin, Recipient
from lqwallet.errors import BalanceInvariantViolation, InsufficientFunds, MissingChangeDestination

T = TypeVar("T")

# (asset, need, has) -> None; raise to abort selection
ShortfallHandler = Callable[[str, int, int], None]

# asset -> change address (str), change script (bytes) or None if unknown
ChangeAddressGetter = Callable[[str], "str | bytes | None"]

CompareCoinsFn = Callable[[Coin, Coin], int]


@dataclass
class Shortfall:
    """An asset the pool could not cover"""

    asset: str
    need: int
    has: int


@dataclass
class CoinSelectionResult:
    """Result of coin selection"""

    selected_coins: list[Coin]
    change_outputs: list[Recipient]
    # Shortfalls the handler accepted instead of raising
    shortfalls: dict[str, Shortfall] = field(default_factory=dict)


class CoinSelector(Protocol):
    def __call__(
        self,
        coins: Sequence[Coin],
        recipients: Sequence[Recipient],
        change_address_getter: ChangeAddressGetter,
        shortfall_handler: ShortfallHandler = ...,
    ) -> CoinSelectionResult: ...


def throw_error_handler(asset: str, need: int, has: int) -> None:
    """Default shortfall handler."""
    raise InsufficientFunds(asset, need, has)


class ShortfallRecorder:
    """
    Shortfall handler that remembers what was available instead of raising.

    Only assets in ``assets`` are recorded; shortfalls of any other asset go
    to ``fallback`` (raising by default).
    """

    def __init__(
        self,
        assets: Iterable[str] | None = None,
        fallback: ShortfallHandler = throw_error_handler,
    ):
        self.assets = set(assets) if assets is not None else None
        self.fallback = fallback
        self.shortfalls: dict[str, Shortfall] = {}

    def __call__(self, asset: str, need: int, has: int) -> None:
        if self.assets is not None and asset not in self.assets:
            self.fallback(asset, need, has)
            return
        logger.debug(f"Accepting shortfall for {asset[:16]}...: need {need}, have {has}")
        self.shortfalls[asset] = Shortfall(asset=asset, need=need, has=has)


def smallest_first(a: Coin, b: Coin) -> int:
    return (a.value or 0) - (b.value or 0)


def largest_first(a: Coin, b: Coin) -> int:
    return (b.value or 0) - (a.value or 0)


def accumulate(
    items: Iterable[T],
    target: int,
    key: Callable[[T], Any],
    amount: Callable[[T], int],
) -> tuple[list[T], int]:
    """
    Sort items and take them in order until their amounts reach target.

    Returns:
        (taken items, their total); the total is below target only if the
        items ran out
    """
    taken: list[T] = []
    total = 0
    for item in sorted(items, key=key):
        if total >= target:
            break
        taken.append(item)
        total += amount(item)
    return taken, total


def reduce_recipients(recipients: Iterable[Recipient]) -> dict[str, int]:
    """Required amount per asset, in first-seen asset order."""
    return sum_by_asset(recipients)


def spendable(coins: Iterable[Coin]) -> list[Coin]:
    """Coins whose asset and value are known."""
    result = []
    for coin in coins:
        if coin.is_blinded:
            logger.debug(f"Skipping blinded coin {coin.to_str()}")
            continue
        result.append(coin)
    return result


def select_coins(
    coins: Sequence[Coin],
    required: Mapping[str, int],
    compare: CompareCoinsFn = smallest_first,
    shortfall_handler: ShortfallHandler = throw_error_handler,
) -> list[Coin]:
    """
    Select coins covering each required asset amount.

    Args:
        coins: Coin pool
        required: Amount needed per asset
        compare: Ordering of coins within an asset
        shortfall_handler: Called with (asset, need, has) when an asset
            cannot be covered; coins taken so far stay selected

    Returns:
        Selected coins, grouped by asset in the order of ``required``
    """
    by_asset = group_by_asset(spendable(coins))
    key = functools.cmp_to_key(compare)
    selected: list[Coin] = []

    for asset, need in required.items():
        taken, has = accumulate(by_asset.get(asset, []), need, key, lambda c: c.value or 0)
        logger.debug(f"Asset {asset[:16]}...: need {need}, selected {len(taken)} coins ({has})")
        selected.extend(taken)
        if has < need:
            shortfall_handler(asset, need, has)

    return selected


def make_change(
    selected: Sequence[Coin],
    required: Mapping[str, int],
    change_address_getter: ChangeAddressGetter,
) -> list[Recipient]:
    """
    Change outputs returning the excess of ``selected`` over ``required``.

    Raises:
        MissingChangeDestination: If change is owed for an asset and the
            getter has no destination for it
        BalanceInvariantViolation: If an asset was under-selected
    """
    totals = sum_by_asset(selected)
    changes: list[Recipient] = []

    for asset, need in required.items():
        diff = totals.get(asset, 0) - need
        if diff < 0:
            raise BalanceInvariantViolation(asset, totals.get(asset, 0), need)
        if diff == 0:
            continue

        destination = change_address_getter(asset)
        if not destination:
            raise MissingChangeDestination(asset)

        if isinstance(destination, bytes):
            changes.append(Recipient(asset=asset, value=diff, script=destination.hex()))
        else:
            changes.append(Recipient(asset=asset, value=diff, address=destination))

    return changes


class GreedyCoinSelector:
    """
    Greedy coin selector with a pluggable coin ordering.

    Calling the selector runs selection then change computation:

        selector = GreedyCoinSelector(largest_first)
        result = selector(coins, recipients, lambda asset: change_address)
    """

    def __init__(self, compare: CompareCoinsFn = smallest_first):
        self.compare = compare

    def __call__(
        self,
        coins: Sequence[Coin],
        recipients: Sequence[Recipient],
        change_address_getter: ChangeAddressGetter,
        shortfall_handler: ShortfallHandler = throw_error_handler,
    ) -> CoinSelectionResult:
        required = reduce_recipients(recipients)
        accepted: dict[str, Shortfall] = {}

        def on_shortfall(asset: str, need: int, has: int) -> None:
            shortfall_handler(asset, need, has)
            accepted[asset] = Shortfall(asset=asset, need=need, has=has)

        selected = select_coins(coins, required, self.compare, on_shortfall)

        # An accepted shortfall spends everything there is, so no change
        change_required = dict(required)
        for asset, shortfall in accepted.items():
            change_required[asset] = shortfall.has

        change = make_change(selected, change_required, change_address_getter)

        return CoinSelectionResult(
            selected_coins=selected, change_outputs=change, shortfalls=accepted
        )


def greedy_coin_selector(compare: CompareCoinsFn = smallest_first) -> GreedyCoinSelector:
    return GreedyCoinSelector(compare)
