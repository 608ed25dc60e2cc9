"""
Balance verification for constructed transactions.

This is the last check before anything is written to the PSET. A transaction
whose inputs and outputs do not balance per asset either burns funds or is
invalid, and either way points to a bug in selection or fee handling, so any
mismatch aborts construction.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from loguru import logger

from lqcore.ledger import HasAssetValue, sum_by_asset
from lqwallet.errors import BalanceInvariantViolation


def verify_balance(outputs: Iterable[HasAssetValue], inputs: Iterable[HasAssetValue]) -> None:
    """
    Check that every asset balances exactly.

    Args:
        outputs: Outputs, fee output included
        inputs: Spent coins

    Raises:
        BalanceInvariantViolation: On the first asset that does not balance
    """
    out_totals = sum_by_asset(outputs)
    in_totals = sum_by_asset(inputs)

    for asset, total_in in in_totals.items():
        total_out = out_totals.get(asset)
        if total_out is None:
            logger.error(f"Asset {asset} is spent but never paid out")
            raise BalanceInvariantViolation(asset, total_in, 0)
        if total_in != total_out:
            logger.error(f"Asset {asset} unbalanced: in={total_in} out={total_out}")
            raise BalanceInvariantViolation(asset, total_in, total_out)

    for asset, total_out in out_totals.items():
        if asset not in in_totals:
            logger.error(f"Asset {asset} is paid out but never spent")
            raise BalanceInvariantViolation(asset, 0, total_out)


def check_coin_selection(
    outputs: Sequence[HasAssetValue],
) -> Callable[[Sequence[HasAssetValue]], None]:
    """Curried verify_balance: check_coin_selection(outputs)(coins)."""

    def check(coins: Sequence[HasAssetValue]) -> None:
        verify_balance(outputs, coins)

    return check
