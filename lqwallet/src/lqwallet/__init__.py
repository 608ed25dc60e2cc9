"""
lqwallet - Coin selection and unsigned transaction building for Liquid

Selects coins per asset, computes change, estimates confidential transaction
fees and writes balanced inputs and outputs to a PSET ready for blinding.
"""

__version__ = "0.3.0"

from lqwallet.coinselection import (
    CoinSelectionResult,
    CoinSelector,
    GreedyCoinSelector,
    ShortfallRecorder,
    greedy_coin_selector,
    largest_first,
    make_change,
    select_coins,
    smallest_first,
    throw_error_handler,
)
from lqwallet.errors import (
    BalanceInvariantViolation,
    FeeEstimationError,
    InsufficientFunds,
    InvalidArguments,
    MissingChangeDestination,
    TransactionBuildError,
)
from lqwallet.fees import estimate_fee, estimate_size, fee_for
from lqwallet.pset import PsetContainer, PsetDraft
from lqwallet.tx_builder import (
    OutputKind,
    PlannedOutput,
    TxBuildResult,
    build_tx,
    craft_single_recipient_pset,
)
from lqwallet.verification import check_coin_selection, verify_balance
from lqwallet.wallet import Wallet, wallet_from_coins

__all__ = [
    "BalanceInvariantViolation",
    "CoinSelectionResult",
    "CoinSelector",
    "FeeEstimationError",
    "GreedyCoinSelector",
    "InsufficientFunds",
    "InvalidArguments",
    "MissingChangeDestination",
    "OutputKind",
    "PlannedOutput",
    "PsetContainer",
    "PsetDraft",
    "ShortfallRecorder",
    "TransactionBuildError",
    "TxBuildResult",
    "Wallet",
    "build_tx",
    "check_coin_selection",
    "craft_single_recipient_pset",
    "estimate_fee",
    "estimate_size",
    "fee_for",
    "greedy_coin_selector",
    "largest_first",
    "make_change",
    "select_coins",
    "smallest_first",
    "throw_error_handler",
    "verify_balance",
    "wallet_from_coins",
]
