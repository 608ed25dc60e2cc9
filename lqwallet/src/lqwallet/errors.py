"""
Errors raised while building a transaction.

None of these are retried internally. Retrying with another coin ordering or
a bigger coin pool is up to the caller.
"""

from __future__ import annotations


class TransactionBuildError(Exception):
    """Base class for transaction construction failures"""

    pass


class InvalidArguments(TransactionBuildError, ValueError):
    """Raised before any selection work when the request itself is unusable"""

    pass


class InsufficientFunds(TransactionBuildError):
    """Raised when the coin pool cannot cover the amount required for an asset"""

    def __init__(self, asset: str, need: int, has: int):
        self.asset = asset
        self.need = need
        self.has = has
        super().__init__(f"Not enough funds for asset {asset}: need {need}, have {has}")


class MissingChangeDestination(TransactionBuildError):
    """Raised when change is owed for an asset but no destination is known"""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"No change address for asset {asset}")


class BalanceInvariantViolation(TransactionBuildError):
    """Raised when inputs and outputs of an asset do not sum to the same value"""

    def __init__(self, asset: str, inputs: int, outputs: int):
        self.asset = asset
        self.inputs = inputs
        self.outputs = outputs
        super().__init__(
            f"Unbalanced asset {asset}: inputs sum to {inputs}, outputs sum to {outputs}"
        )


class FeeEstimationError(TransactionBuildError):
    """Raised when fee selection ends without a plan and without a shortfall error"""

    pass
