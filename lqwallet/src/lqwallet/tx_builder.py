"""
Transaction builder for Liquid transactions.

Builds the unsigned transaction from:
- A pool of unblinded coins
- Recipients, possibly paying several assets
- A change address per asset
- Optionally a fee rate, in which case an explicit fee output is added

The fee depends on the number of inputs and outputs, which depends on the
change, which may depend on the fee. This is resolved in a bounded number
of selection passes:

1. Select coins for the recipients, compute change.
2. Estimate the fee. If the policy asset change covers it, take the fee out
   of the change. Otherwise select extra coins for the missing part,
   re-estimating with the extra inputs, and return what is left as change.
3. If the extra selection keeps growing, price the fee for every remaining
   fee asset coin and select once more. That pass either settles or proves
   the fee asset short.

Outputs are written to the PSET as recipients, then change, then the fee.
"""

from __future__ import annotations

import functools
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from loguru import logger

from lqcore.address import AddressCodec, LiquidAddressCodec
from lqcore.constants import DEFAULT_SATS_PER_BYTE, HASH_LENGTH, MIN_SATS_PER_BYTE
from lqcore.ledger import from_asset_hash, is_valid_amount, sum_values
from lqcore.models import (
    Coin,
    NetworkType,
    OutputShape,
    Recipient,
    get_network_params,
    validate_hex,
)
from lqwallet.coinselection import (
    ChangeAddressGetter,
    CoinSelectionResult,
    CoinSelector,
    ShortfallHandler,
    ShortfallRecorder,
    make_change,
    spendable,
    throw_error_handler,
)
from lqwallet.errors import FeeEstimationError, InsufficientFunds, InvalidArguments
from lqwallet.fees import check_fee_rate, estimate_fee, make_fee_output
from lqwallet.pset import EMPTY_NONCE, PsetContainer, PsetDraft, explicit_value
from lqwallet.verification import check_coin_selection

# Extra-coin selection passes for the fee before pricing it for every
# remaining fee asset coin
MAX_FEE_PASSES = 2

# Shape assumed for a policy asset change output whose destination is unknown
# (confidential P2WPKH, the heaviest common case)
DEFAULT_CHANGE_SHAPE = OutputShape(script_length=22, is_confidential=True)


class OutputKind(str, Enum):
    RECIPIENT = "recipient"
    CHANGE = "change"
    FEE = "fee"


@dataclass
class PlannedOutput:
    """An output as it will be written to the PSET."""

    asset: str
    value: int
    script: bytes
    kind: OutputKind
    blinding_pubkey: bytes | None = None

    @property
    def is_confidential(self) -> bool:
        return self.blinding_pubkey is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset": self.asset,
            "value": self.value,
            "script": self.script.hex(),
            "kind": self.kind.value,
            "confidential": self.is_confidential,
        }


@dataclass
class TxBuildResult:
    """
    Result of building a transaction.

    ``recipients`` is the recipient list the transaction actually pays. It
    differs from the caller's list only when the fee was subtracted from the
    recipient.
    """

    pset: PsetContainer
    selected_coins: list[Coin]
    outputs: list[PlannedOutput]
    recipients: list[Recipient]
    fee: int = 0
    # Indices into the PSET outputs that the blinding step must blind
    confidential_output_indices: list[int] = field(default_factory=list)

    @property
    def change_outputs(self) -> list[PlannedOutput]:
        return [out for out in self.outputs if out.kind == OutputKind.CHANGE]

    @property
    def fee_output(self) -> PlannedOutput | None:
        for out in self.outputs:
            if out.kind == OutputKind.FEE:
                return out
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "inputs": [coin.to_str() for coin in self.selected_coins],
            "outputs": [out.to_dict() for out in self.outputs],
            "fee": self.fee,
            "recipients": [r.model_dump(exclude_none=True) for r in self.recipients],
            "confidential_output_indices": self.confidential_output_indices,
        }
        if isinstance(self.pset, PsetDraft):
            result["pset"] = self.pset.to_base64()
        return result


class OutputResolver:
    """Turns recipients into scripts and blinding keys, decoding each address once."""

    def __init__(self, codec: AddressCodec):
        self.codec = codec
        self._cache: dict[str, tuple[bytes, bytes | None]] = {}

    def _decode(self, address: str) -> tuple[bytes, bytes | None]:
        if address not in self._cache:
            script = self.codec.script_from_address(address)
            pubkey = self.codec.blinding_pubkey(address)
            self._cache[address] = (script, pubkey)
        return self._cache[address]

    def resolve(self, recipient: Recipient, kind: OutputKind) -> PlannedOutput:
        pubkey = bytes.fromhex(recipient.blinding_pubkey) if recipient.blinding_pubkey else None

        if recipient.script is not None:
            script = bytes.fromhex(recipient.script)
            if pubkey is None and recipient.address:
                _, pubkey = self._decode(recipient.address)
        else:
            script, address_pubkey = self._decode(recipient.address)
            pubkey = pubkey or address_pubkey

        return PlannedOutput(
            asset=recipient.asset,
            value=recipient.value,
            script=script,
            kind=kind,
            blinding_pubkey=pubkey,
        )

    def shape(self, recipient: Recipient) -> OutputShape:
        out = self.resolve(recipient, OutputKind.RECIPIENT)
        return OutputShape(script_length=len(out.script), is_confidential=out.is_confidential)


@dataclass
class FeePlan:
    selected_coins: list[Coin]
    change_outputs: list[Recipient]
    fee: int


def validate_build_args(
    coins: Sequence[Coin],
    recipients: Sequence[Recipient],
    add_fee: bool,
    sats_per_byte: float | Decimal | str,
) -> None:
    """
    Reject unusable requests before any selection work.

    Raises:
        InvalidArguments: On empty recipients or coins, a bad amount or a
            fee rate below the minimum
    """
    if not recipients:
        raise InvalidArguments("need at least one recipient output to build the transaction")

    if not coins:
        raise InvalidArguments("need at least one unspent to fund the transaction")

    for recipient in recipients:
        if not is_valid_amount(recipient.value):
            raise InvalidArguments(f"invalid recipient amount: {recipient.value!r}")

    if add_fee:
        try:
            rate_ok = check_fee_rate(sats_per_byte)
        except InvalidOperation as e:
            raise InvalidArguments(f"invalid fee rate: {sats_per_byte!r}") from e
        if not rate_ok:
            raise InvalidArguments(f"satsPerByte minimum value is {MIN_SATS_PER_BYTE}")


def _fee_asset_change(change: Sequence[Recipient], fee_asset: str) -> Recipient | None:
    for out in change:
        if out.asset == fee_asset:
            return out
    return None


def _change_shape(
    resolver: OutputResolver, change_address_getter: ChangeAddressGetter, fee_asset: str
) -> OutputShape:
    destination = change_address_getter(fee_asset)
    if not destination:
        return DEFAULT_CHANGE_SHAPE
    if isinstance(destination, bytes):
        return OutputShape(script_length=len(destination), is_confidential=False)
    return resolver.shape(Recipient(asset=fee_asset, value=1, address=destination))


def settle_fee(
    pset: PsetContainer,
    coins: Sequence[Coin],
    recipients: Sequence[Recipient],
    first: CoinSelectionResult,
    coin_selector: CoinSelector,
    change_address_getter: ChangeAddressGetter,
    resolver: OutputResolver,
    fee_asset: str,
    sats_per_byte: float | Decimal | str,
    shortfall_handler: ShortfallHandler = throw_error_handler,
) -> FeePlan | None:
    """
    Pay the fee out of the first selection, selecting extra coins if needed.

    Returns:
        The fee plan, or None if the extra selection fell short and the
        shortfall handler accepted it instead of raising
    """
    existing_inputs = len(pset.inputs)
    existing_shapes = pset.output_shapes()
    recipient_shapes = [resolver.shape(r) for r in recipients]

    def shapes_for(
        change: Sequence[Recipient], extra: Sequence[OutputShape] = ()
    ) -> list[OutputShape]:
        change_shapes = [resolver.shape(c) for c in change]
        return existing_shapes + recipient_shapes + change_shapes + list(extra)

    selected = list(first.selected_coins)
    change = list(first.change_outputs)

    fee = estimate_fee(existing_inputs + len(selected), shapes_for(change), sats_per_byte)
    fee_change = _fee_asset_change(change, fee_asset)

    if fee_change is not None and fee_change.value >= fee:
        # Absorb the fee into the change; change equal to the fee is dropped
        adjusted = []
        for out in change:
            if out is fee_change:
                if out.value > fee:
                    adjusted.append(out.model_copy(update={"value": out.value - fee}))
                continue
            adjusted.append(out)
        logger.debug(f"Fee {fee} taken from change of {fee_change.value}")
        return FeePlan(selected_coins=selected, change_outputs=adjusted, fee=fee)

    # The existing policy asset change (if any) goes to the fee, the rest comes
    # from coins not selected yet
    folded = fee_change.value if fee_change is not None else 0
    other_change = [out for out in change if out is not fee_change]
    used = {coin.outpoint for coin in selected}
    unused = [coin for coin in coins if coin.outpoint not in used]
    unused_fee_coins = sum(1 for coin in spendable(unused) if coin.asset == fee_asset)
    new_change_shape = _change_shape(resolver, change_address_getter, fee_asset)
    base_inputs = existing_inputs + len(selected)

    def fee_with(extra_inputs: int) -> int:
        return estimate_fee(
            base_inputs + extra_inputs,
            shapes_for(other_change, [new_change_shape]),
            sats_per_byte,
        )

    def select_extra(extra_inputs: int) -> CoinSelectionResult:
        target = fee_with(extra_inputs) - folded
        logger.debug(
            f"Fee pass assuming {extra_inputs} extra inputs: "
            f"need {target} more of {fee_asset[:16]}..."
        )
        return coin_selector(
            unused,
            [Recipient(asset=fee_asset, value=target, script="")],
            change_address_getter,
            shortfall_handler,
        )

    def plan_for(extra: CoinSelectionResult) -> FeePlan:
        # Price the fee for the inputs actually taken
        fee = fee_with(len(extra.selected_coins))
        extra_change = make_change(
            extra.selected_coins, {fee_asset: fee - folded}, change_address_getter
        )
        return FeePlan(
            selected_coins=selected + extra.selected_coins,
            change_outputs=other_change + extra_change,
            fee=fee,
        )

    extra_inputs = 1
    for _ in range(MAX_FEE_PASSES):
        extra = select_extra(extra_inputs)
        if extra.shortfalls:
            return None
        if len(extra.selected_coins) <= extra_inputs:
            return plan_for(extra)
        extra_inputs = len(extra.selected_coins)

    # Still growing: price the fee as if every unused fee asset coin were
    # spent. Either the pool covers that or it cannot pay the fee at all.
    logger.debug(f"Fee not settled after {MAX_FEE_PASSES} passes, using the upper bound")
    extra = select_extra(max(extra_inputs, unused_fee_coins))
    if extra.shortfalls:
        return None
    return plan_for(extra)


def subtract_fee_from_recipient(
    pset: PsetContainer,
    coins: Sequence[Coin],
    recipient: Recipient,
    coin_selector: CoinSelector,
    change_address_getter: ChangeAddressGetter,
    resolver: OutputResolver,
    fee_asset: str,
    sats_per_byte: float | Decimal | str,
) -> tuple[Recipient, FeePlan]:
    """
    Pay the fee normally if possible, otherwise out of the recipient amount.

    When the recipient plus the fee cannot be covered, every policy asset coin
    is spent, the fee is estimated for that, and the recipient receives the
    rest. The caller's recipient is not modified; the returned one is.
    """
    first = coin_selector(
        coins, [recipient], change_address_getter, ShortfallRecorder([fee_asset])
    )
    if fee_asset not in first.shortfalls:
        plan = settle_fee(
            pset,
            coins,
            [recipient],
            first,
            coin_selector,
            change_address_getter,
            resolver,
            fee_asset,
            sats_per_byte,
            shortfall_handler=ShortfallRecorder([fee_asset]),
        )
        if plan is not None:
            return recipient, plan

    fee_coins = [coin for coin in spendable(coins) if coin.asset == fee_asset]
    available = sum_values(fee_coins)
    fee = estimate_fee(
        len(pset.inputs) + len(fee_coins),
        pset.output_shapes() + [resolver.shape(recipient)],
        sats_per_byte,
    )
    if available - fee <= 0:
        raise InsufficientFunds(fee_asset, recipient.value + fee, available)

    updated = recipient.model_copy(update={"value": available - fee})
    logger.info(f"Subtracting fee {fee} from recipient: {recipient.value} -> {updated.value}")

    final = coin_selector(
        coins, [updated, make_fee_output(fee, fee_asset)], change_address_getter
    )
    return updated, FeePlan(
        selected_coins=final.selected_coins, change_outputs=final.change_outputs, fee=fee
    )


def _write_to_pset(
    pset: PsetContainer,
    selected: Sequence[Coin],
    outputs: Sequence[PlannedOutput],
    recipients: Sequence[Recipient],
    fee: int,
) -> TxBuildResult:
    # Never write an unbalanced transaction
    check_coin_selection(outputs)(selected)

    offset = len(pset.outputs)
    for out in outputs:
        pset.add_output(
            asset=from_asset_hash(out.asset),
            value=explicit_value(out.value),
            script=out.script,
            nonce=EMPTY_NONCE,
            blinding_pubkey=out.blinding_pubkey,
        )

    for coin in selected:
        pset.add_input(coin.txid, coin.vout, coin.prevout)

    confidential = [offset + i for i, out in enumerate(outputs) if out.is_confidential]

    logger.info(
        f"Built transaction: {len(selected)} inputs, {len(outputs)} outputs, "
        f"fee {fee}, {len(confidential)} outputs to blind"
    )

    return TxBuildResult(
        pset=pset,
        selected_coins=list(selected),
        outputs=list(outputs),
        recipients=list(recipients),
        fee=fee,
        confidential_output_indices=confidential,
    )


def build_tx(
    pset: PsetContainer,
    coins: Sequence[Coin],
    recipients: Sequence[Recipient],
    coin_selector: CoinSelector,
    change_address_getter: ChangeAddressGetter,
    *,
    add_fee: bool = False,
    sats_per_byte: float | Decimal | str = DEFAULT_SATS_PER_BYTE,
    network: NetworkType | str = NetworkType.LIQUID,
    fee_asset: str | None = None,
    subtract_fee: bool = False,
    address_codec: AddressCodec | None = None,
) -> TxBuildResult:
    """
    Select coins for the recipients and add inputs and outputs to the PSET.

    Args:
        pset: Container to extend; its existing inputs and outputs count
            toward the fee
        coins: Coin pool (not modified)
        recipients: Outputs to pay (not modified)
        coin_selector: Selection strategy, e.g. GreedyCoinSelector()
        change_address_getter: Change destination per asset, called at most
            once per asset
        add_fee: Add an explicit fee output paid in the policy asset
        sats_per_byte: Fee rate, at least 0.1
        network: Network whose policy asset pays the fee
        fee_asset: Override the fee asset
        subtract_fee: With a single policy asset recipient, reduce the
            recipient amount when recipient plus fee cannot be covered
        address_codec: Address decoder, defaults to the network's codec

    Returns:
        TxBuildResult with the selected coins, the outputs in PSET order and
        the recipients actually paid

    Raises:
        InvalidArguments: Bad request
        InsufficientFunds: An asset cannot be covered
        MissingChangeDestination: Change owed with no destination
        BalanceInvariantViolation: Internal error, nothing written
        FeeEstimationError: The coin selector accepted a fee shortfall
        InvalidAddress: A recipient or change address cannot be decoded
    """
    validate_build_args(coins, recipients, add_fee, sats_per_byte)

    params = get_network_params(network)
    if fee_asset is None:
        fee_asset = params.policy_asset
    else:
        try:
            fee_asset = validate_hex(fee_asset, HASH_LENGTH, "fee_asset")
        except ValueError as e:
            raise InvalidArguments(str(e)) from e
    resolver = OutputResolver(address_codec or LiquidAddressCodec(params.network))
    change_address_getter = functools.cache(change_address_getter)
    coins = list(coins)
    recipients = list(recipients)

    if not add_fee:
        first = coin_selector(coins, recipients, change_address_getter)
        outputs = [resolver.resolve(r, OutputKind.RECIPIENT) for r in recipients]
        outputs += [resolver.resolve(c, OutputKind.CHANGE) for c in first.change_outputs]
        return _write_to_pset(pset, first.selected_coins, outputs, recipients, fee=0)

    if subtract_fee and len(recipients) == 1 and recipients[0].asset == fee_asset:
        recipient, plan = subtract_fee_from_recipient(
            pset,
            coins,
            recipients[0],
            coin_selector,
            change_address_getter,
            resolver,
            fee_asset,
            sats_per_byte,
        )
        recipients = [recipient]
    else:
        if subtract_fee:
            logger.warning(
                "subtract_fee needs a single recipient paying the fee asset, ignoring it"
            )
        first = coin_selector(coins, recipients, change_address_getter)
        settled = settle_fee(
            pset,
            coins,
            recipients,
            first,
            coin_selector,
            change_address_getter,
            resolver,
            fee_asset,
            sats_per_byte,
        )
        if settled is None:
            raise FeeEstimationError("fee selection gave up without raising a shortfall")
        plan = settled

    outputs = [resolver.resolve(r, OutputKind.RECIPIENT) for r in recipients]
    outputs += [resolver.resolve(c, OutputKind.CHANGE) for c in plan.change_outputs]
    outputs.append(resolver.resolve(make_fee_output(plan.fee, fee_asset), OutputKind.FEE))

    return _write_to_pset(pset, plan.selected_coins, outputs, recipients, fee=plan.fee)


def craft_single_recipient_pset(
    coins: Sequence[Coin],
    recipient: Recipient,
    coin_selector: CoinSelector,
    change_address_getter: ChangeAddressGetter,
    *,
    subtract_fee: bool = False,
    sats_per_byte: float | Decimal | str = DEFAULT_SATS_PER_BYTE,
    network: NetworkType | str = NetworkType.LIQUID,
    address_codec: AddressCodec | None = None,
) -> TxBuildResult:
    """Build a fresh fee-paying transaction to a single recipient."""
    return build_tx(
        PsetDraft(),
        coins,
        [recipient],
        coin_selector,
        change_address_getter,
        add_fee=True,
        sats_per_byte=sats_per_byte,
        network=network,
        subtract_fee=subtract_fee,
        address_codec=address_codec,
    )
