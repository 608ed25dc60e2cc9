"""
Liquid wallet facade over a fixed set of unblinded coins.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from loguru import logger

from lqcore.address import AddressCodec, LiquidAddressCodec
from lqcore.constants import DEFAULT_SATS_PER_BYTE
from lqcore.ledger import balances
from lqcore.models import Coin, NetworkType, Recipient, get_network_params
from lqwallet.coinselection import ChangeAddressGetter, CoinSelector
from lqwallet.pset import PsetContainer, PsetDraft
from lqwallet.tx_builder import TxBuildResult, build_tx


class Wallet:
    """
    Builds transactions spending the coins it was given.

    Fetching and unblinding coins is done elsewhere; the wallet gets a fresh
    pool on construction and never marks coins as spent.
    """

    def __init__(
        self,
        coins: Sequence[Coin],
        network: NetworkType | str = NetworkType.LIQUID,
        address_codec: AddressCodec | None = None,
    ):
        self.network = NetworkType(network)
        self.params = get_network_params(self.network)
        self.coins = list(coins)
        self.address_codec = address_codec or LiquidAddressCodec(self.network)

        blinded = sum(1 for coin in self.coins if coin.is_blinded)
        logger.info(
            f"Initialized {self.network.value} wallet with {len(self.coins)} coins"
            + (f" ({blinded} still blinded)" if blinded else "")
        )

    @property
    def policy_asset(self) -> str:
        return self.params.policy_asset

    def create_tx(self) -> PsetDraft:
        """Return an empty unsigned transaction."""
        return PsetDraft()

    def balances(self) -> dict[str, int]:
        """Spendable balance per asset"""
        return balances(self.coins)

    def build_tx(
        self,
        pset: PsetContainer,
        recipients: Sequence[Recipient],
        coin_selector: CoinSelector,
        change_address_getter: ChangeAddressGetter,
        add_fee: bool = False,
        sats_per_byte: float | Decimal | str = DEFAULT_SATS_PER_BYTE,
        subtract_fee: bool = False,
    ) -> TxBuildResult:
        return build_tx(
            pset,
            self.coins,
            recipients,
            coin_selector,
            change_address_getter,
            add_fee=add_fee,
            sats_per_byte=sats_per_byte,
            network=self.network,
            subtract_fee=subtract_fee,
            address_codec=self.address_codec,
        )


def wallet_from_coins(
    coins: Sequence[Coin], network: NetworkType | str = NetworkType.LIQUID
) -> Wallet:
    return Wallet(coins, network)
