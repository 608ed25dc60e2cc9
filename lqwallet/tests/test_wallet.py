"""
Tests for lqwallet.wallet
"""

from __future__ import annotations

from lqcore.constants import LIQUID_POLICY_ASSET
from lqcore.models import Coin, NetworkType
from lqwallet.coinselection import GreedyCoinSelector
from lqwallet.pset import PsetDraft
from lqwallet.tx_builder import OutputKind
from lqwallet.wallet import Wallet, wallet_from_coins


class TestWallet:
    def test_policy_asset(self) -> None:
        assert wallet_from_coins([]).policy_asset == LIQUID_POLICY_ASSET

    def test_create_tx(self) -> None:
        pset = Wallet([], NetworkType.REGTEST).create_tx()
        assert isinstance(pset, PsetDraft)
        assert pset.inputs == []
        assert pset.outputs == []

    def test_balances(self, policy_asset, other_asset, make_coin) -> None:
        coins = [
            make_coin(policy_asset, 100),
            make_coin(policy_asset, 50),
            make_coin(other_asset, 7),
            Coin(txid="ee" * 32, vout=0),
        ]
        wallet = Wallet(coins, "regtest")
        assert wallet.balances() == {policy_asset: 150, other_asset: 7}

    def test_build_tx_pays_fee_in_policy_asset(
        self, policy_asset, make_coin, make_recipient, change_getter
    ) -> None:
        wallet = Wallet([make_coin(policy_asset, 1_000_000)], NetworkType.REGTEST)
        result = wallet.build_tx(
            wallet.create_tx(),
            [make_recipient(policy_asset, 500_000)],
            GreedyCoinSelector(),
            change_getter,
            add_fee=True,
        )
        assert result.fee_output is not None
        assert result.fee_output.asset == wallet.policy_asset
        assert [o.kind for o in result.outputs][-1] == OutputKind.FEE

    def test_build_does_not_consume_coins(
        self, policy_asset, make_coin, make_recipient, change_getter
    ) -> None:
        wallet = Wallet([make_coin(policy_asset, 1000)], NetworkType.REGTEST)
        for _ in range(2):
            wallet.build_tx(
                wallet.create_tx(),
                [make_recipient(policy_asset, 1000)],
                GreedyCoinSelector(),
                change_getter,
            )
        assert wallet.balances() == {policy_asset: 1000}
