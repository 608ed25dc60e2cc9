"""
Tests for lqcore.ledger
"""

from __future__ import annotations

import pytest

from lqcore.ledger import (
    balances,
    from_asset_hash,
    group_by_asset,
    is_valid_amount,
    sum_by_asset,
    sum_values,
    to_asset_amounts,
    to_asset_hash,
    to_outpoint,
)
from lqcore.models import AssetAmount, Coin


def _coin(n: int, asset: str | None, value: int | None) -> Coin:
    return Coin(txid=f"{n:064x}", vout=0, asset=asset, value=value)


class TestGrouping:
    def test_group_by_asset_keeps_order(self, policy_asset: str, usdt_asset: str) -> None:
        items = [
            AssetAmount(asset=usdt_asset, value=1),
            AssetAmount(asset=policy_asset, value=2),
            AssetAmount(asset=usdt_asset, value=3),
        ]
        groups = group_by_asset(items)
        assert list(groups) == [usdt_asset, policy_asset]
        assert [a.value for a in groups[usdt_asset]] == [1, 3]

    def test_sum_values_counts_unknown_as_zero(self, policy_asset: str) -> None:
        coins = [_coin(1, policy_asset, 10), _coin(2, None, None), _coin(3, policy_asset, 5)]
        assert sum_values(coins) == 15

    def test_sum_by_asset(self, policy_asset: str, usdt_asset: str) -> None:
        coins = [
            _coin(1, policy_asset, 10),
            _coin(2, usdt_asset, 7),
            _coin(3, policy_asset, 5),
            _coin(4, None, None),
        ]
        assert sum_by_asset(coins) == {policy_asset: 15, usdt_asset: 7}


class TestBalances:
    def test_ignores_blinded(self, policy_asset: str) -> None:
        coins = [_coin(1, policy_asset, 10), _coin(2, policy_asset, None), _coin(3, None, None)]
        assert balances(coins) == {policy_asset: 10}

    def test_empty(self) -> None:
        assert balances([]) == {}

    def test_to_asset_amounts(self, policy_asset: str) -> None:
        amounts = to_asset_amounts({policy_asset: 42})
        assert amounts == [AssetAmount(asset=policy_asset, value=42)]


class TestAmounts:
    @pytest.mark.parametrize("amount", [1, 21_000_000 * 100_000_000])
    def test_valid(self, amount: int) -> None:
        assert is_valid_amount(amount)

    @pytest.mark.parametrize("amount", [0, -1, 1.0, "1", None, True])
    def test_invalid(self, amount: object) -> None:
        assert not is_valid_amount(amount)


class TestAssetTags:
    def test_tag_layout(self, usdt_asset: str) -> None:
        tag = from_asset_hash(usdt_asset)
        assert len(tag) == 33
        assert tag[0] == 0x01
        assert tag[1:] == bytes.fromhex(usdt_asset)[::-1]

    def test_back_to_asset_id(self, usdt_asset: str) -> None:
        assert to_asset_hash(from_asset_hash(usdt_asset.upper())) == usdt_asset

    def test_rejects_confidential_tag(self) -> None:
        with pytest.raises(ValueError, match="Not an explicit asset tag"):
            to_asset_hash(b"\x0a" + bytes(32))

    def test_rejects_short_asset(self) -> None:
        with pytest.raises(ValueError):
            from_asset_hash("abcd")


def test_to_outpoint(sample_txid: str, policy_asset: str) -> None:
    coin = Coin(txid=sample_txid, vout=3, asset=policy_asset, value=1)
    assert to_outpoint(coin) == (sample_txid, 3)
