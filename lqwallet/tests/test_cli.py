"""
Tests for the lq-wallet command line.
"""

from __future__ import annotations

import json
from pathlib import Path

import bech32
import pytest
from typer.testing import CliRunner

from lqwallet.cli import app

runner = CliRunner()

RECIPIENT_SCRIPT = "0014" + "ab" * 20


@pytest.fixture
def change_address() -> str:
    return bech32.encode("ert", 0, list(bytes(range(20))))


@pytest.fixture
def coins_file(tmp_path: Path, policy_asset: str) -> Path:
    path = tmp_path / "coins.json"
    path.write_text(
        json.dumps([{"txid": "aa" * 32, "vout": 0, "asset": policy_asset, "value": 1_000_000}])
    )
    return path


def _recipients_file(tmp_path: Path, asset: str, value: int) -> Path:
    path = tmp_path / "recipients.json"
    path.write_text(json.dumps([{"asset": asset, "value": value, "script": RECIPIENT_SCRIPT}]))
    return path


class TestEstimateFee:
    def test_confidential(self) -> None:
        result = runner.invoke(app, ["estimate-fee", "-i", "1", "-c", "1", "-r", "0.1"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"vsize": 1307, "fee": 131}

    def test_explicit(self) -> None:
        result = runner.invoke(app, ["estimate-fee", "-c", "0", "-e", "1", "-r", "0.1"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"vsize": 190, "fee": 19}

    @pytest.mark.parametrize("rate", ["abc", "0", "nan"])
    def test_bad_rate(self, rate: str) -> None:
        result = runner.invoke(app, ["estimate-fee", "-r", rate, "-l", "CRITICAL"])
        assert result.exit_code == 1


class TestBalances:
    def test_balances(self, coins_file: Path, policy_asset: str) -> None:
        result = runner.invoke(app, ["balances", str(coins_file), "-l", "ERROR"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {policy_asset: 1_000_000}

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["balances", str(tmp_path / "nope.json"), "-l", "CRITICAL"])
        assert result.exit_code == 1


class TestBuild:
    def test_build_with_fee(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        recipients = _recipients_file(tmp_path, policy_asset, 500_000)
        result = runner.invoke(
            app,
            [
                "build",
                str(coins_file),
                str(recipients),
                "-c",
                change_address,
                "--add-fee",
                "-n",
                "regtest",
                "-l",
                "ERROR",
            ],
        )
        assert result.exit_code == 0
        doc = json.loads(result.stdout)
        assert doc["fee"] == 26
        assert [o["kind"] for o in doc["outputs"]] == ["recipient", "change", "fee"]
        assert doc["outputs"][1]["value"] == 499_974
        assert doc["inputs"] == ["aa" * 32 + ":0"]
        assert "pset" in doc

    def test_insufficient_funds(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        recipients = _recipients_file(tmp_path, policy_asset, 2_000_000)
        result = runner.invoke(
            app,
            [
                "build",
                str(coins_file),
                str(recipients),
                "-c",
                change_address,
                "-n",
                "regtest",
                "-l",
                "CRITICAL",
            ],
        )
        assert result.exit_code == 1

    def test_rate_below_minimum(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        recipients = _recipients_file(tmp_path, policy_asset, 1000)
        result = runner.invoke(
            app,
            [
                "build",
                str(coins_file),
                str(recipients),
                "-c",
                change_address,
                "--add-fee",
                "-r",
                "0.05",
                "-l",
                "CRITICAL",
            ],
        )
        assert result.exit_code == 1

    def test_bad_recipients_file(
        self, tmp_path: Path, coins_file: Path, change_address: str
    ) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("[{}]")
        result = runner.invoke(
            app,
            ["build", str(coins_file), str(bad), "-c", change_address, "-l", "CRITICAL"],
        )
        assert result.exit_code == 1

    def test_low_rate_without_fee(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        recipients = _recipients_file(tmp_path, policy_asset, 1000)
        result = runner.invoke(
            app,
            [
                "build",
                str(coins_file),
                str(recipients),
                "-c",
                change_address,
                "-r",
                "0.05",
                "-n",
                "regtest",
                "-l",
                "ERROR",
            ],
        )
        assert result.exit_code == 0
        doc = json.loads(result.stdout)
        assert doc["fee"] == 0
        assert [o["kind"] for o in doc["outputs"]] == ["recipient", "change"]


class TestLogLevel:
    def _build(
        self, tmp_path: Path, coins_file: Path, change_address: str, asset: str, *extra: str
    ):
        recipients = _recipients_file(tmp_path, asset, 1000)
        args = ["build", str(coins_file), str(recipients), "-c", change_address, "-n", "regtest"]
        return runner.invoke(app, args + list(extra), env={"LQ_LOG_LEVEL": "ERROR"})

    def test_level_from_environment(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        result = self._build(tmp_path, coins_file, change_address, policy_asset)
        assert result.exit_code == 0
        # Nothing but the JSON document
        assert json.loads(result.output)["fee"] == 0

    def test_option_overrides_environment(
        self, tmp_path: Path, coins_file: Path, change_address: str, policy_asset: str
    ) -> None:
        result = self._build(tmp_path, coins_file, change_address, policy_asset, "-l", "INFO")
        assert result.exit_code == 0
        assert "Built transaction" in result.output
