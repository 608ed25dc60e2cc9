"""
Liquid wallet CLI - estimate fees, inspect coin balances and build unsigned transactions.
"""

from __future__ import annotations

import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from lqcore.address import InvalidAddress
from lqcore.models import Coin, NetworkType, OutputShape, Recipient
from lqwallet.coinselection import GreedyCoinSelector
from lqwallet.config import BuildConfig, CoinSort, get_settings
from lqwallet.errors import InsufficientFunds, TransactionBuildError
from lqwallet.fees import estimate_size, fee_for
from lqwallet.wallet import Wallet

app = typer.Typer(
    name="lq-wallet",
    help="Liquid transaction building tools",
    add_completion=False,
)

_coins_adapter = TypeAdapter(list[Coin])
_recipients_adapter = TypeAdapter(list[Recipient])


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_coins(path: Path) -> list[Coin]:
    return _coins_adapter.validate_json(path.read_text())


def load_recipients(path: Path) -> list[Recipient]:
    return _recipients_adapter.validate_json(path.read_text())


@app.command("estimate-fee")
def estimate_fee_command(
    inputs: Annotated[int, typer.Option("--inputs", "-i", help="Number of inputs")] = 1,
    confidential: Annotated[
        int, typer.Option("--confidential", "-c", help="Number of confidential outputs")
    ] = 1,
    explicit: Annotated[
        int, typer.Option("--explicit", "-e", help="Number of explicit outputs (fee excluded)")
    ] = 0,
    script_length: Annotated[
        int, typer.Option("--script-length", help="Locking script length of each output")
    ] = 22,
    sats_per_byte: Annotated[
        str | None, typer.Option("--sats-per-byte", "-r", help="Fee rate in sats/vbyte")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="Log level (default: LQ_LOG_LEVEL)")
    ] = None,
) -> None:
    """Estimate the size and fee of a transaction."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    rate = settings.sats_per_byte
    if sats_per_byte is not None:
        try:
            rate = Decimal(sats_per_byte)
        except InvalidOperation:
            logger.error(f"Invalid fee rate: {sats_per_byte!r}")
            raise typer.Exit(1)
    if not rate.is_finite() or rate <= 0:
        logger.error(f"Fee rate must be positive: {sats_per_byte!r}")
        raise typer.Exit(1)

    shapes = [OutputShape(script_length=script_length, is_confidential=True)] * confidential
    shapes += [OutputShape(script_length=script_length, is_confidential=False)] * explicit

    vsize = estimate_size(inputs, shapes)
    typer.echo(json.dumps({"vsize": vsize, "fee": fee_for(vsize, rate)}))


@app.command()
def balances(
    coins_file: Annotated[Path, typer.Argument(help="JSON file with the coin pool")],
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="Log level (default: LQ_LOG_LEVEL)")
    ] = None,
) -> None:
    """Show spendable balance per asset."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    try:
        coins = load_coins(coins_file)
    except (OSError, ValidationError) as e:
        logger.error(f"Failed to load coins: {e}")
        raise typer.Exit(1)

    typer.echo(json.dumps(Wallet(coins, settings.network).balances(), indent=2))


@app.command()
def build(
    coins_file: Annotated[Path, typer.Argument(help="JSON file with the coin pool")],
    recipients_file: Annotated[Path, typer.Argument(help="JSON file with the recipients")],
    change_address: Annotated[
        str, typer.Option("--change-address", "-c", help="Change address for every asset")
    ],
    add_fee: Annotated[bool, typer.Option("--add-fee", help="Add an explicit fee output")] = False,
    sats_per_byte: Annotated[
        str | None, typer.Option("--sats-per-byte", "-r", help="Fee rate in sats/vbyte")
    ] = None,
    subtract_fee: Annotated[
        bool, typer.Option("--subtract-fee", help="Take the fee out of the recipient")
    ] = False,
    largest_first: Annotated[
        bool, typer.Option("--largest-first", help="Spend the largest coins first")
    ] = False,
    network: Annotated[
        str | None, typer.Option("--network", "-n", help="liquid | testnet | regtest")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="Log level (default: LQ_LOG_LEVEL)")
    ] = None,
) -> None:
    """Select coins and build an unsigned transaction."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)

    try:
        config = BuildConfig.from_settings(
            settings,
            network=NetworkType(network) if network else None,
            add_fee=add_fee,
            sats_per_byte=Decimal(sats_per_byte) if sats_per_byte is not None else None,
            subtract_fee=subtract_fee,
            coin_sort=CoinSort.LARGEST_FIRST if largest_first else None,
        )
        coins = load_coins(coins_file)
        recipients = load_recipients(recipients_file)
    except (OSError, ValueError, InvalidOperation) as e:
        logger.error(f"Invalid input: {e}")
        raise typer.Exit(1)

    wallet = Wallet(coins, config.network)
    try:
        result = wallet.build_tx(
            wallet.create_tx(),
            recipients,
            GreedyCoinSelector(config.coin_sort.comparator()),
            lambda _asset: change_address,
            add_fee=config.add_fee,
            sats_per_byte=config.sats_per_byte,
            subtract_fee=config.subtract_fee,
        )
    except InsufficientFunds as e:
        logger.error(f"Insufficient funds for {e.asset}: need {e.need}, have {e.has}")
        raise typer.Exit(1)
    except (TransactionBuildError, InvalidAddress) as e:
        logger.error(str(e))
        raise typer.Exit(1)

    typer.echo(json.dumps(result.to_dict(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
