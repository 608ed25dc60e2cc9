"""
Configuration for the Liquid wallet tools.

Settings come from the environment (LQ_ prefix) or a .env file; BuildConfig
validates a single build request.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lqcore.constants import DEFAULT_SATS_PER_BYTE, MIN_SATS_PER_BYTE
from lqcore.models import NetworkType
from lqwallet.coinselection import CompareCoinsFn, largest_first, smallest_first


class CoinSort(str, Enum):
    SMALLEST_FIRST = "smallest_first"
    LARGEST_FIRST = "largest_first"

    def comparator(self) -> CompareCoinsFn:
        if self == CoinSort.LARGEST_FIRST:
            return largest_first
        return smallest_first


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LQ_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: NetworkType = NetworkType.LIQUID
    sats_per_byte: Decimal = Field(default=Decimal(str(DEFAULT_SATS_PER_BYTE)), gt=0)
    coin_sort: CoinSort = CoinSort.SMALLEST_FIRST

    # Used by the CLI when --log-level is not given
    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()


class BuildConfig(BaseModel):
    """Options for one transaction build."""

    network: NetworkType = NetworkType.LIQUID
    add_fee: bool = False
    sats_per_byte: Decimal = Field(
        default=Decimal(str(DEFAULT_SATS_PER_BYTE)),
        gt=0,
        description="Fee rate in sats per vbyte",
    )
    subtract_fee: bool = Field(
        default=False, description="Take the fee out of a single policy asset recipient"
    )
    coin_sort: CoinSort = CoinSort.SMALLEST_FIRST

    @model_validator(mode="after")
    def check_fee_rate(self) -> BuildConfig:
        # The rate only matters when a fee output is added
        if self.add_fee and self.sats_per_byte < Decimal(str(MIN_SATS_PER_BYTE)):
            raise ValueError(f"sats_per_byte minimum value is {MIN_SATS_PER_BYTE}")
        return self

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> BuildConfig:
        values: dict[str, object] = {
            "network": settings.network,
            "sats_per_byte": settings.sats_per_byte,
            "coin_sort": settings.coin_sort,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
