"""
Core data models using Pydantic for validation and serialization.

Transaction records follow the Esplora JSON shape (``/tx/{txid}`` and
``/tx/{txid}/outspends``); unknown fields are ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

TXID_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


def is_valid_txid(txid: str) -> bool:
    return bool(TXID_PATTERN.match(txid))


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> Point:
        return Point(self.x * factor, self.y * factor)

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


class EntityKind(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    FEE = "fee"


class Prevout(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    value: int | None = Field(default=None, ge=0)
    scriptpubkey_address: str | None = None
    scriptpubkey_type: str | None = None


class TxInput(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    txid: str | None = None
    vout: int | None = None
    prevout: Prevout | None = None
    is_coinbase: bool = False

    @property
    def value(self) -> int:
        """Spent amount in sats, 0 when the previous output is unknown (coinbase)."""
        if self.prevout is None:
            return 0
        return self.prevout.value or 0

    @property
    def address(self) -> str | None:
        return self.prevout.scriptpubkey_address if self.prevout else None

    @property
    def script_type(self) -> str | None:
        return self.prevout.scriptpubkey_type if self.prevout else None


class TxOutput(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    value: int = Field(..., ge=0)
    scriptpubkey_address: str | None = None
    scriptpubkey_type: str | None = None

    @property
    def address(self) -> str | None:
        return self.scriptpubkey_address

    @property
    def script_type(self) -> str | None:
        return self.scriptpubkey_type


class FeeEntity(BaseModel):
    """Hover entity standing in for the fee line, which has no address."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(..., ge=0)
    address: None = None
    script_type: None = None


class TransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    txid: str
    vin: tuple[TxInput, ...] = ()
    vout: tuple[TxOutput, ...] = ()
    fee: int | None = Field(default=None, ge=0)

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        if not is_valid_txid(v):
            raise ValueError("txid must be 64 hex characters")
        return v.lower()

    @property
    def has_fee(self) -> bool:
        # A zero fee draws no line
        return bool(self.fee)

    def fee_entity(self) -> FeeEntity | None:
        if not self.has_fee:
            return None
        return FeeEntity(value=self.fee)

    def values(self) -> Iterator[int]:
        """Every input, output and fee value, in that order."""
        for tx_in in self.vin:
            yield tx_in.value
        for tx_out in self.vout:
            yield tx_out.value
        yield self.fee or 0

    def max_value(self) -> int:
        return max(self.values(), default=0)

    def total_output_value(self) -> int:
        return sum(o.value for o in self.vout) + (self.fee or 0)


class Outspend(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    spent: bool = False
    spending_txid: str | None = Field(default=None, alias="txid")
    vin: int | None = None


OutspendInfo = tuple[Outspend, ...]


def parse_outspends(data: list[dict]) -> OutspendInfo:
    return tuple(Outspend.model_validate(item) for item in data)
