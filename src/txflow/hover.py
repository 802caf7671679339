"""
Hover broker: relays pointer enter/leave over drawables to subscribers.

Holds a single slot; the last emission wins and nothing older is retained.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from txflow.layout import Drawable
from txflow.models import EntityKind, FeeEntity, TransactionRecord, TxInput, TxOutput

HoverCallback = Callable[["HoverEvent | None"], None]

SCRIPT_TYPE_NAMES = {
    "v0_p2wpkh": "Native SegWit",
    "v0_p2wsh": "Native SegWit (Script)",
    "v1_p2tr": "Taproot",
    "p2pkh": "Legacy",
    "p2sh": "Script Hash",
}

KIND_TITLES = {
    EntityKind.INPUT: "Input UTXO",
    EntityKind.OUTPUT: "Output UTXO",
    EntityKind.FEE: "Transaction Fee",
}


@dataclass(frozen=True)
class HoverEvent:
    entity: TxInput | TxOutput | FeeEntity
    kind: EntityKind
    owner_key: str
    index: int


class HoverBroker:
    def __init__(self) -> None:
        self._current: HoverEvent | None = None
        self._subscribers: list[HoverCallback] = []

    @property
    def current(self) -> HoverEvent | None:
        return self._current

    def subscribe(self, callback: HoverCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def enter(self, drawable: Drawable, owner_key: str) -> HoverEvent:
        event = HoverEvent(drawable.entity, drawable.kind, owner_key, drawable.index)
        self._publish(event)
        return event

    def leave(self) -> None:
        self._publish(None)

    def _publish(self, event: HoverEvent | None) -> None:
        self._current = event
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Hover subscriber failed: {e}")


def format_address(address: str | None) -> str:
    if not address:
        return "N/A"
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def script_type_name(script_type: str | None) -> str:
    return SCRIPT_TYPE_NAMES.get(script_type or "", script_type or "Unknown")


def describe(event: HoverEvent, record: TransactionRecord) -> dict[str, Any]:
    """
    Summarize a hovered entity for the info panel.

    The percentage is the entity's share of the transaction's output total
    (outputs plus fee).
    """
    value = event.entity.value
    total = record.total_output_value()
    summary: dict[str, Any] = {
        "title": KIND_TITLES[event.kind],
        "kind": event.kind.value,
        "value": value,
        "percentage": f"{value / total * 100:.2f}" if total and value else "0.00",
    }
    if event.kind == EntityKind.INPUT:
        entity = event.entity
        summary["previous_tx"] = format_address(entity.txid)
        summary["address"] = format_address(entity.address)
        summary["type"] = script_type_name(entity.script_type)
    elif event.kind == EntityKind.OUTPUT:
        summary["address"] = format_address(event.entity.address)
        summary["type"] = script_type_name(event.entity.script_type)
    return summary
