"""
txflow - Bitcoin transaction flow diagrams

Provides the flow layout engine, spend tree, viewport and the explorer
session that ties them to an Esplora ledger.
"""

__version__ = "0.1.0"

from txflow.errors import (
    AlreadyExpandedError,
    InputError,
    LedgerError,
    NetworkError,
    NotFoundError,
    TxFlowError,
)
from txflow.explorer import Explorer, Hit, NodeScene, Notice
from txflow.hover import HoverBroker, HoverEvent
from txflow.layout import LayoutConfig, NodeLayout, compute_layout
from txflow.ledger import EsploraLedger, LedgerClient, MemoryLedger
from txflow.models import (
    EntityKind,
    Outspend,
    OutspendInfo,
    Point,
    TransactionRecord,
    TxInput,
    TxOutput,
)
from txflow.scaler import scale
from txflow.spend_tree import SpendTree, TransactionNode
from txflow.throttle import Throttle
from txflow.viewport import Transform, Viewport

__all__ = [
    "AlreadyExpandedError",
    "EntityKind",
    "EsploraLedger",
    "Explorer",
    "Hit",
    "HoverBroker",
    "HoverEvent",
    "InputError",
    "LayoutConfig",
    "LedgerClient",
    "LedgerError",
    "MemoryLedger",
    "NetworkError",
    "NodeLayout",
    "NodeScene",
    "NotFoundError",
    "Notice",
    "Outspend",
    "OutspendInfo",
    "Point",
    "SpendTree",
    "Throttle",
    "TransactionNode",
    "TransactionRecord",
    "Transform",
    "TxFlowError",
    "TxInput",
    "TxOutput",
    "Viewport",
    "compute_layout",
    "scale",
]
