"""
Spend tree: the forest of transactions built by following spent outputs.

The tree owns every node in a single key -> node table. Children are
referenced by key from their parent and hold only their parent's key, so the
structure stays acyclic and a subtree can be dropped by walking down from it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field

from loguru import logger

from txflow.constants import DEFAULT_CHILD_OFFSET, DEFAULT_CHILD_SPACING, DEFAULT_SLOT_WIDTH
from txflow.errors import AlreadyExpandedError
from txflow.models import OutspendInfo, Point, TransactionRecord


@dataclass
class TransactionNode:
    key: str
    record: TransactionRecord
    position: Point = field(default_factory=Point)
    parent_key: str | None = None
    output_index: int | None = None
    children: dict[int, str] = field(default_factory=dict)
    outspends: OutspendInfo | None = None

    @property
    def id(self) -> str:
        return self.record.txid

    @property
    def is_root(self) -> bool:
        return self.parent_key is None

    @property
    def outspends_pending(self) -> bool:
        return self.outspends is None

    def is_spent(self, output_index: int) -> bool:
        if self.outspends is None or output_index >= len(self.outspends):
            return False
        return self.outspends[output_index].spent

    def spending_txid(self, output_index: int) -> str | None:
        if not self.is_spent(output_index):
            return None
        return self.outspends[output_index].spending_txid


def selection_key(parent_key: str, output_index: int) -> str:
    return f"{parent_key}_{output_index}"


class SpendTree:
    def __init__(
        self,
        slot_width: float = DEFAULT_SLOT_WIDTH,
        child_offset: float = DEFAULT_CHILD_OFFSET,
        child_spacing: float = DEFAULT_CHILD_SPACING,
        shrink_on_collapse: bool = False,
    ):
        self.slot_width = slot_width
        self.child_offset = child_offset
        self.child_spacing = child_spacing
        self.shrink_on_collapse = shrink_on_collapse
        self._nodes: dict[str, TransactionNode] = {}
        self._roots: list[str] = []
        self._registry: dict[str, str] = {}
        self._global_max_value = 1

    @property
    def global_max_value(self) -> int:
        return self._global_max_value

    @property
    def roots(self) -> list[TransactionNode]:
        return [self._nodes[k] for k in self._roots]

    @property
    def registry(self) -> dict[str, str]:
        return dict(self._registry)

    def get(self, key: str) -> TransactionNode | None:
        return self._nodes.get(key)

    def contains(self, node: TransactionNode | str) -> bool:
        key = node if isinstance(node, str) else node.key
        current = self._nodes.get(key)
        if current is None:
            return False
        return isinstance(node, str) or current is node

    def count(self) -> int:
        return len(self._nodes)

    def parent_of(self, node: TransactionNode) -> TransactionNode | None:
        if node.parent_key is None:
            return None
        return self._nodes.get(node.parent_key)

    def children_of(self, node: TransactionNode) -> list[TransactionNode]:
        return [self._nodes[node.children[i]] for i in sorted(node.children)]

    def child_at(self, parent: TransactionNode, output_index: int) -> TransactionNode | None:
        key = parent.children.get(output_index)
        return self._nodes.get(key) if key else None

    def is_expanded(self, parent: TransactionNode, output_index: int) -> bool:
        return selection_key(parent.key, output_index) in self._registry

    def add_root(self, record: TransactionRecord) -> TransactionNode:
        if self._roots:
            last = self._nodes[self._roots[-1]]
            position = Point(last.position.x + self.slot_width, 0.0)
        else:
            position = Point(0.0, 0.0)

        node = TransactionNode(key=self._new_key(record.txid), record=record, position=position)
        self._nodes[node.key] = node
        self._roots.append(node.key)
        self._grow_max(record)
        logger.info(f"Added root {node.key} at x={position.x:g}")
        return node

    def expand(
        self, parent: TransactionNode, output_index: int, child_record: TransactionRecord
    ) -> TransactionNode:
        """
        Attach the transaction spending ``parent``'s output as a child.

        Raises:
            AlreadyExpandedError: If the output already has a child
            IndexError: If the output index does not exist
            KeyError: If the parent is not held by this tree
        """
        if not self.contains(parent):
            raise KeyError(f"Node not in tree: {parent.key}")
        if not 0 <= output_index < len(parent.record.vout):
            raise IndexError(f"Output index out of range: {output_index}")
        if output_index in parent.children:
            raise AlreadyExpandedError(parent.key, output_index)

        node = TransactionNode(
            key=self._new_key(child_record.txid),
            record=child_record,
            position=self._child_position(parent, output_index),
            parent_key=parent.key,
            output_index=output_index,
        )
        self._nodes[node.key] = node
        parent.children[output_index] = node.key
        self._registry[selection_key(parent.key, output_index)] = child_record.txid
        self._grow_max(child_record)
        logger.debug(f"Expanded {parent.key}:{output_index} -> {node.key}")
        return node

    def collapse(self, parent: TransactionNode, output_index: int) -> None:
        child_key = parent.children.pop(output_index, None)
        if child_key is None:
            return
        self._registry.pop(selection_key(parent.key, output_index), None)
        removed = self._drop_subtree(child_key)
        logger.debug(f"Collapsed {parent.key}:{output_index}, removed {removed} node(s)")
        if self.shrink_on_collapse:
            self._recompute_max()

    async def toggle(
        self,
        parent: TransactionNode,
        output_index: int,
        fetch_child: Callable[[], Awaitable[TransactionRecord]],
    ) -> TransactionNode | None:
        """
        Collapse an expanded output, or fetch its spender and expand it.

        The tree is only touched after ``fetch_child`` succeeds. If the parent
        was removed while the fetch was outstanding the result is discarded.

        Returns:
            The new child, or None when collapsing or discarding
        """
        if self.is_expanded(parent, output_index):
            self.collapse(parent, output_index)
            return None

        record = await fetch_child()

        if not self.contains(parent):
            logger.info(f"Discarding fetched child for removed node {parent.key}")
            return None
        try:
            return self.expand(parent, output_index, record)
        except AlreadyExpandedError:
            # Another toggle on the same output finished first
            logger.debug(f"Output {parent.key}:{output_index} expanded concurrently")
            return self.child_at(parent, output_index)

    def remove_root(self, node: TransactionNode) -> None:
        if node.key not in self._roots:
            return
        self._roots.remove(node.key)
        self._drop_subtree(node.key)
        if self.shrink_on_collapse:
            self._recompute_max()

    def set_outspends(self, key: str, outspends: OutspendInfo) -> bool:
        """
        Attach resolved outspends to a node.

        Returns:
            False if the node is no longer in the tree and the result was dropped
        """
        node = self._nodes.get(key)
        if node is None:
            logger.info(f"Discarding outspends for removed node {key}")
            return False
        if len(outspends) != len(node.record.vout):
            raise ValueError(
                f"Outspends for {key} have {len(outspends)} entries, "
                f"expected {len(node.record.vout)}"
            )
        node.outspends = tuple(outspends)
        return True

    def flatten(self) -> list[TransactionNode]:
        return list(self._iter_preorder())

    def _iter_preorder(self) -> Iterator[TransactionNode]:
        stack = [self._nodes[k] for k in reversed(self._roots)]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(self.children_of(node)))

    def get_stats(self) -> dict[str, int]:
        return {
            "total_nodes": len(self._nodes),
            "roots": len(self._roots),
            "expanded_outputs": len(self._registry),
            "pending_outspends": sum(1 for n in self._nodes.values() if n.outspends is None),
            "global_max_value": self._global_max_value,
        }

    def clear(self) -> None:
        self._nodes.clear()
        self._roots.clear()
        self._registry.clear()
        self._global_max_value = 1

    def _new_key(self, txid: str) -> str:
        if txid not in self._nodes:
            return txid
        n = 2
        while f"{txid}~{n}" in self._nodes:
            n += 1
        return f"{txid}~{n}"

    def _child_position(self, parent: TransactionNode, output_index: int) -> Point:
        middle = (len(parent.record.vout) - 1) / 2
        return Point(
            parent.position.x + self.child_offset,
            parent.position.y + (output_index - middle) * self.child_spacing,
        )

    def _drop_subtree(self, key: str) -> int:
        removed = 0
        stack = [key]
        while stack:
            node = self._nodes.pop(stack.pop())
            removed += 1
            for output_index, child_key in node.children.items():
                self._registry.pop(selection_key(node.key, output_index), None)
                stack.append(child_key)
        return removed

    def _grow_max(self, record: TransactionRecord) -> None:
        self._global_max_value = max(self._global_max_value, record.max_value() or 1)

    def _recompute_max(self) -> None:
        self._global_max_value = max(
            (n.record.max_value() for n in self._nodes.values()), default=0
        ) or 1
