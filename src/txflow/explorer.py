"""
Explorer session: the spend tree, ledger, layout, viewport and hover broker
wired together.

This is the fetch boundary. Ledger failures are caught here, logged and
turned into notices; the tree and viewport are only mutated after a fetch
succeeds, and results for nodes removed in the meantime are discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from txflow.config import Settings
from txflow.errors import InputError, LedgerError, NetworkError, NotFoundError
from txflow.hover import HoverBroker
from txflow.layout import Drawable, LayoutConfig, NodeLayout, SpendMarker, compute_layout
from txflow.ledger import LedgerClient, normalize_txid
from txflow.models import Point
from txflow.spend_tree import SpendTree, TransactionNode
from txflow.throttle import Throttle
from txflow.viewport import Viewport


@dataclass(frozen=True)
class Notice:
    level: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class NodeScene:
    """Everything the presentation layer needs to draw one node."""

    node: TransactionNode
    layout: NodeLayout
    position: Point

    @property
    def drag_handle(self) -> Point:
        """World position of the drag handle, at the first input's start."""
        return self.position + self.layout.anchor

    def to_world(self, local: Point) -> Point:
        return self.position + local


@dataclass(frozen=True)
class Hit:
    node: TransactionNode
    drawable: Drawable | None = None
    marker: SpendMarker | None = None


class Explorer:
    def __init__(
        self,
        ledger: LedgerClient,
        settings: Settings | None = None,
        config: LayoutConfig | None = None,
    ):
        self.settings = settings or Settings()
        self.ledger = ledger
        self.tree = SpendTree(
            slot_width=self.settings.slot_width,
            child_offset=self.settings.child_offset,
            child_spacing=self.settings.child_spacing,
            shrink_on_collapse=self.settings.shrink_max_on_collapse,
        )
        self.viewport = Viewport(
            width=self.settings.canvas_width,
            height=self.settings.canvas_height,
            k_min=self.settings.zoom_min,
            k_max=self.settings.zoom_max,
        )
        self.hover = HoverBroker()
        self.notices: list[Notice] = []
        self._config = config or self.settings.layout_config()
        self._layouts: dict[str, tuple[tuple[Any, ...], NodeLayout]] = {}
        self._config_throttle: Throttle[LayoutConfig] = Throttle(
            self.set_config, window=self.settings.throttle_window
        )

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def set_config(self, config: LayoutConfig) -> None:
        if config != self._config:
            logger.debug(f"Layout config changed: {config}")
        self._config = config

    def adjust_config(self, **changes: float) -> LayoutConfig:
        """
        Throttled config update, for slider-style input.

        Changes are validated immediately and merged onto the latest pending
        (or committed) config.

        Raises:
            pydantic.ValidationError: If a value is out of range
        """
        pending = self._config_throttle.pending
        base = pending if pending is not None else self._config
        config = LayoutConfig.model_validate({**base.model_dump(), **changes})
        self._config_throttle.submit(config)
        return config

    def flush_config(self) -> None:
        self._config_throttle.flush()

    def notify(self, level: str, message: str) -> Notice:
        notice = Notice(level, message)
        self.notices.append(notice)
        return notice

    async def submit(self, txid: str) -> TransactionNode | None:
        """
        Fetch a transaction and add it as a new root.

        Returns:
            The new root, or None if the lookup failed (see ``notices``)
        """
        try:
            txid = normalize_txid(txid)
            record = await self.ledger.get_transaction(txid)
        except InputError as e:
            logger.warning(f"Rejected transaction id: {e}")
            self.notify("warning", str(e))
            return None
        except LedgerError as e:
            self._report(e)
            return None

        node = self.tree.add_root(record)
        await self.load_outspends(node)
        return node

    async def load_outspends(self, node: TransactionNode) -> bool:
        """Fetch and attach a node's outspends; False if failed or discarded."""
        try:
            outspends = await self.ledger.get_outspends(node.id)
        except LedgerError as e:
            self._report(e)
            return False
        try:
            return self.tree.set_outspends(node.key, outspends)
        except ValueError as e:
            self._report(NetworkError(str(e), txid=node.id))
            return False

    async def click_output(
        self, node: TransactionNode, output_index: int
    ) -> TransactionNode | None:
        """
        Toggle the spender of a spent output.

        Returns:
            The new child when expanding, None otherwise
        """
        spending_txid = node.spending_txid(output_index)
        if spending_txid is None and not self.tree.is_expanded(node, output_index):
            logger.debug(f"Output {node.key}:{output_index} is unspent or not yet resolved")
            return None

        try:
            child = await self.tree.toggle(
                node, output_index, lambda: self.ledger.get_transaction(spending_txid)
            )
        except LedgerError as e:
            self._report(e)
            return None

        if child is not None and child.outspends is None:
            await self.load_outspends(child)
        return child

    async def click(self, screen_point: Point) -> TransactionNode | None:
        hit = self.hit_test(screen_point)
        if hit is None or hit.marker is None:
            return None
        return await self.click_output(hit.node, hit.marker.output_index)

    def drag(self, node: TransactionNode, delta_screen: Point) -> Point:
        return self.viewport.drag_node(node, delta_screen)

    def layout_for(self, node: TransactionNode) -> NodeLayout:
        snapshot = (node.id, node.outspends, self.tree.global_max_value, self._config)
        cached = self._layouts.get(node.key)
        if cached is not None and cached[0] == snapshot:
            return cached[1]
        layout = compute_layout(
            node.record, self.tree.global_max_value, self._config, node.outspends
        )
        self._layouts[node.key] = (snapshot, layout)
        return layout

    def render(self) -> list[NodeScene]:
        """Scene for every node, in pre-order."""
        nodes = self.tree.flatten()
        live = {n.key for n in nodes}
        for key in list(self._layouts):
            if key not in live:
                del self._layouts[key]
        return [NodeScene(node, self.layout_for(node), node.position) for node in nodes]

    def hit_test(self, screen_point: Point) -> Hit | None:
        """Topmost marker or drawable under a screen point."""
        world = self.viewport.screen_to_world(screen_point)
        for scene in reversed(self.render()):
            local = world - scene.position
            for marker in scene.layout.markers:
                if marker.rect.contains(local):
                    return Hit(scene.node, marker=marker)
            for drawable in reversed(scene.layout.drawables):
                if drawable.hits(local):
                    return Hit(scene.node, drawable=drawable)
        return None

    def pointer_move(self, screen_point: Point) -> None:
        hit = self.hit_test(screen_point)
        if hit is None or hit.drawable is None:
            if self.hover.current is not None:
                self.hover.leave()
            return
        current = self.hover.current
        if (
            current is None
            or current.owner_key != hit.node.key
            or current.kind != hit.drawable.kind
            or current.index != hit.drawable.index
        ):
            self.hover.enter(hit.drawable, hit.node.key)

    def _report(self, error: LedgerError) -> None:
        if isinstance(error, NotFoundError):
            logger.warning(str(error))
        else:
            logger.error(f"Ledger lookup failed: {error}")
        self.notify("error", str(error))
