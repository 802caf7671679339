"""
Tests for the spend tree.
"""

import pytest
from conftest import TXID_A, TXID_B, TXID_C, TXID_D, make_tx, spent

from txflow.errors import AlreadyExpandedError, NotFoundError
from txflow.models import Point
from txflow.spend_tree import SpendTree, selection_key


@pytest.fixture
def tree() -> SpendTree:
    return SpendTree(slot_width=500, child_offset=600, child_spacing=150)


@pytest.fixture
def tx_a():
    return make_tx(TXID_A, [5000], [3000, 1000], fee=1000)


@pytest.fixture
def tx_b():
    return make_tx(TXID_B, [1000], [400, 500], fee=100)


@pytest.fixture
def tx_c():
    return make_tx(TXID_C, [500], [450], fee=50)


class TestAddRoot:
    def test_roots_take_consecutive_slots(self, tree, tx_a, tx_b) -> None:
        first = tree.add_root(tx_a)
        second = tree.add_root(tx_b)

        assert first.position == Point(0.0, 0.0)
        assert second.position == Point(500.0, 0.0)
        assert first.is_root and second.is_root
        assert [n.key for n in tree.roots] == [TXID_A, TXID_B]

    def test_next_slot_follows_dragged_root(self, tree, tx_a, tx_b) -> None:
        first = tree.add_root(tx_a)
        first.position = Point(1000.0, 40.0)
        second = tree.add_root(tx_b)
        assert second.position == Point(1500.0, 0.0)

    def test_duplicate_txid_gets_distinct_key(self, tree, tx_a) -> None:
        first = tree.add_root(tx_a)
        second = tree.add_root(tx_a)

        assert first.key == TXID_A
        assert second.key == f"{TXID_A}~2"
        assert second.id == TXID_A
        assert tree.count() == 2

    def test_outspends_pending_initially(self, tree, tx_a) -> None:
        node = tree.add_root(tx_a)
        assert node.outspends_pending
        assert not node.is_spent(0)


class TestGlobalMax:
    def test_starts_at_one(self, tree) -> None:
        assert tree.global_max_value == 1

    def test_max_over_all_values(self, tree) -> None:
        tree.add_root(make_tx(TXID_A, [100], [90], fee=10))
        assert tree.global_max_value == 100

        tree.add_root(make_tx(TXID_B, [50], [20], fee=3000))
        assert tree.global_max_value == 3000

        tree.add_root(make_tx(TXID_C, [10], [9], fee=1))
        assert tree.global_max_value == 3000

    def test_includes_expanded_children(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)
        tree.expand(root, 0, make_tx(TXID_B, [3000], [9000]))
        assert tree.global_max_value == 9000

    def test_all_zero_values_stay_at_one(self, tree) -> None:
        tree.add_root(make_tx(TXID_A, [None], [0]))
        assert tree.global_max_value == 1

    def test_does_not_shrink_on_collapse_by_default(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)
        tree.expand(root, 0, make_tx(TXID_B, [3000], [9000]))
        tree.collapse(root, 0)
        assert tree.global_max_value == 9000

    def test_shrinks_on_collapse_when_enabled(self, tx_a) -> None:
        tree = SpendTree(shrink_on_collapse=True)
        root = tree.add_root(tx_a)
        tree.expand(root, 0, make_tx(TXID_B, [3000], [9000]))
        tree.collapse(root, 0)
        assert tree.global_max_value == 5000


class TestExpandCollapse:
    def test_expand_registers_selection(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        child = tree.expand(root, 1, tx_b)

        assert tree.registry == {f"{TXID_A}_1": TXID_B}
        assert child.parent_key == root.key
        assert child.output_index == 1
        assert root.children == {1: child.key}
        assert tree.parent_of(child) is root
        assert tree.is_expanded(root, 1)
        assert not tree.is_expanded(root, 0)

    def test_child_placed_right_of_parent(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        low = tree.expand(root, 0, tx_b)
        high = tree.expand(root, 1, tx_c)

        assert low.position == Point(600.0, -75.0)
        assert high.position == Point(600.0, 75.0)

    def test_expand_twice_raises(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        tree.expand(root, 1, tx_b)

        with pytest.raises(AlreadyExpandedError):
            tree.expand(root, 1, tx_c)

        assert tree.count() == 2
        assert tree.registry == {f"{TXID_A}_1": TXID_B}

    def test_expand_bad_index(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        with pytest.raises(IndexError):
            tree.expand(root, 5, tx_b)
        assert tree.count() == 1

    def test_expand_restored_by_collapse(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        before = (tree.count(), len(tree.registry))

        tree.expand(root, 0, tx_b)
        tree.collapse(root, 0)

        assert (tree.count(), len(tree.registry)) == before
        assert root.children == {}

    def test_collapse_removes_nested_entries(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        b = tree.expand(root, 1, tx_b)
        c = tree.expand(b, 0, tx_c)
        tree.expand(c, 0, make_tx(TXID_D, [450], [400]))
        assert len(tree.registry) == 3

        tree.collapse(root, 1)

        assert tree.registry == {}
        assert tree.count() == 1
        assert not tree.contains(b)
        assert not tree.contains(c)

    def test_collapse_without_child_is_noop(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)
        tree.collapse(root, 0)
        assert tree.count() == 1

    def test_registry_keys_match_non_root_nodes(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        b = tree.expand(root, 0, tx_b)
        tree.expand(b, 1, tx_c)

        non_roots = {
            selection_key(n.parent_key, n.output_index) for n in tree.flatten() if not n.is_root
        }
        assert set(tree.registry) == non_roots

    def test_remove_root(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        tree.expand(root, 0, tx_b)
        tree.remove_root(root)

        assert tree.count() == 0
        assert tree.registry == {}
        assert tree.roots == []


class TestFlatten:
    def test_preorder(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        other = tree.add_root(make_tx(TXID_D, [10], [10]))
        c = tree.expand(root, 1, tx_c)
        b = tree.expand(root, 0, tx_b)
        grandchild = tree.expand(b, 0, make_tx(TXID_D, [400], [400]))

        order = [n.key for n in tree.flatten()]
        assert order == [root.key, b.key, grandchild.key, c.key, other.key]

    def test_stable(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        tree.expand(root, 0, tx_b)
        assert [n.key for n in tree.flatten()] == [n.key for n in tree.flatten()]


class TestToggle:
    @pytest.mark.asyncio
    async def test_toggle_expands_then_collapses(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        calls = []

        async def fetch():
            calls.append(1)
            return tx_b

        child = await tree.toggle(root, 1, fetch)
        assert child is not None
        assert tree.registry == {f"{TXID_A}_1": TXID_B}

        result = await tree.toggle(root, 1, fetch)
        assert result is None
        assert tree.registry == {}
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_tree_unchanged(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)

        async def fetch():
            raise NotFoundError("missing", txid=TXID_B)

        with pytest.raises(NotFoundError):
            await tree.toggle(root, 0, fetch)

        assert tree.count() == 1
        assert tree.registry == {}

    @pytest.mark.asyncio
    async def test_result_for_removed_parent_is_discarded(self, tree, tx_a, tx_b, tx_c) -> None:
        root = tree.add_root(tx_a)
        b = tree.expand(root, 0, tx_b)

        async def fetch():
            # Parent disappears while the fetch is outstanding
            tree.collapse(root, 0)
            return tx_c

        result = await tree.toggle(b, 0, fetch)

        assert result is None
        assert tree.count() == 1
        assert tree.registry == {}


class TestOutspends:
    def test_set_outspends(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)
        assert tree.set_outspends(root.key, spent(None, TXID_B))

        assert root.is_spent(1)
        assert root.spending_txid(1) == TXID_B
        assert not root.is_spent(0)
        assert root.spending_txid(0) is None

    def test_set_outspends_for_removed_node(self, tree, tx_a, tx_b) -> None:
        root = tree.add_root(tx_a)
        child = tree.expand(root, 0, tx_b)
        tree.collapse(root, 0)

        assert tree.set_outspends(child.key, spent(None, None)) is False
        assert child.outspends is None

    def test_misaligned_outspends_rejected(self, tree, tx_a) -> None:
        root = tree.add_root(tx_a)
        with pytest.raises(ValueError, match="expected 2"):
            tree.set_outspends(root.key, spent(None))


def test_get_stats(tree, tx_a, tx_b) -> None:
    root = tree.add_root(tx_a)
    tree.expand(root, 0, tx_b)
    tree.set_outspends(root.key, spent(TXID_B, None))

    stats = tree.get_stats()
    assert stats["total_nodes"] == 2
    assert stats["roots"] == 1
    assert stats["expanded_outputs"] == 1
    assert stats["pending_outspends"] == 1
    assert stats["global_max_value"] == 5000
