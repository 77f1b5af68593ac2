"""Tests for the keyed, collapsible tree node."""

from dataclasses import dataclass

import pytest

from slotview.models import Node, Tristate


@dataclass
class Entry:
    id: str
    value: int = 0


def key_of(entry: Entry) -> str:
    return entry.id


def make_tree() -> Node:
    """root -> a(a1, a2) -> a/x(x1); root -> b(b1); root(r1)"""
    root = Node("root", key_of, items=[Entry("r1")])
    a = Node("a", key_of, items=[Entry("a1"), Entry("a2")])
    x = Node("a/x", key_of, items=[Entry("x1")])
    b = Node("b", key_of, items=[Entry("b1")])
    a.add_child(x, notify=False)
    root.add_child(a, notify=False)
    root.add_child(b, notify=False)
    return root


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

class TestItems:
    def test_add_and_lookup(self):
        node = Node("n", key_of)
        assert node.add(Entry("k1", 1)) is True
        assert len(node) == 1
        assert "k1" in node
        assert node.get("k1").value == 1
        assert node.get("missing") is None

    def test_re_add_overwrites_in_place(self):
        node = Node("n", key_of, items=[Entry("a"), Entry("b"), Entry("c")])

        assert node.add(Entry("b", 99)) is False

        assert node.keys == ["a", "b", "c"]
        assert node.get("b").value == 99

    def test_add_all_counts_new_keys(self):
        node = Node("n", key_of, items=[Entry("a")])
        assert node.add_all([Entry("a", 2), Entry("b"), Entry("c")]) == 2
        assert node.keys == ["a", "b", "c"]

    def test_version_bumps_and_notifies(self):
        node = Node("n", key_of)
        calls = []
        node.add_change_listener(lambda: calls.append(node.version))

        node.add(Entry("a"))
        node.add(Entry("b"), notify=False)
        node.remove("a")

        assert node.version == 3
        assert calls == [1, 3]

    def test_remove_absent_is_silent(self):
        node = Node("n", key_of, items=[Entry("a")])
        calls = []
        node.add_change_listener(lambda: calls.append(1))
        version = node.version

        assert node.remove("zzz") is None
        assert node.clear() is True
        assert node.clear() is False

        assert calls == [1]
        assert node.version == version + 1

    def test_insert_refuses_existing_key(self):
        node = Node("n", key_of, items=[Entry("a"), Entry("c")])
        assert node.insert(1, Entry("b")) is True
        assert node.insert(0, Entry("a")) is False
        assert node.keys == ["a", "b", "c"]

    def test_remove_where(self):
        node = Node("n", key_of, items=[Entry("a", 1), Entry("b", 2), Entry("c", 3)])
        removed = node.remove_where(lambda entry: entry.value % 2 == 1)
        assert [entry.id for entry in removed] == ["a", "c"]
        assert node.keys == ["b"]

    def test_replace_key_keeps_position(self):
        node = Node("n", key_of, items=[Entry("a"), Entry("b"), Entry("c")])
        assert node.replace_key("b", Entry("z")) is True
        assert node.replace_key("missing", Entry("q")) is False
        assert node.keys == ["a", "z", "c"]

    def test_sort(self):
        node = Node("n", key_of, items=[Entry("b", 1), Entry("c", 0), Entry("a", 2)])
        node.sort()
        assert node.keys == ["a", "b", "c"]
        node.sort(key=lambda entry: entry.value, reverse=True)
        assert node.keys == ["a", "b", "c"]
        node.sort(key=lambda entry: entry.value)
        assert node.keys == ["c", "b", "a"]

    def test_positional_queries(self):
        node = Node("n", key_of, items=[Entry("a"), Entry("b"), Entry("c")])
        assert node.item_at(1).id == "b"
        assert node.item_at(5) is None
        assert node.index_of("c") == 2
        assert node.index_of("x") == -1
        assert node.next_item("a").id == "b"
        assert node.next_item("c") is None
        assert node.prev_item("b").id == "a"
        assert node.prev_item("a") is None

    def test_empty_node_is_truthy(self):
        node = Node("n", key_of)
        assert node.is_empty
        assert node


# ---------------------------------------------------------------------------
# Structure and navigation
# ---------------------------------------------------------------------------

class TestStructure:
    def test_parent_links_and_depth(self):
        root = make_tree()
        a = root.child("a")
        x = root.find_node("a/x")

        assert a.parent is root
        assert x.parent is a
        assert not root.has_parent
        assert (root.depth, a.depth, x.depth) == (0, 1, 2)
        assert x.root is root
        assert [node.id for node in x.path_from_root] == ["root", "a", "a/x"]
        assert root.is_ancestor_of(x)
        assert x.is_descendant_of(a)
        assert not a.is_ancestor_of(root.child("b"))

    def test_flattened_items_visit_children_first(self):
        root = make_tree()
        assert [entry.id for entry in root.flattened_items] == ["x1", "a1", "a2", "b1", "r1"]
        assert list(root.child("a").flattened_keys) == ["x1", "a1", "a2"]
        assert root.flattened_length == 5

    def test_descendants_breadth_first(self):
        root = make_tree()
        assert [node.id for node in root.descendants()] == ["root", "a", "b", "a/x"]
        assert [node.id for node in root.descendants(depth_first=True)] == ["root", "a", "a/x", "b"]

    def test_find_helpers(self):
        root = make_tree()
        assert root.find_node("b").id == "b"
        assert root.find_node("nope") is None
        assert root.find_node_by_key("x1").id == "a/x"
        assert root.find_node_by_item(Entry("b1")).id == "b"
        assert root.find_node_by_key("missing") is None
        assert [node.id for node in root.find_nodes(lambda node: len(node) == 1)] == ["root", "b", "a/x"]
        assert root.find_first_item(lambda entry: entry.id.startswith("a")).id == "a1"

    def test_child_queries(self):
        root = make_tree()
        assert root.child_ids == ["a", "b"]
        assert root.child_count == 2
        assert root.child_at(1).id == "b"
        assert root.child_at(2) is None
        assert root.child("b").child_index == 1
        assert root.child("b").is_leaf
        assert root.has_children
        assert [node.id for node in root.child("a").siblings] == ["b"]
        assert [node.id for node in root.leaves] == ["a/x", "b"]
        assert [node.id for node in root.nodes_at_depth(2)] == ["a/x"]
        assert root.height == 2

    def test_add_child_with_same_id_replaces(self):
        root = make_tree()
        replacement = Node("b", key_of, items=[Entry("new")])
        root.add_child(replacement)
        assert root.child_ids == ["a", "b"]
        assert root.child("b") is replacement
        assert root.flattened_length == 5

    def test_insert_child_at(self):
        root = make_tree()
        root.insert_child_at(0, Node("c", key_of))
        assert root.child_ids == ["c", "a", "b"]

    def test_remove_child_resets_parent(self):
        root = make_tree()
        b = root.remove_child("b")
        assert b is not None
        assert b.parent is None
        assert b.depth == 0
        assert root.remove_child("b") is None
        assert root.child_ids == ["a"]

    def test_move_to_updates_depth_and_refuses_cycles(self):
        root = make_tree()
        a = root.child("a")
        b = root.child("b")
        x = root.find_node("a/x")

        assert b.move_to(x) is True
        assert b.parent is x
        assert b.depth == 3
        assert root.child_ids == ["a"]
        assert a.move_to(b) is False
        assert a.move_to(a) is False
        assert root.height == 3

    def test_detach(self):
        root = make_tree()
        a = root.child("a")
        a.detach()
        assert a.parent is None
        assert root.child_ids == ["b"]

    def test_deep_chain_does_not_recurse(self):
        root = Node("root", key_of)
        node = root
        for level in range(1500):
            child = Node(f"n{level}", key_of, items=[Entry(f"i{level}")])
            node.add_child(child, notify=False)
            node = child

        assert root.flattened_length == 1500
        assert root.find_node("n1499") is node
        assert node.depth == 1500
        assert root.height == 1500


# ---------------------------------------------------------------------------
# Collapse state
# ---------------------------------------------------------------------------

class TestCollapse:
    def test_collapse_tristate(self):
        node = Node("n", key_of)
        assert node.collapse(Tristate.YES) is True
        assert node.is_collapsed
        assert node.collapse(Tristate.TOGGLE) is False
        assert node.is_expanded
        assert node.toggle() is True

    def test_collapse_same_state_is_noop(self):
        node = Node("n", key_of)
        calls = []
        node.add_change_listener(lambda: calls.append(1))

        node.collapse(Tristate.NO)

        assert calls == []
        assert node.version == 0

    def test_collapse_does_not_touch_descendants(self):
        root = make_tree()
        a = root.child("a")
        a.collapse(Tristate.YES)
        assert not root.find_node("a/x").is_collapsed

    def test_collapse_to_level(self):
        root = make_tree()
        root.collapse_to_level(2)
        assert not root.is_collapsed
        assert not root.child("a").is_collapsed
        assert root.find_node("a/x").is_collapsed

    def test_collapse_all_and_expand_all_notify_once(self):
        root = make_tree()
        calls = []
        root.add_change_listener(lambda: calls.append(1))

        root.collapse_all()
        assert all(node.is_collapsed for node in root.descendants())
        root.expand_all()
        assert not any(node.is_collapsed for node in root.descendants())
        root.expand_all()

        assert calls == [1, 1]

    def test_expand_to_this(self):
        root = make_tree()
        root.collapse_all(notify=False)
        x = root.find_node("a/x")

        x.expand_to_this()

        assert not root.is_collapsed
        assert not root.child("a").is_collapsed
        assert x.is_collapsed

    def test_expand_to_this_notifies_root_once(self):
        root = make_tree()
        root.collapse_all(notify=False)
        calls = []
        root.add_change_listener(lambda: calls.append(1))

        root.find_node("a/x").expand_to_this()

        assert calls == [1]

    def test_visible_descendants_skip_collapsed(self):
        root = make_tree()
        root.child("a").collapse(Tristate.YES)
        assert [node.id for node in root.visible_descendants()] == ["root", "a", "b"]


def test_changes_below_reach_every_ancestor():
    root = make_tree()
    a = root.child("a")
    x = root.find_node("a/x")
    seen = []
    root.add_change_listener(lambda: seen.append("root"))
    a.add_change_listener(lambda: seen.append("a"))
    x.add_change_listener(lambda: seen.append("a/x"))

    x.add(Entry("x2"))
    root.child("b").remove("b1")
    x.add(Entry("x3"), notify=False)

    assert seen == ["a/x", "a", "root", "root"]


def test_detached_node_stops_notifying_old_parent():
    root = make_tree()
    calls = []
    root.add_change_listener(lambda: calls.append(1))
    b = root.remove_child("b", notify=False)

    b.add(Entry("b2"))

    assert calls == []


def test_dispose_clears_subtree():
    root = make_tree()
    a = root.child("a")
    calls = []
    a.add_change_listener(lambda: calls.append(1))

    root.dispose()
    a.notify_changed()

    assert len(root) == 0
    assert root.child_count == 0
    assert len(a) == 0
    assert calls == []


@pytest.mark.parametrize("state, expected", [(Tristate.YES, True), (Tristate.NO, False)])
def test_tristate_resolve_ignores_current(state, expected):
    assert state.resolve(True) is expected
    assert state.resolve(False) is expected
