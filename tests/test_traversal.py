"""
Tests for pre-order tree traversal.
"""

from hypothesis import given, strategies as st

from block_clipboard.models import SerializedNode
from block_clipboard.traversal import traverse, collect_nodes


def build_chain(length):
    data = {'type': 'n0'}
    current = data
    for i in range(1, length):
        current['next'] = {'block': {'type': f'n{i}'}}
        current = current['next']['block']
    return SerializedNode.from_dict(data)


class TestTraverse:
    """Test cases for traverse."""

    def test_none_root_visits_nothing(self):
        visited = []
        traverse(None, visited.append)
        assert visited == []

    def test_pre_order(self):
        """Node first, then inputs in insertion order, then the next chain."""
        root = SerializedNode.from_dict({
            'type': 'root',
            'inputs': {
                'A': {'block': {'type': 'a', 'inputs': {'A1': {'block': {'type': 'a1'}}}},
                      'shadow': {'type': 'a_shadow'}},
                'B': {'shadow': {'type': 'b_shadow'}},
            },
            'next': {'block': {'type': 'after', 'next': {'block': {'type': 'after2'}}}},
        })

        kinds = [node.kind for node in collect_nodes(root)]

        assert kinds == ['root', 'a', 'a1', 'a_shadow', 'b_shadow', 'after', 'after2']

    def test_placeholder_only_input(self):
        root = SerializedNode.from_dict({'type': 'root', 'inputs': {'X': {'shadow': {'type': 's'}}}})
        assert [n.kind for n in collect_nodes(root)] == ['root', 's']

    def test_empty_attachment_is_skipped(self):
        root = SerializedNode.from_dict({'type': 'root', 'inputs': {'X': {}}, 'next': {}})
        assert [n.kind for n in collect_nodes(root)] == ['root']

    def test_long_chain_does_not_recurse(self):
        """A chain far deeper than the recursion limit is walked in order."""
        root = build_chain(5000)
        kinds = [node.kind for node in collect_nodes(root)]
        assert len(kinds) == 5000
        assert kinds[0] == 'n0'
        assert kinds[-1] == 'n4999'

    def test_visitor_can_mutate_nodes(self):
        root = build_chain(3)

        def mark(node):
            node.fields['seen'] = True

        traverse(root, mark)
        assert all(node.fields['seen'] for node in collect_nodes(root))


@given(st.integers(min_value=1, max_value=200))
def test_every_node_visited_once(length):
    """Property test: each node of a chain is visited exactly once."""
    root = build_chain(length)
    nodes = collect_nodes(root)
    assert len(nodes) == length
    assert len({id(node) for node in nodes}) == length
