"""
Pre-order traversal of serialized node trees.

Every pass over a payload (variable extraction, sanitization, offset
application) walks the tree through ``traverse``; passes differ only in the
visitor they supply.
"""

from typing import Callable, List, Optional

from .models import SerializedNode


Visitor = Callable[[SerializedNode], None]


def traverse(root: Optional[SerializedNode], visitor: Visitor) -> None:
    """Visit every node once in pre-order.

    Order: the node itself, then each input in insertion order (primary
    before placeholder, each fully recursed), then the ``next`` chain. The
    walk uses an explicit stack so arbitrarily long chains do not exhaust the
    interpreter's recursion limit.
    """
    if root is None:
        return

    stack: List[SerializedNode] = [root]
    while stack:
        node = stack.pop()
        visitor(node)

        # Push in reverse so the stack pops in pre-order.
        if node.next is not None and node.next.primary is not None:
            stack.append(node.next.primary)
        for attachment in reversed(list(node.inputs.values())):
            stack.extend(reversed(attachment.children()))


def collect_nodes(root: Optional[SerializedNode]) -> List[SerializedNode]:
    """Return the nodes of a tree in visiting order."""
    nodes: List[SerializedNode] = []
    traverse(root, nodes.append)
    return nodes
