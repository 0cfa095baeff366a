"""Locate deferred calls in a syntax tree."""
from typing import Iterator
from tree_sitter import Node


DEFER_STATEMENT = 'defer_statement'


class DeferralLocator:
    """Yields every ``defer`` statement of a tree in source order."""

    def find(self, root: Node) -> Iterator[Node]:
        """Pre-order walk (parent before children, left to right).

        Each call starts a fresh traversal. Deferred statements inside
        function literals, including literals inside another deferred call,
        are yielded as well.

        Args:
            root: Tree root (or any subtree)

        Yields:
            defer_statement nodes
        """
        stack = [root]
        while stack:
            current = stack.pop()
            if current.type == DEFER_STATEMENT:
                yield current
            # Reverse so children come off the stack left to right
            stack.extend(reversed(current.children))
