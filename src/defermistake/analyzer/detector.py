"""Detect eagerly evaluated flagged calls in the arguments of a deferred call."""
import enum
from dataclasses import dataclass, asdict
from typing import Dict, Iterator, List, Optional, Tuple
from tree_sitter import Node

from .registry import FlaggedFunctionRegistry, FunctionIdentity, DEFAULT_REGISTRY
from .resolver import CalleeResolver


MESSAGE_TEMPLATE = "defer func should not evaluate {function}"


class NodeKind(enum.Enum):
    """The node kinds the traversal distinguishes."""
    CALL = 'call_expression'
    FUNCTION_LITERAL = 'func_literal'
    OTHER = 'other'


def classify(node: Node) -> NodeKind:
    """Map a tree-sitter node onto its NodeKind."""
    if node.type == NodeKind.CALL.value:
        return NodeKind.CALL
    if node.type == NodeKind.FUNCTION_LITERAL.value:
        return NodeKind.FUNCTION_LITERAL
    return NodeKind.OTHER


@dataclass(frozen=True)
class Diagnostic:
    """A single finding at a 1-based source position."""
    file_path: str
    line: int
    column: int  # byte column, as Go tooling reports it
    message: str
    function: str = ""  # Matched registry entry, e.g. 'time.Since'

    def format(self) -> str:
        """Render as 'path:line:col: message' (go vet style)."""
        return f"{self.file_path}:{self.line}:{self.column}: {self.message}"

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> 'Diagnostic':
        return cls(
            file_path=data['file_path'],
            line=data['line'],
            column=data['column'],
            message=data['message'],
            function=data.get('function', ''),
        )


def deferred_call(defer_node: Node) -> Optional[Node]:
    """The call_expression a defer statement schedules, if it has one."""
    for child in defer_node.named_children:
        if child.type == 'comment':
            continue
        return child if classify(child) is NodeKind.CALL else None
    return None


class EagerCallDetector:
    """Reports flagged calls evaluated at defer registration time.

    Every call reachable from the deferred call is checked on its own, so a
    flagged call is found at any depth and whatever consumes its result
    (``time.Since(t).Seconds()``). Function literal bodies are skipped: they
    run when the literal is invoked. An immediately invoked literal such as
    ``defer x((func() time.Duration { return time.Since(t) })())`` is
    therefore not reported.
    """

    def __init__(self, registry: FlaggedFunctionRegistry = DEFAULT_REGISTRY):
        self.registry = registry

    def _matches(self, call: Node, resolver: CalleeResolver) -> Optional[FunctionIdentity]:
        identity = resolver.resolve(call)
        if identity is not None and identity in self.registry:
            return identity
        return None

    def walk(self, call: Node, resolver: CalleeResolver) -> Iterator[Tuple[Node, FunctionIdentity]]:
        """Pre-order walk yielding (call node, matched identity) below and including ``call``."""
        stack = [call]
        while stack:
            current = stack.pop()
            kind = classify(current)

            if kind is NodeKind.FUNCTION_LITERAL:
                continue
            if kind is NodeKind.CALL:
                identity = self._matches(current, resolver)
                if identity is not None:
                    yield current, identity

            stack.extend(reversed(current.children))

    def check(self, defer_node: Node, resolver: CalleeResolver,
              file_path: str = '<input>') -> List[Diagnostic]:
        """Diagnostics for one defer statement.

        Args:
            defer_node: defer_statement node
            resolver: Callee resolver for the file containing the node
            file_path: Path reported in diagnostics

        Returns:
            One Diagnostic per flagged call, in source order
        """
        call = deferred_call(defer_node)
        if call is None:
            return []

        diagnostics = []
        for flagged, identity in self.walk(call, resolver):
            row, column = flagged.start_point
            diagnostics.append(Diagnostic(
                file_path=str(file_path),
                line=row + 1,
                column=column + 1,
                message=MESSAGE_TEMPLATE.format(function=identity),
                function=str(identity),
            ))
        return diagnostics
