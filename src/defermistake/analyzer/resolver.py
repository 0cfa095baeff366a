"""Best-effort static callee resolution for Go call expressions.

Works from syntax alone: import declarations map package names to import
paths, and lexical declarations in enclosing scopes shadow those names.
Calls that need type information (method values, interface dispatch,
function values) stay unresolved, which callers treat as a non-match.
"""
import re
from typing import Dict, List, Optional, Set
from tree_sitter import Node

from .registry import FunctionIdentity


# Nodes whose preceding siblings may declare names visible to later code
DECLARATION_TYPES = {
    'short_var_declaration',
    'var_declaration',
    'const_declaration',
    'parameter_list',
    'range_clause',
    'for_clause',
    'receive_statement',
}

_MAJOR_VERSION = re.compile(r'^v[0-9]+$')
_LEADING_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*')


def assumed_package_name(import_path: str) -> str:
    """Guess the package name an import path binds when it has no alias.

    'time' -> 'time', 'github.com/x/y/v2' -> 'y', 'gopkg.in/yaml.v3' ->
    'yaml', 'github.com/x/go-redis' -> 'redis'.
    """
    parts = [part for part in import_path.split('/') if part]
    if not parts:
        return ''
    base = parts[-1]
    if _MAJOR_VERSION.match(base) and len(parts) > 1:
        base = parts[-2]
    if base.startswith('go-'):
        base = base[3:]
    match = _LEADING_IDENTIFIER.match(base)
    return match.group(0) if match else ''


class CalleeResolver:
    """Resolves call expressions of one file to FunctionIdentity values."""

    def __init__(self, root: Node, source_code: bytes):
        """Index imports and package-level declarations of a file.

        Args:
            root: source_file node
            source_code: Bytes the tree was parsed from
        """
        self.source_code = source_code
        self.imports: Dict[str, str] = {}  # local package name -> import path
        self.dot_imports: List[str] = []
        self.package_names: Set[str] = set()  # package-level declarations

        for child in root.children:
            if child.type == 'import_declaration':
                self._index_imports(child)
            elif child.type in ('function_declaration', 'var_declaration',
                                'const_declaration', 'type_declaration'):
                self.package_names.update(self._top_level_names(child))

    def _text(self, node: Node) -> str:
        return self.source_code[node.start_byte:node.end_byte].decode('utf-8', errors='ignore')

    def _index_imports(self, node: Node):
        """Record every import_spec below an import declaration."""
        for child in node.children:
            if child.type == 'import_spec_list':
                self._index_imports(child)
            elif child.type == 'import_spec':
                path_node = child.child_by_field_name('path')
                if path_node is None:
                    continue
                import_path = self._text(path_node)[1:-1]
                name_node = child.child_by_field_name('name')
                local_name = self._text(name_node) if name_node else assumed_package_name(import_path)

                if local_name == '.':
                    self.dot_imports.append(import_path)
                elif local_name and local_name != '_':
                    self.imports[local_name] = import_path

    def _top_level_names(self, node: Node) -> Set[str]:
        if node.type == 'function_declaration':
            name_node = node.child_by_field_name('name')
            return {self._text(name_node)} if name_node else set()
        if node.type == 'type_declaration':
            return {
                self._text(spec.child_by_field_name('name'))
                for spec in node.named_children
                if spec.child_by_field_name('name') is not None
            }
        return self._spec_names(node)

    def _spec_names(self, node: Node) -> Set[str]:
        """Names bound by var/const specs, without entering function literals."""
        names = set()
        for child in node.named_children:
            if child.type in ('var_spec', 'const_spec'):
                names.update(self._text(n) for n in child.children_by_field_name('name'))
            elif child.type in ('var_spec_list', 'const_spec_list'):
                names.update(self._spec_names(child))
        return names

    def _identifiers(self, node: Optional[Node]) -> Set[str]:
        if node is None:
            return set()
        if node.type == 'identifier':
            return {self._text(node)}
        return {self._text(child) for child in node.named_children if child.type == 'identifier'}

    def _declared_names(self, node: Node) -> Set[str]:
        """Names a preceding sibling statement brings into scope."""
        kind = node.type
        if kind == 'short_var_declaration':
            return self._identifiers(node.child_by_field_name('left'))
        if kind in ('var_declaration', 'const_declaration'):
            return self._spec_names(node)
        if kind == 'parameter_list':
            names = set()
            for param in node.named_children:
                for name_node in param.children_by_field_name('name'):
                    names.add(self._text(name_node))
            return names
        if kind in ('range_clause', 'receive_statement'):
            if any(child.type == ':=' for child in node.children):
                return self._identifiers(node.child_by_field_name('left'))
            return set()
        if kind == 'for_clause':
            initializer = node.child_by_field_name('initializer')
            return self._declared_names(initializer) if initializer is not None else set()
        return set()

    def is_shadowed(self, name: str, use: Node) -> bool:
        """Whether a local declaration before ``use`` rebinds ``name``.

        Walks outwards through enclosing nodes and inspects the siblings
        preceding each one, so a declaration only counts in the scope that
        contains the use.
        """
        node = use
        while node.parent is not None:
            parent = node.parent
            for sibling in parent.children:
                if sibling.start_byte >= node.start_byte:
                    break
                if sibling.type in DECLARATION_TYPES:
                    if name in self._declared_names(sibling):
                        return True
                elif sibling.type == 'expression_list' and parent.type == 'type_switch_statement':
                    # switch name := v.(type)
                    if name in self._identifiers(sibling):
                        return True
            node = parent
        return False

    def resolve(self, call: Node) -> Optional[FunctionIdentity]:
        """Statically resolved target of a call_expression, or None.

        Args:
            call: call_expression node

        Returns:
            FunctionIdentity, or None when the target cannot be determined
        """
        function = call.child_by_field_name('function')
        while function is not None and function.type == 'parenthesized_expression':
            function = function.named_children[0] if function.named_children else None
        if function is None:
            return None

        if function.type == 'selector_expression':
            operand = function.child_by_field_name('operand')
            field = function.child_by_field_name('field')
            if operand is None or field is None or operand.type != 'identifier':
                return None
            package_name = self._text(operand)
            import_path = self.imports.get(package_name)
            if import_path is None or self.is_shadowed(package_name, operand):
                return None
            return FunctionIdentity(package=import_path, name=self._text(field))

        if function.type == 'identifier':
            # Only a single dot import makes an unqualified call unambiguous
            if len(self.dot_imports) != 1:
                return None
            name = self._text(function)
            if name in self.package_names or self.is_shadowed(name, function):
                return None
            return FunctionIdentity(package=self.dot_imports[0], name=name)

        return None
