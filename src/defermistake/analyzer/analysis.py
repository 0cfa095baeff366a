"""The defermistake analyzer: locator and detector composed over one file."""
from pathlib import Path
from typing import List, Optional
from tree_sitter import Tree

from .detector import Diagnostic, EagerCallDetector
from .locator import DeferralLocator
from .parser import LanguageParser
from .registry import FlaggedFunctionRegistry, DEFAULT_REGISTRY
from .resolver import CalleeResolver


DOC = """report common mistakes evaluating functions at defer invocation

The defermistake analysis reports if a function is evaluated when the defer is
invoked, but it is most likely intended to be evaluated when the deferred call
executes. For example, defer observe(time.Since(start)) hands observe a
duration near zero; write defer func() { observe(time.Since(start)) }()
instead.

time.Since is checked by default; more functions can be flagged with --flag
or DEFERMISTAKE_FLAGGED."""


class DeferMistakeAnalyzer:
    """Runs the deferral locator and eager-call detector over syntax trees."""

    NAME = 'defermistake'
    DOC = DOC

    def __init__(self, registry: Optional[FlaggedFunctionRegistry] = None):
        """Initialize analyzer.

        Args:
            registry: Flagged functions; defaults to time.Since only
        """
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.locator = DeferralLocator()
        self.detector = EagerCallDetector(self.registry)
        self._parser = None

    @property
    def parser(self) -> LanguageParser:
        if self._parser is None:
            self._parser = LanguageParser('go')
        return self._parser

    def analyze(self, tree: Tree, source_code: bytes, file_path: str = '<input>') -> List[Diagnostic]:
        """Diagnostics for every defer statement of a parsed file, in source order.

        Args:
            tree: Parsed tree-sitter Tree
            source_code: Bytes the tree was parsed from
            file_path: Path reported in diagnostics

        Returns:
            List of Diagnostic objects (empty when nothing is flagged)
        """
        root = tree.root_node
        resolver = CalleeResolver(root, source_code)

        diagnostics = []
        for defer_node in self.locator.find(root):
            diagnostics.extend(self.detector.check(defer_node, resolver, file_path))
        return diagnostics

    def analyze_source(self, source_code: bytes | str, file_path: str = '<input>') -> List[Diagnostic]:
        """Parse and analyze in-memory Go source."""
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')
        tree = self.parser.parse_source(source_code)
        return self.analyze(tree, source_code, file_path)

    def analyze_file(self, file_path: str | Path) -> Optional[List[Diagnostic]]:
        """Parse and analyze a Go file.

        Returns:
            List of diagnostics, or None if the file could not be read
        """
        source_code = self.parser.read_source(file_path)
        if source_code is None:
            return None

        tree = self.parser.parse_checked(source_code, str(file_path))
        return self.analyze(tree, source_code, str(file_path))


def analyze(tree: Tree, source_code: bytes, file_path: str = '<input>',
            registry: Optional[FlaggedFunctionRegistry] = None) -> List[Diagnostic]:
    """Analyze one parsed Go file with the given (or default) registry."""
    return DeferMistakeAnalyzer(registry).analyze(tree, source_code, file_path)
