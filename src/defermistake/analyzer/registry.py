"""Registry of functions that must not be evaluated when a defer is registered."""
import hashlib
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple


_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass(frozen=True, order=True)
class FunctionIdentity:
    """Statically resolved target of a call: (import path, function name)."""
    package: str  # Import path, e.g. 'time' or 'example.com/metrics'
    name: str

    def __str__(self) -> str:
        return f"{self.package}.{self.name}"

    @classmethod
    def parse(cls, spec: str) -> 'FunctionIdentity':
        """Parse 'import/path.Name' into a FunctionIdentity.

        The split happens at the last '.', so dotted import paths such as
        'example.com/metrics.Elapsed' keep their host part.

        Args:
            spec: Function spec string

        Returns:
            Parsed FunctionIdentity

        Raises:
            ValueError: If the spec has no package part or the name is not
                a Go identifier
        """
        spec = spec.strip()
        package, sep, name = spec.rpartition('.')
        if not sep or not package or not _IDENTIFIER.match(name):
            raise ValueError(
                f"Invalid function spec '{spec}'. "
                f"Expected <import path>.<Name>, e.g. time.Since"
            )
        if package.endswith('/'):
            raise ValueError(f"Invalid function spec '{spec}': empty package name")
        return cls(package=package, name=name)


class FlaggedFunctionRegistry:
    """Immutable set of functions flagged when evaluated eagerly in a defer.

    Passed into the detector at construction so tests and the CLI can supply
    their own entries.
    """

    def __init__(self, entries: Iterable[FunctionIdentity] = ()):
        self._entries = frozenset(entries)

    @classmethod
    def from_specs(cls, specs: Iterable[str]) -> 'FlaggedFunctionRegistry':
        """Build a registry from 'path.Name' strings (see FunctionIdentity.parse)."""
        return cls(FunctionIdentity.parse(spec) for spec in specs if spec.strip())

    def with_entries(self, entries: Iterable[FunctionIdentity]) -> 'FlaggedFunctionRegistry':
        """Return a new registry holding these entries plus the given ones."""
        return FlaggedFunctionRegistry(self._entries.union(entries))

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __iter__(self) -> Iterator[FunctionIdentity]:
        return iter(sorted(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FlaggedFunctionRegistry):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"FlaggedFunctionRegistry({[str(entry) for entry in self]})"

    def fingerprint(self) -> str:
        """Stable digest of the entries, used to key cached results."""
        joined = '\n'.join(str(entry) for entry in self)
        return hashlib.sha256(joined.encode('utf-8')).hexdigest()[:16]

    def describe(self) -> List[Tuple[str, str]]:
        """Rows of (package, name) in sorted order for display."""
        return [(entry.package, entry.name) for entry in self]


TIME_SINCE = FunctionIdentity(package='time', name='Since')

DEFAULT_REGISTRY = FlaggedFunctionRegistry([TIME_SINCE])
