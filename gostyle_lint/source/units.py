"""
Parser-neutral structural model.

Rules only ever see :class:`StructuralUnit` values: a kind tag, a source
position and an immutable mapping of kind-specific attributes. Nothing here
refers to tokens or parse trees, so an adapter for another front end can
produce the same units without touching rule logic.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


class UnitKind(str, Enum):
    FILE = "file"
    PACKAGE = "package"
    IMPORT = "import"
    FUNCTION = "function"
    TEST_FUNCTION = "test-function"
    INTERFACE = "interface"
    STRUCT = "struct"
    TYPE = "type"
    VAR = "var"
    GO = "go"
    DEFER = "defer"
    LOOP = "loop"
    SELECT = "select"
    CHANNEL_MAKE = "channel-make"
    CALL = "call"
    ERROR_CHECK = "error-check"
    ERROR_RETURN = "error-return"
    ERROR_CONSTRUCT = "error-construct"
    ERROR_COMPARE = "error-compare"
    ERROR_IGNORED = "error-ignored"


@dataclass(frozen=True)
class Param:
    """A parameter or result of a function signature."""

    name: Optional[str]
    type: str
    variadic: bool = False
    line: Optional[int] = None
    col: Optional[int] = None

    @property
    def is_pointer(self) -> bool:
        return self.type.startswith("*")


@dataclass(frozen=True)
class Receiver:
    """Method receiver."""

    name: Optional[str]
    type_name: str  # without pointer marker or type arguments
    pointer: bool
    line: Optional[int] = None
    col: Optional[int] = None


@dataclass(frozen=True)
class Field:
    """One line of a struct body."""

    names: Tuple[str, ...]  # empty for embedded fields
    type: str
    line: int
    col: int

    @property
    def embedded(self) -> bool:
        return not self.names


@dataclass(frozen=True)
class Method:
    """A method element of an interface."""

    name: str
    signature: str
    line: int


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, set):
        return frozenset(value)
    return value


@dataclass(frozen=True)
class StructuralUnit:
    """
    One syntactic construct of interest.

    Attributes:
        kind: Construct kind
        path: File the unit belongs to
        line: First line of the construct (1-indexed)
        col: First column of the construct (1-indexed)
        end_line: Last line of the construct
        attrs: Kind-specific attributes (read-only)
    """

    kind: UnitKind
    path: str
    line: int
    col: int
    end_line: int
    attrs: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(cls, kind: UnitKind, path: str, line: int, col: int,
               end_line: Optional[int] = None, **attrs: Any) -> "StructuralUnit":
        """Build a unit, freezing list/dict/set attributes."""
        frozen = MappingProxyType({key: _freeze(value) for key, value in attrs.items()})
        return cls(kind=kind, path=path, line=line, col=col,
                   end_line=end_line if end_line is not None else line, attrs=frozen)

    def __getitem__(self, key: str) -> Any:
        return self.attrs[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.attrs.get(key, default)


class UnitIndex:
    """Lookup tables over the units of one file, for cross-unit rules."""

    def __init__(self, units: Iterable[StructuralUnit]):
        self.units: Tuple[StructuralUnit, ...] = tuple(units)
        by_kind: Dict[UnitKind, list] = {kind: [] for kind in UnitKind}
        for unit in self.units:
            by_kind[unit.kind].append(unit)
        self._by_kind = {kind: tuple(items) for kind, items in by_kind.items()}

        self.interfaces = {u["name"]: u for u in self._by_kind[UnitKind.INTERFACE]}
        self.structs = {u["name"]: u for u in self._by_kind[UnitKind.STRUCT]}
        self.functions: Dict[str, StructuralUnit] = {}
        self.methods: Dict[Tuple[str, str], StructuralUnit] = {}
        for unit in self._by_kind[UnitKind.FUNCTION]:
            receiver = unit["receiver"]
            if receiver is None:
                self.functions.setdefault(unit["name"], unit)
            else:
                self.methods.setdefault((receiver.type_name, unit["name"]), unit)

        packages = self._by_kind[UnitKind.PACKAGE]
        self.package: Optional[str] = packages[0]["name"] if packages else None
