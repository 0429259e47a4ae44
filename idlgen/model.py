"""
Semantic model: the Module/Type graph built by the parser.

Types form a closed set of variants (``TYPE_VARIANTS``).  Code that
dispatches on a type matches every variant explicitly and raises
``TypeError`` for anything else, so adding a variant breaks loudly.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


class BasicType(enum.Enum):
    """Primitive IDL kinds, valued by their IDL spelling."""
    SHORT = "short"
    LONG = "long"
    LONG_LONG = "long long"
    USHORT = "unsigned short"
    ULONG = "unsigned long"
    ULONG_LONG = "unsigned long long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    CHAR = "char"
    WCHAR = "wchar"
    OCTET = "octet"
    ANY = "any"
    STRING = "string"
    WSTRING = "wstring"
    VOID = "void"


class Direction(enum.Enum):
    IN = "in"
    OUT = "out"
    INOUT = "inout"


class IdlType:
    """Common base of all type variants.

    The repository ID starts empty and is only ever set by ``#pragma ID``.
    """

    repository_id: str = ""

    def set_repository_id(self, repo_id: str):
        self.repository_id = repo_id

    def type_name(self) -> str:
        raise NotImplementedError


# ── Type variants ────────────────────────────────────────────────────

@dataclass
class SimpleType(IdlType):
    kind: BasicType

    def type_name(self) -> str:
        return self.kind.value


@dataclass
class SequenceType(IdlType):
    element: IdlType
    bound: int = -1  # -1 for unbounded

    def type_name(self) -> str:
        if self.bound < 0:
            return f"sequence<{self.element.type_name()}>"
        return f"sequence<{self.element.type_name()}, {self.bound}>"


@dataclass
class StructField:
    name: str
    type: IdlType


@dataclass(eq=False)
class StructType(IdlType):
    name: str
    fields: List[StructField] = field(default_factory=list)
    is_exception: bool = False

    def type_name(self) -> str:
        return self.name


@dataclass(eq=False)
class EnumType(IdlType):
    name: str
    elements: List[str] = field(default_factory=list)

    def type_name(self) -> str:
        return self.name

    def ordinal(self, element: str) -> int:
        return self.elements.index(element)


@dataclass(eq=False)
class TypeDef(IdlType):
    name: str
    target: IdlType

    def type_name(self) -> str:
        return self.name


@dataclass
class UnionCase:
    labels: List[str]
    name: str
    type: IdlType

    @property
    def is_default(self) -> bool:
        return "default" in self.labels


@dataclass(eq=False)
class UnionType(IdlType):
    name: str
    discriminant: IdlType
    cases: List[UnionCase] = field(default_factory=list)

    def type_name(self) -> str:
        return self.name


@dataclass
class Parameter:
    name: str
    type: IdlType
    direction: Direction = Direction.IN


@dataclass
class Operation:
    name: str
    return_type: IdlType
    parameters: List[Parameter] = field(default_factory=list)
    raises: List[str] = field(default_factory=list)
    oneway: bool = False


@dataclass
class Attribute:
    name: str
    type: IdlType
    readonly: bool = False


@dataclass(eq=False)
class InterfaceType(IdlType):
    name: str
    parents: List[str] = field(default_factory=list)
    operations: List[Operation] = field(default_factory=list)
    attributes: List[Attribute] = field(default_factory=list)
    types: Dict[str, IdlType] = field(default_factory=dict)

    def type_name(self) -> str:
        return self.name

    def add_type(self, name: str, typ: IdlType):
        self.types[name] = typ


@dataclass
class ScopedType(IdlType):
    """Unresolved reference: ``Name``, ``A::B::C`` or ``::A::B``."""
    name: str

    def type_name(self) -> str:
        return self.name

    @property
    def segments(self) -> List[str]:
        return [s for s in self.name.split("::") if s]

    @property
    def is_absolute(self) -> bool:
        return self.name.startswith("::")


TYPE_VARIANTS = (SimpleType, SequenceType, StructType, EnumType, TypeDef,
                 UnionType, InterfaceType, ScopedType)


@dataclass
class Constant:
    name: str
    type: IdlType
    value: str


# ── Modules ──────────────────────────────────────────────────────────

def generate_repository_id(path: List[str], type_name: str,
                           prefix: str = "", version: str = "1.0") -> str:
    """Build an ``IDL:prefix/A/B/Name:version`` repository ID."""
    parts = ([prefix] if prefix else []) + list(path) + [type_name]
    return f"IDL:{'/'.join(parts)}:{version}"


class Module:
    """
    A namespace node.

    Owns its types, constants and submodules.  ``parent`` is read only to
    compute qualified names, inherited prefixes and outward lookup; a
    submodule keeps its ancestors alive.
    """

    def __init__(self, name: str = "", parent: Optional["Module"] = None):
        self.name = name
        self.parent = parent
        self.types: Dict[str, IdlType] = {}
        self.submodules: Dict[str, "Module"] = {}
        self.constants: Dict[str, Constant] = {}
        self.prefix = ""

    def __repr__(self):
        return f"Module({self.full_name() or '<root>'!r})"

    @property
    def is_root(self) -> bool:
        return self.parent is None and self.name == ""

    # ── Mutation ─────────────────────────────────────────────────────

    def add_submodule(self, name: str) -> "Module":
        sub = Module(name, parent=self)
        self.submodules[name] = sub
        return sub

    def add_type(self, name: str, typ: IdlType):
        self.types[name] = typ

    def add_constant(self, const: Constant):
        self.constants[const.name] = const

    # ── Lookup ───────────────────────────────────────────────────────

    def get_submodule(self, name: str) -> Optional["Module"]:
        return self.submodules.get(name)

    def get_type(self, name: str) -> Optional[IdlType]:
        return self.types.get(name)

    def root(self) -> "Module":
        mod = self
        while mod.parent is not None:
            mod = mod.parent
        return mod

    def path(self) -> List[str]:
        """Module names from the outermost named module down to this one."""
        names = []
        mod = self
        while mod is not None:
            if mod.name:
                names.append(mod.name)
            mod = mod.parent
        return list(reversed(names))

    def full_name(self) -> str:
        return "::".join(self.path())

    def qualified_name(self, type_name: str) -> str:
        return "::".join(self.path() + [type_name])

    def all_types(self) -> Dict[str, IdlType]:
        """Every type in this module and below, keyed by ``::``-qualified name
        relative to this module."""
        result: Dict[str, IdlType] = dict(self.types)
        for sub_name, sub in self.submodules.items():
            for name, typ in sub.all_types().items():
                result[f"{sub_name}::{name}"] = typ
        return result

    def walk(self) -> Iterator["Module"]:
        """Depth-first, pre-order, declaration order."""
        yield self
        for sub in self.submodules.values():
            yield from sub.walk()

    # ── Repository IDs ───────────────────────────────────────────────

    def effective_prefix(self) -> str:
        mod = self
        while mod is not None:
            if mod.prefix:
                return mod.prefix
            mod = mod.parent
        return ""

    def repository_id(self, type_name: str, version: str = "1.0") -> str:
        """Derived repository ID for a type declared directly in this module."""
        return generate_repository_id(self.path(), type_name,
                                      self.effective_prefix(), version)

    def repository_id_of(self, name: str) -> str:
        """The stamped repository ID of a declared type, else the derived one."""
        typ = self.types[name]
        return typ.repository_id or self.repository_id(name)

    def types_by_repository_id(self) -> Dict[str, IdlType]:
        """Index every declared type below this module by repository ID, the
        view a runtime type registry consumes."""
        index: Dict[str, IdlType] = {}
        for mod in self.walk():
            for name, typ in mod.types.items():
                index[mod.repository_id_of(name)] = typ
                if isinstance(typ, InterfaceType):
                    for nested_name, nested in typ.types.items():
                        rid = nested.repository_id or generate_repository_id(
                            mod.path() + [name], nested_name,
                            mod.effective_prefix())
                        index[rid] = nested
        return index

    # ── Scoped lookup ────────────────────────────────────────────────

    def locate(self, segments: List[str]) -> Optional[Tuple["Module", IdlType]]:
        """Follow a path of names down from this module through submodules
        and interface-nested types.

        Returns ``(declaring module, type)`` or None when any step is
        missing.  For interface-nested types the declaring module is the one
        holding the interface.
        """
        if not segments:
            return None
        mod = self
        i = 0
        while i < len(segments) - 1 and segments[i] in mod.submodules:
            mod = mod.submodules[segments[i]]
            i += 1
        typ = mod.types.get(segments[i])
        for name in segments[i + 1:]:
            if not isinstance(typ, InterfaceType):
                return None
            typ = typ.types.get(name)
        if typ is None:
            return None
        return mod, typ

    def find(self, segments: List[str]) -> Optional[IdlType]:
        found = self.locate(segments)
        return found[1] if found else None

    def resolve(self, scoped: ScopedType) -> Optional[Tuple["Module", IdlType]]:
        """Resolve a reference the way IDL scoping does: absolute names from
        the root, relative names from this module outward."""
        if scoped.is_absolute:
            return self.root().locate(scoped.segments)
        mod = self
        while mod is not None:
            found = mod.locate(scoped.segments)
            if found is not None:
                return found
            mod = mod.parent
        return None
