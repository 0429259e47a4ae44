"""
Artifact records: the structured, text-free description of each Go file the
generator emits.

``describe_module()`` turns one module's declarations into records; the
renderer turns records into text.  All IDL-to-Go naming decisions live here.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple

from .model import (Constant, Direction, EnumType, IdlType, InterfaceType, Module,
                    ScopedType, SequenceType, SimpleType, StructType, TYPE_VARIANTS,
                    TypeDef, UnionType, generate_repository_id)
from .types import capitalize, go_local, go_package, go_type, uncapitalize

logger = logging.getLogger(__name__)

# Fixed dependency of every generated file on the broker runtime.
RUNTIME_IMPORT = "github.com/ifabos/go-corba/corba"

# Identifiers the generated stub and servant bodies declare themselves.
_RESERVED_LOCALS = {"stub", "servant", "reply", "values", "ok", "err",
                    "result", "args", "methodName"}


def _local(name: str) -> str:
    local = go_local(name)
    return local + "_" if local in _RESERVED_LOCALS else local


# ── Records ──────────────────────────────────────────────────────────

@dataclass
class Header:
    package: str
    imports: List[str] = field(default_factory=list)


@dataclass
class Artifact:
    """Base record.  ``template`` names the renderer template to use."""
    template: ClassVar[str] = ""

    name: str            # Go type name
    filename: str        # file name within the module directory
    header: Header
    repository_id: str


@dataclass
class GoField:
    name: str
    go_type: str


@dataclass
class StructArtifact(Artifact):
    template: ClassVar[str] = "struct.go.jinja2"

    fields: List[GoField] = field(default_factory=list)
    is_exception: bool = False


@dataclass
class EnumMember:
    const: str           # Go constant name, e.g. Color_RED
    label: str           # IDL element name, used by String()


@dataclass
class EnumArtifact(Artifact):
    template: ClassVar[str] = "enum.go.jinja2"

    members: List[EnumMember] = field(default_factory=list)

    @property
    def names_var(self) -> str:
        return uncapitalize(self.name) + "Names"


@dataclass
class TypedefArtifact(Artifact):
    template: ClassVar[str] = "typedef.go.jinja2"

    target: str = ""


@dataclass
class DiscriminantConst:
    const: str
    value: str


@dataclass
class GoUnionCase:
    name: str                       # capitalized, used in GetX / SetX
    go_type: str
    constants: List[str] = field(default_factory=list)
    is_default: bool = False
    other_constants: List[str] = field(default_factory=list)


@dataclass
class UnionArtifact(Artifact):
    template: ClassVar[str] = "union.go.jinja2"

    discriminant: str = ""
    labels: List[DiscriminantConst] = field(default_factory=list)
    cases: List[GoUnionCase] = field(default_factory=list)


@dataclass
class GoParam:
    name: str
    go_type: str


@dataclass
class GoMethod:
    name: str                       # exported Go method name
    remote_name: str                # operation name on the wire
    inputs: List[GoParam] = field(default_factory=list)
    results: List[GoParam] = field(default_factory=list)
    oneway: bool = False


@dataclass
class GoAttribute:
    name: str                       # capitalized, used in GetX / SetX
    remote_name: str
    go_type: str
    readonly: bool = False


@dataclass
class InterfaceArtifact(Artifact):
    template: ClassVar[str] = "interface.go.jinja2"

    parents: List[str] = field(default_factory=list)
    methods: List[GoMethod] = field(default_factory=list)
    attributes: List[GoAttribute] = field(default_factory=list)


@dataclass
class GoConst:
    name: str
    go_type: str
    value: str


@dataclass
class ConstantsArtifact(Artifact):
    template: ClassVar[str] = "constants.go.jinja2"

    constants: List[GoConst] = field(default_factory=list)


def make_header(package: str, includes: List[str], uses_fmt: bool = False) -> Header:
    imports = ["fmt"] if uses_fmt else []
    for path in list(includes) + [RUNTIME_IMPORT]:
        if path not in imports:
            imports.append(path)
    return Header(package=package, imports=imports)


# ── Go type mapping ──────────────────────────────────────────────────

class GoTypeMapper:
    """
    Maps model types to Go type expressions as seen from one module.

    Types declared in the same module are referenced by bare name, others as
    ``<package dir>.<Name>``.  Inside an interface, names of its nested types
    map to the ``<Interface>_<Name>`` artifacts.
    """

    def __init__(self, module: Module, interface: Optional[InterfaceType] = None):
        self.module = module
        self.interface = interface

    def go_type(self, typ: IdlType) -> str:
        if isinstance(typ, SimpleType):
            return go_type(typ.kind)
        if isinstance(typ, SequenceType):
            return "[]" + self.go_type(typ.element)
        if isinstance(typ, ScopedType):
            return self._scoped(typ)
        if isinstance(typ, (StructType, EnumType, TypeDef, UnionType, InterfaceType)):
            return typ.name
        raise TypeError(f"no Go mapping for {type(typ).__name__}")

    def lookup(self, scoped: ScopedType) -> Optional[Tuple[Module, IdlType]]:
        segments = scoped.segments
        if (self.interface is not None and not scoped.is_absolute
                and len(segments) == 1 and segments[0] in self.interface.types):
            return self.module, self.interface.types[segments[0]]
        return self.module.resolve(scoped)

    def _scoped(self, scoped: ScopedType) -> str:
        segments = scoped.segments
        if (self.interface is not None and not scoped.is_absolute
                and len(segments) == 1 and segments[0] in self.interface.types):
            return f"{self.interface.name}_{segments[0]}"

        found = self.module.resolve(scoped)
        if found is None:
            logger.debug("unresolved reference %s in module %r",
                         scoped.name, self.module.full_name())
            if len(segments) == 1:
                return segments[0]
            return f"{go_package(segments[-2])}.{segments[-1]}"

        owner, typ = found
        name = segments[-1]
        if owner.types.get(name) is not typ:
            # Declared inside an interface of ``owner``.
            for iface_name, iface in owner.types.items():
                if isinstance(iface, InterfaceType) and iface.types.get(name) is typ:
                    name = f"{iface_name}_{name}"
                    break
        if owner is self.module or not owner.name:
            return name
        return f"{go_package(owner.name)}.{name}"

    def enum_name(self, typ: IdlType) -> Optional[str]:
        """Go name of the enum ``typ`` denotes, following typedefs."""
        for _ in range(8):
            if not isinstance(typ, ScopedType):
                return None
            found = self.lookup(typ)
            if found is None:
                return None
            target = found[1]
            if isinstance(target, EnumType):
                return self.go_type(typ)
            if not isinstance(target, TypeDef):
                return None
            typ = target.target
        return None


# ── Describing declarations ──────────────────────────────────────────

def _go_value(text: str) -> str:
    """IDL literal expression → Go expression."""
    text = re.sub(r"\bTRUE\b", "true", text)
    text = re.sub(r"\bFALSE\b", "false", text)
    return text


class ArtifactBuilder:
    """Builds the records for the declarations of one module."""

    def __init__(self, module: Module, package: str, includes: List[str]):
        self.module = module
        self.package = package
        self.includes = list(includes)

    def header(self, uses_fmt: bool = False) -> Header:
        return make_header(self.package, self.includes, uses_fmt)

    def describe(self, name: str, typ: IdlType) -> List[Artifact]:
        """Records for one declared type; an interface also yields its
        nested types."""
        if not isinstance(typ, TYPE_VARIANTS):
            raise TypeError(f"unknown type variant {type(typ).__name__}")
        repo_id = typ.repository_id or self.module.repository_id(name)
        mapper = GoTypeMapper(self.module)

        if isinstance(typ, InterfaceType):
            artifacts: List[Artifact] = [self._interface(name, typ, repo_id)]
            nested_mapper = GoTypeMapper(self.module, typ)
            for nested_name, nested in typ.types.items():
                nested_id = nested.repository_id or generate_repository_id(
                    self.module.path() + [name], nested_name,
                    self.module.effective_prefix())
                artifacts.append(self._declared(f"{name}_{nested_name}", nested,
                                                nested_id, nested_mapper))
            return artifacts
        return [self._declared(name, typ, repo_id, mapper)]

    def _declared(self, go_name: str, typ: IdlType, repo_id: str,
                  mapper: GoTypeMapper) -> Artifact:
        if isinstance(typ, StructType):
            return self._struct(go_name, typ, repo_id, mapper)
        if isinstance(typ, EnumType):
            return self._enum(go_name, typ, repo_id)
        if isinstance(typ, TypeDef):
            return self._typedef(go_name, typ, repo_id, mapper)
        if isinstance(typ, UnionType):
            return self._union(go_name, typ, repo_id, mapper)
        if isinstance(typ, InterfaceType):
            raise TypeError(f"interface {typ.name!r} cannot be nested")
        if isinstance(typ, (SimpleType, SequenceType, ScopedType)):
            raise TypeError(f"{type(typ).__name__} is not a declared type")
        raise TypeError(f"unknown type variant {type(typ).__name__}")

    def _filename(self, go_name: str) -> str:
        return go_name.lower() + ".go"

    def _struct(self, go_name, typ: StructType, repo_id, mapper) -> StructArtifact:
        return StructArtifact(
            name=go_name, filename=self._filename(go_name),
            header=self.header(), repository_id=repo_id,
            fields=[GoField(capitalize(f.name), mapper.go_type(f.type))
                    for f in typ.fields],
            is_exception=typ.is_exception,
        )

    def _enum(self, go_name, typ: EnumType, repo_id) -> EnumArtifact:
        return EnumArtifact(
            name=go_name, filename=self._filename(go_name),
            header=self.header(uses_fmt=True), repository_id=repo_id,
            members=[EnumMember(f"{go_name}_{e}", e) for e in typ.elements],
        )

    def _typedef(self, go_name, typ: TypeDef, repo_id, mapper) -> TypedefArtifact:
        return TypedefArtifact(
            name=go_name, filename=self._filename(go_name),
            header=self.header(), repository_id=repo_id,
            target=mapper.go_type(typ.target),
        )

    def _union(self, go_name, typ: UnionType, repo_id, mapper) -> UnionArtifact:
        enum_prefix = mapper.enum_name(typ.discriminant)

        def label_value(label: str) -> str:
            if label in ("TRUE", "FALSE"):
                return label.lower()
            if label[:1].isalpha() or label[:1] in ("_", ":"):
                element = label.split("::")[-1]
                return f"{enum_prefix}_{element}" if enum_prefix else element
            return label

        labels: List[DiscriminantConst] = []
        cases: List[GoUnionCase] = []
        for case in typ.cases:
            consts = []
            explicit = [l for l in case.labels if l != "default"]
            for i, label in enumerate(explicit):
                const = f"{go_name}_{case.name}_Case" + (str(i + 1) if i else "")
                consts.append(const)
                labels.append(DiscriminantConst(const, label_value(label)))
            cases.append(GoUnionCase(capitalize(case.name),
                                     mapper.go_type(case.type),
                                     consts, case.is_default))

        for case in cases:
            if case.is_default:
                case.other_constants = [l.const for l in labels
                                        if l.const not in case.constants]

        return UnionArtifact(
            name=go_name, filename=self._filename(go_name),
            header=self.header(), repository_id=repo_id,
            discriminant=mapper.go_type(typ.discriminant),
            labels=labels, cases=cases,
        )

    def _interface(self, name, typ: InterfaceType, repo_id) -> InterfaceArtifact:
        mapper = GoTypeMapper(self.module, typ)

        methods = []
        for op in typ.operations:
            inputs, results = [], []
            ret = mapper.go_type(op.return_type)
            if ret:
                results.append(GoParam("result", ret))
            for p in op.parameters:
                param = GoParam(_local(p.name), mapper.go_type(p.type))
                if p.direction in (Direction.IN, Direction.INOUT):
                    inputs.append(param)
                if p.direction == Direction.OUT:
                    results.append(param)
                elif p.direction == Direction.INOUT:
                    results.append(GoParam(param.name + "Out", param.go_type))
            methods.append(GoMethod(capitalize(op.name), op.name, inputs,
                                    results, op.oneway))

        attributes = [GoAttribute(capitalize(a.name), a.name,
                                  mapper.go_type(a.type), a.readonly)
                      for a in typ.attributes]

        return InterfaceArtifact(
            name=name, filename=self._filename(name),
            header=self.header(uses_fmt=True), repository_id=repo_id,
            parents=[mapper.go_type(ScopedType(p)) for p in typ.parents],
            methods=methods, attributes=attributes,
        )

    def constants(self, constants: List[Constant]) -> ConstantsArtifact:
        mapper = GoTypeMapper(self.module)
        return ConstantsArtifact(
            name="constants", filename="constants.go",
            header=self.header(), repository_id="",
            constants=[GoConst(c.name, mapper.go_type(c.type), _go_value(c.value))
                       for c in constants],
        )


def describe_module(module: Module, package: str, includes: List[str]) -> List[Artifact]:
    """Records for every declaration of ``module`` (not its submodules), in
    declaration order, followed by its constants file if it has constants."""
    builder = ArtifactBuilder(module, package, includes)
    artifacts: List[Artifact] = []
    for name, typ in module.types.items():
        artifacts.extend(builder.describe(name, typ))
    if module.constants:
        artifacts.append(builder.constants(list(module.constants.values())))
    return _unique_filenames(artifacts)


def _unique_filenames(artifacts: List[Artifact]) -> List[Artifact]:
    """Suffix ``_2``, ``_3``... onto any file name an earlier record took."""
    taken = set()
    for artifact in artifacts:
        filename = artifact.filename
        stem = filename[:-len(".go")]
        n = 2
        while filename in taken:
            filename = f"{stem}_{n}.go"
            n += 1
        if filename != artifact.filename:
            logger.warning("%s: %s is already taken, writing %s instead",
                           artifact.name, artifact.filename, filename)
            artifact.filename = filename
        taken.add(filename)
    return artifacts
