"""
Parser: recursive-descent parser that builds the semantic model from a
token stream, handling ``#include`` and ``#pragma`` lines on the way.
"""

import contextlib
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set, Tuple

from .errors import IdlError, IncludeError, ParseError
from .lexer import (Lexer, Token, TOK_KEYWORD, TOK_IDENT, TOK_NUMBER,
                    TOK_STRING, TOK_CHAR, TOK_SYMBOL, TOK_OP, TOK_PREPROC,
                    TOK_EOF)
from .model import (Attribute, BasicType, Constant, Direction, EnumType,
                    IdlType, InterfaceType, Module, Operation, Parameter,
                    ScopedType, SequenceType, SimpleType, StructField,
                    StructType, TypeDef, UnionCase, UnionType)

logger = logging.getLogger(__name__)

# Single-token primitives.  "long" and "unsigned" need lookahead and are
# handled in _parse_type.
PRIMITIVES = {
    "short":   BasicType.SHORT,
    "float":   BasicType.FLOAT,
    "double":  BasicType.DOUBLE,
    "boolean": BasicType.BOOLEAN,
    "char":    BasicType.CHAR,
    "wchar":   BasicType.WCHAR,
    "octet":   BasicType.OCTET,
    "any":     BasicType.ANY,
    "string":  BasicType.STRING,
    "wstring": BasicType.WSTRING,
    "void":    BasicType.VOID,
}

# Keywords that introduce a named type declaration.
TYPE_DECLARATIONS = {"struct", "enum", "typedef", "union", "exception"}

DIRECTIONS = {d.value: d for d in Direction}

_INCLUDE_RE = re.compile(r'#\s*include\s*(?:<([^>]+)>|"([^"]+)")\s*$')
_PRAGMA_RE = re.compile(r"#\s*pragma\s+(\w+)\s*(.*)$")
_PRAGMA_ID_RE = re.compile(
    r'((?:::)?[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*)\s+"([^"]*)"\s*$')
_PRAGMA_PREFIX_RE = re.compile(r'"([^"]*)"\s*$')
_PRAGMA_VERSION_RE = re.compile(
    r"((?:::)?[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*)\s+(\d+\.\d+)\s*$")

# Resolver callback: include path → source text, a readable stream, or None.
Resolver = Callable[[str], object]


def _read_source(source) -> str:
    """Return the text of a string or readable stream, closing the stream."""
    if isinstance(source, str):
        return source
    if hasattr(source, "close"):
        with contextlib.closing(source):
            data = source.read()
    else:
        data = source.read()
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return data


# ── Include session ──────────────────────────────────────────────────

@dataclass
class IncludeSession:
    """
    State shared by the outermost parse and every nested include parse.

    ``included`` holds the literal include texts already processed; the
    check is textual, so two spellings of one file are parsed twice.
    """
    resolver: Optional[Resolver] = None
    include_dirs: List[str] = field(default_factory=list)
    included: Set[str] = field(default_factory=set)

    def load(self, path: str, current_file: str) -> Optional[Tuple[str, str]]:
        """
        Find an include and return ``(text, filename)``, or None.

        Search order: the resolver callback, the directory of the file being
        parsed, then each include directory in order.  ``<path>`` and
        ``"path"`` forms share this order.
        """
        if self.resolver is not None:
            try:
                source = self.resolver(path)
            except FileNotFoundError:
                source = None
            if source is not None:
                return _read_source(source), path

        candidates = []
        if current_file and not current_file.startswith("<"):
            candidates.append(os.path.join(os.path.dirname(current_file), path))
        candidates.extend(os.path.join(d, path) for d in self.include_dirs)

        for candidate in candidates:
            if os.path.isfile(candidate):
                with open(candidate, encoding="utf-8") as f:
                    return f.read(), candidate
        return None


# ── Parser ───────────────────────────────────────────────────────────

class Parser:
    """
    Recursive-descent parser for CORBA IDL.

    Pulls tokens one at a time from a ``Lexer`` and registers declarations
    in ``current_module``.  A parser created for an ``#include`` starts in
    its includer's current module and shares its ``IncludeSession``.
    """

    def __init__(self, lexer: Lexer, session: Optional[IncludeSession] = None,
                 module: Optional[Module] = None):
        self.lexer = lexer
        self.filename = lexer.filename
        self.session = session if session is not None else IncludeSession()
        self.module = module if module is not None else Module()
        self.current_module = self.module
        self.tok = lexer.next()

    # ── Token helpers ────────────────────────────────────────────────

    def peek(self) -> Token:
        return self.tok

    def advance(self) -> Token:
        tok = self.tok
        self.tok = self.lexer.next()
        return tok

    def _unexpected(self, tok: Token, expected: str) -> ParseError:
        return ParseError(f"expected {expected}, got {tok.describe()}",
                          tok.filename, tok.line, tok.column)

    def _at(self, kind: str, value: str) -> bool:
        return self.tok.kind == kind and self.tok.value == value

    def _at_symbol(self, value: str) -> bool:
        return self._at(TOK_SYMBOL, value)

    def _at_keyword(self, value: str) -> bool:
        return self._at(TOK_KEYWORD, value)

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        tok = self.tok
        if tok.kind != kind or (value is not None and tok.value != value):
            raise self._unexpected(tok, repr(value) if value is not None else kind)
        return self.advance()

    def expect_ident(self, what: str) -> str:
        if self.tok.kind != TOK_IDENT:
            raise self._unexpected(self.tok, what)
        return self.advance().value

    # ── Top-level ────────────────────────────────────────────────────

    def parse(self) -> Module:
        """Parse to end of input and return the module parsing started in."""
        while self.tok.kind != TOK_EOF:
            self._parse_item()
        return self.module

    def _parse_item(self):
        if self.tok.kind == TOK_PREPROC:
            self._parse_directive()
        else:
            self._parse_definition()

    def _parse_definition(self):
        tok = self.tok
        if tok.kind == TOK_KEYWORD:
            if tok.value == "module":
                return self._parse_module()
            if tok.value == "interface":
                return self._parse_interface()
            if tok.value == "const":
                return self._parse_const()
            if tok.value in TYPE_DECLARATIONS:
                for name, typ in self._parse_type_declaration():
                    self.current_module.add_type(name, typ)
                return
        raise self._unexpected(
            tok, "'module', 'interface', 'struct', 'enum', 'typedef', "
                 "'union', 'const' or 'exception'")

    # ── Modules ──────────────────────────────────────────────────────

    def _parse_module(self):
        self.expect(TOK_KEYWORD, "module")
        name = self.expect_ident("module name")
        self.expect(TOK_SYMBOL, "{")

        parent = self.current_module
        module = parent.get_submodule(name) or parent.add_submodule(name)
        self.current_module = module
        try:
            while not self._at_symbol("}"):
                self._parse_item()
        finally:
            self.current_module = parent

        self.expect(TOK_SYMBOL, "}")
        self.expect(TOK_SYMBOL, ";")

    # ── Interfaces ───────────────────────────────────────────────────

    def _parse_interface(self):
        self.expect(TOK_KEYWORD, "interface")
        name = self.expect_ident("interface name")

        # Forward declaration.
        if self._at_symbol(";"):
            self.advance()
            return

        iface = InterfaceType(name=name)
        if self._at_symbol(":"):
            self.advance()
            iface.parents.append(self._parse_scoped_name())
            while self._at_symbol(","):
                self.advance()
                iface.parents.append(self._parse_scoped_name())

        self.expect(TOK_SYMBOL, "{")
        while not self._at_symbol("}"):
            self._parse_export(iface)
        self.expect(TOK_SYMBOL, "}")
        self.expect(TOK_SYMBOL, ";")

        self.current_module.add_type(name, iface)

    def _parse_export(self, iface: InterfaceType):
        tok = self.tok
        if tok.kind == TOK_PREPROC:
            self._parse_directive()
        elif tok.kind == TOK_KEYWORD and tok.value in ("readonly", "attribute"):
            iface.attributes.extend(self._parse_attribute())
        elif tok.kind == TOK_KEYWORD and tok.value in TYPE_DECLARATIONS:
            for nested_name, nested in self._parse_type_declaration():
                iface.add_type(nested_name, nested)
        else:
            iface.operations.append(self._parse_operation())

    def _parse_attribute(self) -> List[Attribute]:
        readonly = False
        if self._at_keyword("readonly"):
            self.advance()
            readonly = True
        self.expect(TOK_KEYWORD, "attribute")
        typ = self._parse_type()
        names = self._parse_declarators("attribute name")
        self.expect(TOK_SYMBOL, ";")
        return [Attribute(name=n, type=typ, readonly=readonly) for n in names]

    def _parse_operation(self) -> Operation:
        oneway = False
        if self._at_keyword("oneway"):
            self.advance()
            oneway = True

        return_type = self._parse_type()
        name = self.expect_ident("operation name")

        self.expect(TOK_SYMBOL, "(")
        params: List[Parameter] = []
        if not self._at_symbol(")"):
            params.append(self._parse_param())
            while self._at_symbol(","):
                self.advance()
                params.append(self._parse_param())
        self.expect(TOK_SYMBOL, ")")

        raises: List[str] = []
        if self._at_keyword("raises"):
            self.advance()
            self.expect(TOK_SYMBOL, "(")
            raises.append(self._parse_scoped_name())
            while self._at_symbol(","):
                self.advance()
                raises.append(self._parse_scoped_name())
            self.expect(TOK_SYMBOL, ")")

        self.expect(TOK_SYMBOL, ";")
        return Operation(name=name, return_type=return_type, parameters=params,
                         raises=raises, oneway=oneway)

    def _parse_param(self) -> Parameter:
        direction = Direction.IN
        if self.tok.kind == TOK_KEYWORD and self.tok.value in DIRECTIONS:
            direction = DIRECTIONS[self.advance().value]
        typ = self._parse_type()
        name = self.expect_ident("parameter name")
        return Parameter(name=name, type=typ, direction=direction)

    # ── Types ────────────────────────────────────────────────────────

    def _parse_type(self) -> IdlType:
        tok = self.tok
        if tok.kind == TOK_KEYWORD:
            if tok.value == "sequence":
                return self._parse_sequence()
            if tok.value == "unsigned":
                self.advance()
                if self._at_keyword("short"):
                    self.advance()
                    return SimpleType(BasicType.USHORT)
                if self._at_keyword("long"):
                    self.advance()
                    if self._at_keyword("long"):
                        self.advance()
                        return SimpleType(BasicType.ULONG_LONG)
                    return SimpleType(BasicType.ULONG)
                raise self._unexpected(self.tok, "'short' or 'long' after 'unsigned'")
            if tok.value == "long":
                self.advance()
                if self._at_keyword("long"):
                    self.advance()
                    return SimpleType(BasicType.LONG_LONG)
                return SimpleType(BasicType.LONG)
            if tok.value in PRIMITIVES:
                self.advance()
                return SimpleType(PRIMITIVES[tok.value])
        if tok.kind == TOK_IDENT or self._at_symbol("::"):
            return ScopedType(name=self._parse_scoped_name())
        raise self._unexpected(tok, "a type")

    def _parse_sequence(self) -> SequenceType:
        self.expect(TOK_KEYWORD, "sequence")
        self.expect(TOK_OP, "<")
        element = self._parse_type()
        bound = -1
        if self._at_symbol(","):
            self.advance()
            num = self.expect(TOK_NUMBER)
            if not re.fullmatch(r"[0-9]+", num.value):
                raise ParseError(f"sequence bound must be an integer, got {num.value!r}",
                                 num.filename, num.line, num.column)
            bound = int(num.value)
        self._expect_closing_angle()
        return SequenceType(element=element, bound=bound)

    def _expect_closing_angle(self):
        tok = self.tok
        if self._at(TOK_OP, ">"):
            self.advance()
        elif self._at(TOK_OP, ">>"):
            # Closes two nested sequences: consume one '>' and leave the other.
            self.tok = Token(TOK_OP, ">", tok.line, tok.column + 1, tok.filename)
        else:
            raise self._unexpected(tok, "'>'")

    def _parse_scoped_name(self) -> str:
        parts = []
        if self._at_symbol("::"):
            self.advance()
            parts.append("")
        parts.append(self.expect_ident("identifier"))
        while self._at_symbol("::"):
            self.advance()
            parts.append(self.expect_ident("identifier after '::'"))
        return "::".join(parts)

    def _parse_declarators(self, what: str) -> List[str]:
        names = [self.expect_ident(what)]
        while self._at_symbol(","):
            self.advance()
            names.append(self.expect_ident(what))
        return names

    # ── Named type declarations ──────────────────────────────────────

    def _parse_type_declaration(self) -> List[Tuple[str, IdlType]]:
        """Parse one struct/enum/typedef/union/exception declaration and
        return the ``(name, type)`` pairs it declares."""
        kw = self.tok.value
        if kw == "struct":
            struct = self._parse_struct()
            return [(struct.name, struct)] if struct is not None else []
        if kw == "exception":
            exc = self._parse_exception()
            return [(exc.name, exc)]
        if kw == "enum":
            enum_type = self._parse_enum()
            return [(enum_type.name, enum_type)]
        if kw == "union":
            union = self._parse_union()
            return [(union.name, union)]
        return self._parse_typedef()

    def _parse_members(self) -> List[StructField]:
        self.expect(TOK_SYMBOL, "{")
        fields: List[StructField] = []
        while not self._at_symbol("}"):
            typ = self._parse_type()
            for name in self._parse_declarators("field name"):
                fields.append(StructField(name=name, type=typ))
            self.expect(TOK_SYMBOL, ";")
        self.expect(TOK_SYMBOL, "}")
        return fields

    def _parse_struct(self) -> Optional[StructType]:
        self.expect(TOK_KEYWORD, "struct")
        name = self.expect_ident("struct name")
        if self._at_symbol(";"):
            self.advance()
            return None
        fields = self._parse_members()
        self.expect(TOK_SYMBOL, ";")
        return StructType(name=name, fields=fields)

    def _parse_exception(self) -> StructType:
        self.expect(TOK_KEYWORD, "exception")
        name = self.expect_ident("exception name")
        fields = self._parse_members()
        self.expect(TOK_SYMBOL, ";")
        return StructType(name=name, fields=fields, is_exception=True)

    def _parse_enum(self) -> EnumType:
        self.expect(TOK_KEYWORD, "enum")
        name = self.expect_ident("enum name")
        self.expect(TOK_SYMBOL, "{")

        elements: List[str] = []
        while True:
            tok = self.tok
            element = self.expect_ident("enum element name")
            if element in elements:
                raise ParseError(f"duplicate element {element!r} in enum {name!r}",
                                 tok.filename, tok.line, tok.column)
            elements.append(element)
            if not self._at_symbol(","):
                break
            self.advance()
            if self._at_symbol("}"):
                break  # trailing comma

        self.expect(TOK_SYMBOL, "}")
        self.expect(TOK_SYMBOL, ";")
        return EnumType(name=name, elements=elements)

    def _parse_typedef(self) -> List[Tuple[str, IdlType]]:
        self.expect(TOK_KEYWORD, "typedef")

        if self._at_keyword("struct"):
            self.advance()
            tag = None
            if self.tok.kind == TOK_IDENT:
                tag = self.advance().value
            if tag is not None and not self._at_symbol("{"):
                # typedef struct Tag Alias; refers to an existing struct.
                target: IdlType = ScopedType(name=tag)
            else:
                fields = self._parse_members()
                name = self.expect_ident("typedef name")
                self.expect(TOK_SYMBOL, ";")
                if tag is None:
                    return [(name, StructType(name=name, fields=fields))]
                return [(tag, StructType(name=tag, fields=fields)),
                        (name, TypeDef(name=name, target=ScopedType(name=tag)))]
        else:
            target = self._parse_type()

        names = self._parse_declarators("typedef name")
        self.expect(TOK_SYMBOL, ";")
        return [(n, TypeDef(name=n, target=target)) for n in names]

    def _parse_union(self) -> UnionType:
        self.expect(TOK_KEYWORD, "union")
        name = self.expect_ident("union name")
        self.expect(TOK_KEYWORD, "switch")
        self.expect(TOK_SYMBOL, "(")
        discriminant = self._parse_type()
        self.expect(TOK_SYMBOL, ")")
        self.expect(TOK_SYMBOL, "{")

        cases: List[UnionCase] = []
        while not self._at_symbol("}"):
            labels: List[str] = []
            while self._at_keyword("case") or self._at_keyword("default"):
                if self.advance().value == "case":
                    labels.append(self._parse_case_label())
                else:
                    labels.append("default")
                self.expect(TOK_SYMBOL, ":")
            if not labels:
                raise self._unexpected(self.tok, "'case' or 'default'")
            typ = self._parse_type()
            case_name = self.expect_ident("union member name")
            self.expect(TOK_SYMBOL, ";")
            cases.append(UnionCase(labels=labels, name=case_name, type=typ))

        self.expect(TOK_SYMBOL, "}")
        self.expect(TOK_SYMBOL, ";")
        return UnionType(name=name, discriminant=discriminant, cases=cases)

    def _parse_case_label(self) -> str:
        tok = self.tok
        if tok.kind == TOK_OP and tok.value in ("-", "+"):
            self.advance()
            return tok.value + self.expect(TOK_NUMBER).value
        if tok.kind == TOK_NUMBER:
            return self.advance().value
        if tok.kind == TOK_CHAR:
            return f"'{self.advance().value}'"
        if tok.kind == TOK_IDENT or self._at_symbol("::"):
            return self._parse_scoped_name()
        raise self._unexpected(tok, "a case label")

    # ── Constants ────────────────────────────────────────────────────

    def _parse_const(self):
        self.expect(TOK_KEYWORD, "const")
        typ = self._parse_type()
        name = self.expect_ident("constant name")
        self.expect(TOK_OP, "=")

        text = ""
        prev_end = None
        while not self._at_symbol(";"):
            tok = self.tok
            if tok.kind in (TOK_EOF, TOK_PREPROC) or self._at_symbol("}"):
                raise self._unexpected(tok, "';'")
            raw = tok.value
            if tok.kind == TOK_STRING:
                raw = f'"{raw}"'
            elif tok.kind == TOK_CHAR:
                raw = f"'{raw}'"
            # Keep the source spacing between tokens on one line.
            if prev_end is not None and (tok.line, tok.column) != prev_end:
                text += " "
            text += raw
            prev_end = (tok.line, tok.column + len(raw))
            self.advance()
        if not text:
            raise self._unexpected(self.tok, "a constant value")
        self.expect(TOK_SYMBOL, ";")

        self.current_module.add_constant(Constant(name=name, type=typ, value=text))

    # ── Preprocessor ─────────────────────────────────────────────────

    def _parse_directive(self):
        tok = self.advance()
        text = tok.value.strip()
        if re.match(r"#\s*include\b", text):
            m = _INCLUDE_RE.match(text)
            if not m:
                raise ParseError(f"malformed include directive {text!r}",
                                 tok.filename, tok.line, tok.column)
            self._process_include(m.group(1) or m.group(2), tok)
        elif re.match(r"#\s*pragma\b", text):
            self._process_pragma(text, tok)
        else:
            logger.debug("%s:%d: ignoring directive %s", tok.filename, tok.line, text)

    def _process_include(self, path: str, tok: Token):
        if path in self.session.included:
            logger.debug("%s:%d: %s already included", tok.filename, tok.line, path)
            return
        self.session.included.add(path)

        loaded = self.session.load(path, self.filename)
        if loaded is None:
            raise IncludeError(f"cannot resolve include {path!r}",
                               tok.filename, tok.line, tok.column)
        text, filename = loaded
        logger.debug("%s:%d: including %s", tok.filename, tok.line, filename)

        # The child parser starts in our current module, so everything it
        # declares lands directly in the includer's scope.
        child = Parser(Lexer(text, filename), session=self.session,
                       module=self.current_module)
        try:
            child.parse()
        except IncludeError:
            raise
        except IdlError as e:
            raise IncludeError(f"failed to parse included file {path!r}: {e}",
                               tok.filename, tok.line, tok.column) from e

    def _process_pragma(self, text: str, tok: Token):
        m = _PRAGMA_RE.match(text)
        if not m:
            raise ParseError(f"malformed pragma {text!r}",
                             tok.filename, tok.line, tok.column)
        name, body = m.group(1), m.group(2).strip()

        if name == "ID":
            args = _PRAGMA_ID_RE.match(body)
            if not args:
                raise ParseError(f"malformed #pragma ID {body!r}",
                                 tok.filename, tok.line, tok.column)
            self._stamp_repository_id(ScopedType(name=args.group(1)),
                                      args.group(2), tok)
        elif name == "prefix":
            args = _PRAGMA_PREFIX_RE.match(body)
            if not args:
                raise ParseError(f"malformed #pragma prefix {body!r}",
                                 tok.filename, tok.line, tok.column)
            self.current_module.prefix = args.group(1)
        elif name == "version":
            if not _PRAGMA_VERSION_RE.match(body):
                raise ParseError(f"malformed #pragma version {body!r}",
                                 tok.filename, tok.line, tok.column)
            logger.debug("%s:%d: #pragma version has no effect", tok.filename, tok.line)
        else:
            logger.debug("%s:%d: ignoring #pragma %s", tok.filename, tok.line, name)

    def _stamp_repository_id(self, target: ScopedType, repo_id: str, tok: Token):
        start = self.current_module.root() if target.is_absolute else self.current_module
        typ = start.find(target.segments)
        if typ is None:
            logger.warning("%s:%d: #pragma ID target %s is not declared yet; ignored",
                           tok.filename, tok.line, target.name)
            return
        typ.set_repository_id(repo_id)


# ── Entry points ─────────────────────────────────────────────────────

def parse(source, filename: str = "<input>", resolver: Optional[Resolver] = None,
          include_dirs=()) -> Module:
    """
    Parse IDL source (a string or readable stream) and return the root module.

    Raises LexError, ParseError or IncludeError; there is no partial result.
    """
    text = _read_source(source)
    session = IncludeSession(resolver=resolver, include_dirs=list(include_dirs))
    return Parser(Lexer(text, filename), session=session).parse()


def parse_file(path: str, resolver: Optional[Resolver] = None,
               include_dirs=()) -> Module:
    """Parse an IDL file; includes are also searched relative to it."""
    with open(path, encoding="utf-8") as f:
        text = f.read()
    return parse(text, filename=path, resolver=resolver, include_dirs=include_dirs)
