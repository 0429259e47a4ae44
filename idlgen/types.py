"""
Type system: IDL-to-Go primitive mapping and Go naming helpers.
"""

from .model import BasicType

# IDL primitive kind → Go type name.  void maps to "" (no value).
TYPE_MAP = {
    BasicType.SHORT:      "int16",
    BasicType.LONG:       "int32",
    BasicType.LONG_LONG:  "int64",
    BasicType.USHORT:     "uint16",
    BasicType.ULONG:      "uint32",
    BasicType.ULONG_LONG: "uint64",
    BasicType.FLOAT:      "float32",
    BasicType.DOUBLE:     "float64",
    BasicType.BOOLEAN:    "bool",
    BasicType.CHAR:       "byte",
    BasicType.WCHAR:      "rune",
    BasicType.OCTET:      "byte",
    BasicType.ANY:        "interface{}",
    BasicType.STRING:     "string",
    BasicType.WSTRING:    "string",
    BasicType.VOID:       "",
}

# Go reserved words; IDL names that collide get a trailing underscore.
GO_KEYWORDS = {
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
}


def go_type(kind: BasicType) -> str:
    """Map an IDL primitive kind to its Go equivalent."""
    return TYPE_MAP[kind]


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def uncapitalize(s: str) -> str:
    return s[:1].lower() + s[1:]


def go_local(name: str) -> str:
    """Name usable as a Go parameter or local variable."""
    local = uncapitalize(name)
    return local + "_" if local in GO_KEYWORDS else local


def go_package(module_name: str) -> str:
    """Go package / directory name for an IDL module."""
    return module_name.lower()
