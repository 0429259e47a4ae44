"""Tests for the semantic model helpers."""

import gc

from idlgen.model import (EnumType, Module, ScopedType, StructType,
                          generate_repository_id)
from idlgen.parser import parse


class TestNames:
    def test_path_and_full_name(self):
        root = Module()
        b = root.add_submodule("A").add_submodule("B")
        assert b.path() == ["A", "B"]
        assert b.full_name() == "A::B"
        assert b.qualified_name("E") == "A::B::E"
        assert root.full_name() == ""

    def test_parent_link(self):
        root = Module()
        a = root.add_submodule("A")
        assert a.parent is root
        assert root.submodules["A"] is a

    def test_submodule_outlives_dropped_root(self):
        root = parse("""
            #pragma prefix "acme.org"
            module A { module B { struct S { long x; }; }; };
        """)
        b = root.get_submodule("A").get_submodule("B")
        del root
        gc.collect()
        assert b.full_name() == "A::B"
        assert b.effective_prefix() == "acme.org"
        assert b.repository_id("S") == "IDL:acme.org/A/B/S:1.0"
        assert b.root().is_root

    def test_walk_is_depth_first(self):
        root = parse("module A { module B { }; }; module C { };")
        assert [m.full_name() for m in root.walk()] == ["", "A", "A::B", "C"]


class TestRepositoryIds:
    def test_generate(self):
        assert generate_repository_id(["A", "B"], "T") == "IDL:A/B/T:1.0"
        assert generate_repository_id([], "T", "acme.org", "2.1") == "IDL:acme.org/T:2.1"

    def test_prefix_is_inherited(self, shapes):
        mod = shapes.get_submodule("Shapes")
        assert mod.effective_prefix() == "example.com"
        assert mod.repository_id("Point") == "IDL:example.com/Shapes/Point:1.0"

    def test_stamped_id_wins(self):
        root = parse("""
            module M { struct S { long x; }; struct T { long y; }; };
            #pragma ID M::S "IDL:stamped/S:9.0"
        """)
        mod = root.get_submodule("M")
        assert mod.repository_id_of("S") == "IDL:stamped/S:9.0"
        assert mod.repository_id_of("T") == "IDL:M/T:1.0"

    def test_types_by_repository_id(self, bank):
        index = bank.types_by_repository_id()
        assert set(index) == {
            "IDL:Bank/Account:1.0",
            "IDL:Bank/Account/Kind:1.0",
            "IDL:Bank/Account/Entry:1.0",
            "IDL:Bank/Account/History:1.0",
        }
        assert isinstance(index["IDL:Bank/Account/Kind:1.0"], EnumType)


class TestLookup:
    def test_resolve_walks_outward(self):
        root = parse("""
            struct Top { long x; };
            module A { module B { struct Inner { long y; }; }; };
        """)
        b = root.get_submodule("A").get_submodule("B")
        owner, typ = b.resolve(ScopedType("Top"))
        assert owner is root
        assert isinstance(typ, StructType)
        assert b.resolve(ScopedType("Inner"))[0] is b

    def test_resolve_qualified_and_absolute(self):
        root = parse("module A { module B { struct S { long x; }; }; };")
        a = root.get_submodule("A")
        assert a.resolve(ScopedType("B::S"))[1].name == "S"
        assert a.resolve(ScopedType("::A::B::S"))[1].name == "S"
        assert a.resolve(ScopedType("::B::S")) is None

    def test_find_descends_into_interfaces(self, bank):
        kind = bank.find(["Bank", "Account", "Kind"])
        assert isinstance(kind, EnumType)
        assert bank.find(["Bank", "Account", "Missing"]) is None
        assert bank.find(["Bank", "Nope"]) is None
