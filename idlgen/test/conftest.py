"""Shared fixtures for idlgen tests."""

import pytest
import sys
import os

# Add the project root to sys.path so 'idlgen' is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from idlgen.parser import parse


SHAPES_IDL = """\
#pragma prefix "example.com"
module Shapes {
    const long MAX_POINTS = 64;
    const string UNIT = "mm";

    enum Color { RED, GREEN, BLUE };

    struct Point {
        double x, y;
    };

    typedef sequence<Point> PointList;

    exception InvalidShape {
        string reason;
    };

    union Fill switch (Color) {
        case RED: long solid;
        case GREEN:
        case BLUE: string pattern;
        default: boolean none;
    };

    interface Canvas {
        readonly attribute long width;
        attribute string title;

        void draw(in PointList points, in Color color) raises (InvalidShape);
        long area(in Point a, in Point b);
        boolean resize(inout long w, out long h);
        oneway void clear();
    };
};
"""


BANK_IDL = """\
module Bank {
    interface Account {
        enum Kind { CHECKING, SAVINGS };
        struct Entry {
            long long amount;
            Kind kind;
        };
        typedef sequence<Entry> History;

        History history();
        Kind kind();
    };
};
"""


@pytest.fixture
def shapes():
    """Parsed Shapes IDL with every kind of declaration."""
    return parse(SHAPES_IDL, "shapes.idl")


@pytest.fixture
def bank():
    """Parsed Bank IDL with types nested in an interface."""
    return parse(BANK_IDL, "bank.idl")


@pytest.fixture
def no_formatters():
    """Generator options that skip external Go formatters."""
    from idlgen.generator import GeneratorOptions
    return GeneratorOptions(formatters=())
