"""
idlgen: CORBA IDL front-end compiler.

Parses IDL sources (modules, interfaces, structs, enums, unions, typedefs,
exceptions, constants) into a semantic model and generates Go data types,
client stubs and server skeletons for the go-corba object broker runtime.
"""

__version__ = "0.3.0"
