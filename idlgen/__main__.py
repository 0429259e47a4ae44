"""
CLI entry point for idlgen.

Usage:
    python3 -m idlgen idl/shapes.idl --outdir gen/ --package shapes
    python3 -m idlgen idl/shapes.idl --config idlgen.yaml -I idl/,third_party/
"""

import argparse
import logging
import sys

from .config import GeneratorConfig, load_config
from .errors import IdlError
from .generator import GeneratorOptions, generate
from .parser import parse_file


def _split(value):
    return [item.strip() for item in value.split(",") if item.strip()]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="CORBA IDL to Go code generator")
    parser.add_argument("idl", help="Input .idl file")
    parser.add_argument("--outdir", "-o", help="Output directory")
    parser.add_argument("--package", help="Go package name (default: generated)")
    parser.add_argument("--include", type=_split, default=None,
                        help="Comma-separated extra Go imports")
    parser.add_argument("-I", dest="include_dirs", type=_split, default=None,
                        help="Comma-separated IDL include directories")
    parser.add_argument("--config", help="YAML generator configuration")
    parser.add_argument("--fail-fast", action="store_true", default=None,
                        help="Stop at the first artifact that fails")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args.config) if args.config else GeneratorConfig()

        outdir = args.outdir or config.outdir
        if not outdir:
            parser.error("--outdir is required (or set 'outdir' in --config)")

        options = GeneratorOptions(
            package=args.package or config.package or "generated",
            includes=args.include if args.include is not None else config.includes,
            fail_fast=args.fail_fast if args.fail_fast is not None else config.fail_fast,
            formatters=config.formatters,
        )
        include_dirs = (args.include_dirs if args.include_dirs is not None
                        else config.include_dirs)

        root = parse_file(args.idl, include_dirs=include_dirs)
        report = generate(root, outdir, options)
    except (IdlError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for path in report.written:
        print(f"  wrote {path}")
    print(f"\nGenerated {len(report.written)} files from '{args.idl}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
