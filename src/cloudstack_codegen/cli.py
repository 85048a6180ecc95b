from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from .errors import CodegenError
from .orchestrator import GeneratorOptions, generate


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudstack-codegen",
        description="Generate a typed CloudStack client package from a listApis catalog.",
    )
    parser.add_argument("--api", default="listApis.json", help="Path to the listApis JSON document (default: listApis.json)")
    parser.add_argument("--output", default=None, help="Output directory (default: ../<package>)")
    parser.add_argument("--package", default="cloudstack", help="Generated package name (default: cloudstack)")
    parser.add_argument("--layout", default=None, help="YAML file mapping service names to operation lists")
    parser.add_argument("--no-format", action="store_true", help="Skip the ruff import-sort and format passes")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    options = GeneratorOptions(
        api=Path(args.api),
        output=Path(args.output) if args.output else None,
        package=args.package,
        layout=Path(args.layout) if args.layout else None,
        run_formatter=not args.no_format,
    )

    try:
        errors = generate(options)
    except (CodegenError, OSError) as exc:
        print(f"[codegen] {exc}", file=sys.stderr)
        return 1

    if errors:
        print(f"{len(errors)} API(s) failed to generate:", file=sys.stderr)
        for err in errors:
            print(f"- {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
