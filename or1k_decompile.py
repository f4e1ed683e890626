#!/usr/bin/env python3
"""Command-line interface for the OpenRISC firmware decompiler."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from or1kdecomp import Decompiler, KnowledgeBase


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("listing", type=Path, help="objdump style disassembly listing")
    parser.add_argument("image", type=Path, help="raw firmware image the listing was produced from")
    parser.add_argument(
        "--knowledge-base",
        type=Path,
        default=Path("knowledge/firmware.json"),
        help="Memory map, register names and symbols describing the firmware",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the annotated listing here instead of stdout",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug details to stderr",
    )
    return parser.parse_args()


def validate_inputs(*paths: Path) -> None:
    for path in paths:
        if not path.exists():
            raise SystemExit(f"missing input file: {path}")


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    validate_inputs(args.listing, args.image)

    try:
        knowledge = KnowledgeBase.load(args.knowledge_base)
        decompiler = Decompiler(knowledge, args.image)
        output = decompiler.decompile(args.listing.read_text("utf-8"))
    except ValueError as exc:
        raise SystemExit(f"error: {exc}") from exc

    if args.output is None:
        sys.stdout.write(output)
    else:
        args.output.write_text(output, "utf-8")
        print(f"listing written to {args.output}")


if __name__ == "__main__":
    main()
