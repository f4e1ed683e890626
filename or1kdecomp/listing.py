"""Parser for objdump-style disassembly listings."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from .address_space import AddressSpace
from .instruction import Instruction, decode_instruction

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(
    r"^\s*([0-9a-f]+):\s+((?:[0-9a-f]{2} ){3}[0-9a-f]{2})\s+(l\.[a-z]+)\s*(.*)$"
)


@dataclass(frozen=True)
class ListingLine:
    """The four columns of a recognised listing line."""

    address: int
    raw: bytes
    mnemonic: str
    operands: str


def parse_line(line: str) -> Optional[ListingLine]:
    match = LINE_PATTERN.match(line)
    if match is None:
        return None
    address, raw, mnemonic, operands = match.groups()
    return ListingLine(
        address=int(address, 16),
        raw=bytes.fromhex(raw),
        mnemonic=mnemonic,
        operands=operands.strip(),
    )


def iter_listing(lines: Iterable[str]) -> Iterator[ListingLine]:
    skipped = 0
    for line in lines:
        parsed = parse_line(line)
        if parsed is None:
            skipped += 1
            continue
        yield parsed
    logger.debug("skipped %d non-instruction listing line(s)", skipped)


def decode_listing(text: str, space: AddressSpace) -> List[Instruction]:
    """Decode every listing line that falls inside a code range.

    The result is in listing order.  A line repeating an earlier address
    replaces that instruction in place.
    """

    instructions: Dict[int, Instruction] = {}
    outside = 0
    for line in iter_listing(text.splitlines()):
        if not space.is_code(line.address):
            outside += 1
            continue
        instructions[line.address] = decode_instruction(
            line.address, line.mnemonic, line.operands
        )
    if outside:
        logger.debug("ignored %d instruction(s) outside of code ranges", outside)
    return list(instructions.values())


__all__ = ["LINE_PATTERN", "ListingLine", "decode_listing", "iter_listing", "parse_line"]
