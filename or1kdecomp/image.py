"""Read-only accessor for the raw firmware image."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .address_space import AddressSpace
from .errors import BoundsError
from .tables import JumpTable, StringTable


WORD_SIZE = 4

logger = logging.getLogger(__name__)

_NAMED_ESCAPES = {
    0x07: "\\a",
    0x08: "\\b",
    0x09: "\\t",
    0x0A: "\\n",
    0x0B: "\\v",
    0x0C: "\\f",
    0x0D: "\\r",
    0x22: '\\"',
    0x5C: "\\\\",
}


def escape_cstring(data: bytes) -> str:
    """Return ``data`` as a double-quoted C literal safe for annotations."""

    pieces: List[str] = []
    for byte in data:
        escape = _NAMED_ESCAPES.get(byte)
        if escape is not None:
            pieces.append(escape)
        elif byte < 0x20 or byte >= 0x7F:
            pieces.append(f"\\{byte:03o}")
        else:
            pieces.append(chr(byte))
    return '"' + "".join(pieces) + '"'


class BinaryImage:
    """Big-endian view over the firmware image.

    Every address handed to the accessor, and every pointer it reads back,
    goes through :meth:`AddressSpace.normalize` first so mirrored addresses
    hit the right bytes.
    """

    def __init__(self, data: bytes, space: AddressSpace) -> None:
        self.data = bytes(data)
        self.space = space

    @classmethod
    def load(cls, path: Path, space: AddressSpace) -> "BinaryImage":
        return cls(path.read_bytes(), space)

    def __len__(self) -> int:
        return len(self.data)

    def read_word(self, address: int) -> int:
        offset = self.space.normalize(address)
        if offset < 0 or offset > len(self.data) - WORD_SIZE:
            raise BoundsError(
                "word read outside of the image",
                address=address,
                context=f"image length 0x{len(self.data):x}",
            )
        return int.from_bytes(self.data[offset : offset + WORD_SIZE], "big")

    def read_cstring(self, address: int) -> bytes:
        """Return the bytes up to the first NUL, truncated at the image end."""

        offset = self.space.normalize(address)
        if offset < 0 or offset >= len(self.data):
            return b""
        end = self.data.find(b"\0", offset)
        if end < 0:
            end = len(self.data)
        return self.data[offset:end]

    def read_cstring_formatted(self, address: int) -> str:
        return escape_cstring(self.read_cstring(address))

    def read_string_table(self, address: int) -> StringTable:
        """Read a NULL or non-pointer terminated array of string pointers."""

        cursor = self.space.normalize(address)
        start = cursor
        entries: List[str] = []
        while True:
            item = self.read_word(cursor)
            if item == 0 or not self.space.is_data(item):
                break
            entries.append(self.read_cstring_formatted(item))
            cursor += WORD_SIZE

        logger.debug("string table at 0x%08x has %d entries", address, len(entries))
        return StringTable(address=start, entries=tuple(entries))

    def read_code_address_table(self, address: int) -> JumpTable:
        """Read consecutive code addresses until the first non-code word."""

        cursor = self.space.normalize(address)
        start = cursor
        entries: List[int] = []
        while True:
            item = self.read_word(cursor)
            if not self.space.is_code(item):
                break
            entries.append(item)
            cursor += WORD_SIZE

        logger.debug("jump table at 0x%08x has %d entries", address, len(entries))
        return JumpTable(
            address=start,
            label=self.space.label(start),
            entries=tuple(entries),
            targets=tuple(self.space.normalize(entry) for entry in entries),
        )


__all__ = ["BinaryImage", "WORD_SIZE", "escape_cstring"]
