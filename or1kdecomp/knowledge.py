"""Firmware knowledge lookup support.

The decompiler itself knows nothing about a particular firmware image.  The
memory map, the mirrored DRAM window, peripheral register names, hand named
functions and the jump/string table seeds all live in a JSON document that is
loaded once and then handed around as an immutable :class:`KnowledgeBase`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple


class RangeKind(Enum):
    """Semantic classification of a memory range."""

    VECTOR = "vector"
    CODE = "code"
    DATA = "data"
    STRING = "string"
    REGISTER_WINDOW = "register"

    @classmethod
    def parse(cls, token: str) -> "RangeKind":
        """Accept both the long names and the single letter shorthands."""

        key = token.strip().lower()
        for kind in cls:
            if key == kind.value or key == kind.name.lower() or key == kind.value[0]:
                return kind
        raise ValueError(f"unknown memory range kind: {token!r}")

    @property
    def is_executable(self) -> bool:
        return self in (RangeKind.CODE, RangeKind.VECTOR)

    @property
    def is_pointer_target(self) -> bool:
        return self in (RangeKind.DATA, RangeKind.STRING)


@dataclass(frozen=True)
class MemoryRange:
    """Inclusive ``[start, end]`` address range with a symbolic label."""

    kind: RangeKind
    start: int
    end: int
    label: str

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

    def offset_of(self, address: int) -> int:
        return address - self.start


@dataclass(frozen=True)
class MirrorWindow:
    """A window of addresses that aliases another (canonical) window.

    The AR100 firmware runs part of its code from DRAM at ``0x43080000`` while
    the image stores the same bytes right after the SRAM part.  Any address
    inside ``[start, start + size)`` is rewritten to
    ``canonical + (address - start)`` before being looked up.
    """

    start: int
    size: int
    canonical: int

    def contains(self, address: int) -> bool:
        return self.start <= address < self.start + self.size

    def normalize(self, address: int) -> int:
        if self.contains(address):
            return address - self.start + self.canonical
        return address


class KnowledgeBase:
    """Immutable host configuration consumed by the classifier and renderer."""

    def __init__(
        self,
        *,
        ranges: Sequence[MemoryRange] = (),
        mirrors: Sequence[MirrorWindow] = (),
        register_names: Optional[Mapping[int, str]] = None,
        symbols: Optional[Mapping[int, str]] = None,
        functions: Iterable[int] = (),
        jump_tables: Iterable[int] = (),
        string_tables: Iterable[int] = (),
    ) -> None:
        for mirror in mirrors:
            if mirror.contains(mirror.canonical) or mirror.contains(
                mirror.canonical + mirror.size - 1
            ):
                raise ValueError(
                    f"mirror window 0x{mirror.start:08x} overlaps its canonical window"
                )
        self._ranges: Tuple[MemoryRange, ...] = tuple(ranges)
        self._mirrors: Tuple[MirrorWindow, ...] = tuple(mirrors)
        self._register_names = MappingProxyType(dict(register_names or {}))
        self._symbols = MappingProxyType(dict(symbols or {}))
        self._functions: FrozenSet[int] = frozenset(functions)
        # Seed order is significant for table labels and xref output.
        self._jump_tables: Tuple[int, ...] = tuple(dict.fromkeys(jump_tables))
        self._string_tables: Tuple[int, ...] = tuple(dict.fromkeys(string_tables))

    @classmethod
    def load(cls, path: Path) -> "KnowledgeBase":
        """Load a knowledge base from ``path``.

        A directory is resolved to ``<dir>/firmware.json``.  Missing files
        produce an empty knowledge base so the decompiler can still run on an
        unannotated image.
        """

        resolved = path
        if path.is_dir():
            resolved = path / "firmware.json"

        if not resolved.exists():
            return cls()

        data = json.loads(resolved.read_text("utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError(f"knowledge file {resolved} must contain a JSON object")
        return cls.from_json(data)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "KnowledgeBase":
        ranges = [_parse_range(entry) for entry in data.get("ranges", [])]
        mirrors = [_parse_mirror(entry) for entry in data.get("mirrors", [])]
        return cls(
            ranges=ranges,
            mirrors=mirrors,
            register_names=_parse_name_table(data.get("registers", {})),
            symbols=_parse_name_table(data.get("symbols", {})),
            functions=[_parse_number(value) for value in data.get("functions", [])],
            jump_tables=[_parse_number(value) for value in data.get("jump_tables", [])],
            string_tables=[
                _parse_number(value) for value in data.get("string_tables", [])
            ],
        )

    @property
    def ranges(self) -> Tuple[MemoryRange, ...]:
        return self._ranges

    @property
    def mirrors(self) -> Tuple[MirrorWindow, ...]:
        return self._mirrors

    @property
    def register_names(self) -> Mapping[int, str]:
        return self._register_names

    @property
    def symbols(self) -> Mapping[int, str]:
        return self._symbols

    @property
    def functions(self) -> FrozenSet[int]:
        return self._functions

    @property
    def jump_tables(self) -> Tuple[int, ...]:
        return self._jump_tables

    @property
    def string_tables(self) -> Tuple[int, ...]:
        return self._string_tables

    def register_name(self, value: int) -> Optional[str]:
        return self._register_names.get(value)

    def symbol(self, address: int) -> Optional[str]:
        return self._symbols.get(address)


def _parse_number(value: Any) -> int:
    """Parse ``value`` as an integer.

    JSON integers are taken as they are.  Strings are always hexadecimal, with
    or without a ``0x`` prefix, since JSON object keys cannot be integers.
    """

    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    if isinstance(value, int):
        return value

    token = str(value).strip()
    if not token:
        raise ValueError("empty number")

    return int(token, 16)


def _parse_name_table(raw: Any) -> Dict[int, str]:
    if not isinstance(raw, Mapping):
        raise ValueError("name tables must be JSON objects")
    table: Dict[int, str] = {}
    for key, value in raw.items():
        table[_parse_number(key)] = str(value)
    return table


def _parse_range(entry: Any) -> MemoryRange:
    if isinstance(entry, Mapping):
        kind, start, end = entry["kind"], entry["start"], entry["end"]
        label = entry.get("label", "")
    elif isinstance(entry, (list, tuple)) and len(entry) in (3, 4):
        kind, start, end = entry[0], entry[1], entry[2]
        label = entry[3] if len(entry) == 4 else ""
    else:
        raise ValueError(f"malformed memory range entry: {entry!r}")

    memory_range = MemoryRange(
        RangeKind.parse(str(kind)), _parse_number(start), _parse_number(end), str(label)
    )
    if memory_range.end < memory_range.start:
        raise ValueError(f"memory range {memory_range.label!r} ends before it starts")
    return memory_range


def _parse_mirror(entry: Any) -> MirrorWindow:
    if not isinstance(entry, Mapping):
        raise ValueError(f"malformed mirror entry: {entry!r}")
    size = _parse_number(entry["size"])
    if size <= 0:
        raise ValueError("mirror windows must have a positive size")
    return MirrorWindow(
        start=_parse_number(entry["start"]),
        size=size,
        canonical=_parse_number(entry["canonical"]),
    )


__all__: List[str] = [
    "KnowledgeBase",
    "MemoryRange",
    "MirrorWindow",
    "RangeKind",
]
