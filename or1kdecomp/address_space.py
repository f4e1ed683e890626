"""Address-space classification and label resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, Iterable, Optional

from .knowledge import KnowledgeBase, MemoryRange, RangeKind


class ReferenceKind(Enum):
    """What a raw 32-bit value turned out to point at."""

    REGISTER = auto()
    VECTOR = auto()
    CODE = auto()
    DATA = auto()
    STRING = auto()
    REGISTER_WINDOW = auto()


_RANGE_REFERENCES = {
    RangeKind.VECTOR: ReferenceKind.VECTOR,
    RangeKind.CODE: ReferenceKind.CODE,
    RangeKind.DATA: ReferenceKind.DATA,
    RangeKind.STRING: ReferenceKind.STRING,
    RangeKind.REGISTER_WINDOW: ReferenceKind.REGISTER_WINDOW,
}


@dataclass(frozen=True)
class SymbolicReference:
    """Result of :meth:`AddressSpace.resolve`.

    ``address`` is the canonical (de-mirrored) address, ``offset`` the
    distance of the raw value from the start of ``memory_range``.
    """

    kind: ReferenceKind
    value: int
    address: int
    name: Optional[str] = None
    memory_range: Optional[MemoryRange] = None

    @property
    def offset(self) -> int:
        if self.memory_range is None:
            return 0
        return self.memory_range.offset_of(self.value)


class AddressSpace:
    """Classify addresses against the configured memory map."""

    def __init__(self, knowledge: KnowledgeBase, functions: Iterable[int] = ()) -> None:
        self.knowledge = knowledge
        self._functions: FrozenSet[int] = frozenset(knowledge.functions) | frozenset(
            functions
        )
        self._jump_tables: FrozenSet[int] = frozenset(
            self.normalize(seed) for seed in knowledge.jump_tables
        )

    def with_functions(self, functions: Iterable[int]) -> "AddressSpace":
        """Return a copy that also treats ``functions`` as function entries."""

        return AddressSpace(self.knowledge, self._functions | frozenset(functions))

    @property
    def functions(self) -> FrozenSet[int]:
        return self._functions

    # ------------------------------------------------------------------
    # aliasing
    # ------------------------------------------------------------------
    def normalize(self, address: int) -> int:
        """Rewrite mirrored addresses to their canonical counterpart."""

        for mirror in self.knowledge.mirrors:
            if mirror.contains(address):
                return mirror.normalize(address)
        return address

    def is_mirrored(self, address: int) -> bool:
        return any(mirror.contains(address) for mirror in self.knowledge.mirrors)

    # ------------------------------------------------------------------
    # range lookups
    # ------------------------------------------------------------------
    def find_range(self, value: int) -> Optional[MemoryRange]:
        """Return the first declared range containing the raw ``value``."""

        for memory_range in self.knowledge.ranges:
            if memory_range.contains(value):
                return memory_range
        return None

    def is_code(self, address: int) -> bool:
        """True when ``address`` lies in a code or vector range."""

        return self._in_kinds(address, executable=True)

    def is_data(self, address: int) -> bool:
        """True when ``address`` lies in a data or string range."""

        return self._in_kinds(address, executable=False)

    def _in_kinds(self, address: int, *, executable: bool) -> bool:
        canonical = self.normalize(address)
        for memory_range in self.knowledge.ranges:
            wanted = (
                memory_range.kind.is_executable
                if executable
                else memory_range.kind.is_pointer_target
            )
            if not wanted:
                continue
            if self.normalize(memory_range.start) <= canonical <= self.normalize(
                memory_range.end
            ):
                return True
        return False

    def resolve(self, value: int) -> Optional[SymbolicReference]:
        """Resolve a raw 32-bit value to a register name or memory range."""

        value &= 0xFFFFFFFF
        canonical = self.normalize(value)
        name = self.knowledge.register_name(value)
        if name is not None:
            return SymbolicReference(ReferenceKind.REGISTER, value, canonical, name=name)

        memory_range = self.find_range(value)
        if memory_range is None:
            return None

        kind = _RANGE_REFERENCES[memory_range.kind]
        label = self.label(canonical) if kind is ReferenceKind.CODE else memory_range.label
        return SymbolicReference(kind, value, canonical, name=label, memory_range=memory_range)

    # ------------------------------------------------------------------
    # labels
    # ------------------------------------------------------------------
    def is_jump_table(self, address: int) -> bool:
        return self.normalize(address) in self._jump_tables

    def is_function(self, address: int) -> bool:
        return address in self._functions

    def label(self, address: int, *, numeric: bool = False) -> str:
        """Return the listing label for ``address``.

        ``numeric`` suppresses configured symbol names so callers get the
        address-derived label that prefixes every listing line.
        """

        canonical = self.normalize(address)
        if canonical in self._jump_tables:
            return f"jt_{canonical:06x}"
        if not numeric:
            name = self.knowledge.symbol(address)
            if name is not None:
                return name
        if address in self._functions:
            return f"fn_{address:06x}"
        return f"l_{address:06x}"


__all__ = [
    "AddressSpace",
    "ReferenceKind",
    "SymbolicReference",
]
