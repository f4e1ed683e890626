"""Containers for the string and jump tables read out of the firmware image.

Both tables are discovered from seed addresses: the image accessor walks
consecutive words until the first entry that does not look like a pointer of
the right kind.  The resulting tables are immutable snapshots that the
reconstructor and the value formatter consult by address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

__all__ = [
    "JumpTable",
    "StringTable",
]


@dataclass(frozen=True)
class StringTable:
    """Array of C string pointers, rendered as escaped literals."""

    address: int
    entries: Tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:  # pragma: no cover - trivial
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def render(self) -> str:
        return "C_STR_ARRAY [" + ", ".join(self.entries) + "]"


@dataclass(frozen=True)
class JumpTable:
    """Array of code addresses used as indirect branch targets.

    ``entries`` keeps the raw words as stored in the image; ``targets``
    holds the canonical addresses the listing actually uses.
    """

    address: int
    label: str
    entries: Tuple[int, ...] = ()
    targets: Tuple[int, ...] = ()

    def __iter__(self) -> Iterator[int]:  # pragma: no cover - trivial
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.entries)

    def annotations(self) -> Iterator[Tuple[int, str, int]]:
        """Yield ``(target, table_label, index)`` in table order."""

        for index, target in enumerate(self.targets):
            yield target, self.label, index
