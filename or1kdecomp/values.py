"""Render known register values as symbolic annotations."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from .address_space import AddressSpace, ReferenceKind
from .image import BinaryImage
from .registers import format_literal, to_hex32
from .tables import StringTable


class ValueFormatter:
    """Turn a 32-bit value into the most meaningful annotation available.

    Lookup order: peripheral/global names, then the first memory range that
    contains the value (jump and string tables take precedence over the
    range kind), then a plain literal.  Values inside exception vector
    ranges are too ambiguous to annotate and fall back to literals.
    """

    def __init__(
        self,
        space: AddressSpace,
        image: BinaryImage,
        string_tables: Optional[Mapping[int, StringTable]] = None,
    ) -> None:
        self.space = space
        self.image = image
        self.string_tables: Dict[int, StringTable] = dict(string_tables or {})

    def format_value(self, value: int) -> str:
        reference = self.space.resolve(value)
        if reference is None:
            return format_literal(value)

        literal = to_hex32(value)
        if reference.kind is ReferenceKind.REGISTER:
            return f"{reference.name} /* {literal} */"

        address = reference.address
        if self.space.is_jump_table(address):
            return f"{literal} /* JUMP TABLE {self.space.label(address)} */"
        table = self.string_tables.get(address)
        if table is not None:
            return f"{table.render()} /* {literal} */"

        if reference.kind is ReferenceKind.STRING:
            text = self.image.read_cstring_formatted(address)
            return f"C_STR {text} /* {literal} at {to_hex32(address)} */"
        if reference.kind is ReferenceKind.CODE:
            return f"{reference.name} /* {literal} at {to_hex32(address)} */"
        if reference.kind is ReferenceKind.DATA:
            return (
                f"{literal} /* DATA {reference.name} AT {to_hex32(address)}"
                f" OFF +0x{reference.offset:x} */"
            )
        if reference.kind is ReferenceKind.REGISTER_WINDOW:
            return f"{literal} /* REG_OF {reference.name} AT +0x{reference.offset:x} */"
        return format_literal(value)


__all__ = ["ValueFormatter"]
