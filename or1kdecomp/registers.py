"""Symbolic register state used while replaying a basic block."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .values import ValueFormatter


REGISTER_COUNT = 32

REGISTER_ALIASES: Dict[str, str] = {
    "r0": "0",
    "r1": "SP",
    "r2": "FP",
    "r3": "A1",
    "r4": "A2",
    "r5": "A3",
    "r6": "A4",
    "r7": "A5",
    "r8": "A6",
    "r9": "LR",
    "r11": "RV",
}

_COLLAPSIBLE = re.compile(r"^0xffffffff([0-9a-f]{8})$")


def to_hex32(value: int) -> str:
    """Render ``value`` as an eight digit hex literal.

    Negative numbers are shown in 64-bit two's complement and a redundant
    ``ffffffff`` prefix is collapsed, so ``-1`` renders as ``0xffffffff``.
    """

    if value < 0:
        value &= 0xFFFFFFFFFFFFFFFF
    text = f"0x{value:08x}"
    match = _COLLAPSIBLE.match(text)
    if match is not None:
        return "0x" + match.group(1)
    return text


def to_signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value & 0x80000000:
        return value - 0x100000000
    return value


def sign_extend16(value: int) -> int:
    if value & 0x8000:
        return value | 0xFFFF0000
    return value & 0xFFFFFFFF


def register_alias(name: str) -> str:
    return REGISTER_ALIASES.get(name, name)


def register_index(name: str) -> int:
    return int(name.lstrip("r"))


def format_literal(value: int) -> str:
    """Fallback rendering for values with no symbolic meaning."""

    if -128 <= value <= 127:
        return f"{value} /* {to_hex32(value)} */"
    return to_hex32(value)


class RegisterState:
    """Known/unknown store for the 32 general purpose registers.

    Register 0 is hard-wired to zero: it is always known and writes to it
    are ignored.  Values are kept as signed 32-bit integers.
    """

    def __init__(self, renderer: Optional["ValueFormatter"] = None) -> None:
        self.renderer = renderer
        self._values: List[int] = [0] * REGISTER_COUNT
        self._known: List[bool] = [False] * REGISTER_COUNT
        self._known[0] = True

    def reset_all(self) -> None:
        for index in range(1, REGISTER_COUNT):
            self._values[index] = 0
            self._known[index] = False

    def set_register(self, index: int, value: int) -> None:
        if index == 0:
            return
        self._values[index] = to_signed32(value)
        self._known[index] = True

    def set_register_unknown(self, index: int) -> None:
        if index == 0:
            return
        self._values[index] = 0
        self._known[index] = False

    def is_known(self, index: int) -> bool:
        if index == 0:
            return True
        return self._known[index]

    def get_register(self, index: int) -> int:
        if index == 0:
            return 0
        return self._values[index]

    def format_value(self, value: int) -> str:
        if self.renderer is not None:
            return self.renderer.format_value(value)
        return format_literal(value)

    def format_register(self, index: int) -> str:
        return self.format_value(self.get_register(index))

    def snapshot(self) -> Tuple[Optional[int], ...]:
        """Return the register file with ``None`` for unknown registers."""

        return tuple(
            self.get_register(index) if self.is_known(index) else None
            for index in range(REGISTER_COUNT)
        )

    def known_registers(self) -> List[int]:
        return [index for index in range(1, REGISTER_COUNT) if self._known[index]]


__all__ = [
    "REGISTER_ALIASES",
    "REGISTER_COUNT",
    "RegisterState",
    "format_literal",
    "register_alias",
    "register_index",
    "sign_extend16",
    "to_hex32",
    "to_signed32",
]
