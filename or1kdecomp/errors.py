"""Exception taxonomy for the decompiler.

Every failure is fatal: the tool analyses one static input, so an
inconsistency means the listing, the image or the knowledge file is wrong.
All errors derive from :class:`ValueError` and carry the offending address
and a short context string so the bad listing line or image offset can be
located.
"""

from __future__ import annotations

from typing import Optional


class DecompilerError(ValueError):
    """Base class for all decompiler failures."""

    def __init__(
        self,
        message: str,
        *,
        address: Optional[int] = None,
        context: Optional[str] = None,
    ) -> None:
        self.address = address
        self.context = context
        detail = message
        if address is not None:
            detail = f"{detail} at 0x{address:06x}"
        if context:
            detail = f"{detail} ({context!r})"
        super().__init__(detail)


class UnknownOpcode(DecompilerError):
    """The mnemonic is not part of the supported instruction set."""


class OperandCountMismatch(DecompilerError):
    """The operand text has a different arity than the opcode format."""


class OperandSyntaxError(DecompilerError):
    """An operand does not match the syntax of its format field."""


class BoundsError(DecompilerError):
    """A read falls outside of the binary image."""


class DoubleDelayError(DecompilerError):
    """Two delay-slot instructions follow each other without a filler."""


class JumpToDelaySlotError(DecompilerError):
    """A branch target lands on a delay slot."""


__all__ = [
    "DecompilerError",
    "UnknownOpcode",
    "OperandCountMismatch",
    "OperandSyntaxError",
    "BoundsError",
    "DoubleDelayError",
    "JumpToDelaySlotError",
]
