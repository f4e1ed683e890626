"""Annotating decompiler for OpenRISC 1000 firmware listings."""

from .address_space import AddressSpace, ReferenceKind, SymbolicReference
from .errors import (
    BoundsError,
    DecompilerError,
    DoubleDelayError,
    JumpToDelaySlotError,
    OperandCountMismatch,
    OperandSyntaxError,
    UnknownOpcode,
)
from .explain import InstructionExplainer
from .flow import ControlFlow, ControlFlowReconstructor, CrossReference
from .image import BinaryImage
from .instruction import FlowKind, Instruction, Opcode, OperandFormat, Operands
from .knowledge import KnowledgeBase, MemoryRange, MirrorWindow, RangeKind
from .listing import decode_listing
from .pipeline import Decompiler
from .registers import RegisterState
from .renderer import ListingRenderer
from .tables import JumpTable, StringTable
from .values import ValueFormatter

__all__ = [
    "AddressSpace",
    "ReferenceKind",
    "SymbolicReference",
    "BoundsError",
    "DecompilerError",
    "DoubleDelayError",
    "JumpToDelaySlotError",
    "OperandCountMismatch",
    "OperandSyntaxError",
    "UnknownOpcode",
    "InstructionExplainer",
    "ControlFlow",
    "ControlFlowReconstructor",
    "CrossReference",
    "BinaryImage",
    "FlowKind",
    "Instruction",
    "Opcode",
    "OperandFormat",
    "Operands",
    "KnowledgeBase",
    "MemoryRange",
    "MirrorWindow",
    "RangeKind",
    "decode_listing",
    "Decompiler",
    "RegisterState",
    "ListingRenderer",
    "JumpTable",
    "StringTable",
    "ValueFormatter",
]
