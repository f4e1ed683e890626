"""Instruction decoding for the OpenRISC 1000 listing.

Each supported mnemonic is a member of the closed :class:`Opcode` enum which
fixes its operand format and its control-flow behaviour.  Decoding is strict:
an unknown mnemonic or malformed operand text aborts the run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional

from .errors import OperandCountMismatch, OperandSyntaxError, UnknownOpcode


class OperandFormat(Enum):
    """Operand layouts, expressed as comma separated field specs."""

    RRR = "d,a,b"
    RRI = "d,a,i"
    RI_SHIFT = "d,k"
    BRANCH_TARGET = "n"
    REGISTER_ONLY = "d"
    LOAD = "d,i(a)"
    STORE = "i(d),a"
    SPR_READ = "d,a,k"
    SPR_WRITE = "a,b,k"
    COMPARE_REG = "a,b"
    COMPARE_IMM = "a,i"
    NO_OPERAND = ""

    @property
    def fields(self) -> List[str]:
        if not self.value:
            return []
        return self.value.split(",")


class FlowKind(Enum):
    """How an instruction transfers control."""

    NONE = auto()
    BRANCH = auto()
    JUMP = auto()
    CALL = auto()
    CALL_REGISTER = auto()
    JUMP_REGISTER = auto()

    @property
    def has_delay_slot(self) -> bool:
        return self is not FlowKind.NONE

    @property
    def has_target(self) -> bool:
        return self in (FlowKind.BRANCH, FlowKind.JUMP, FlowKind.CALL)


class Opcode(Enum):
    """Closed set of supported mnemonics."""

    ADD = ("l.add", OperandFormat.RRR)
    AND = ("l.and", OperandFormat.RRR)
    SUB = ("l.sub", OperandFormat.RRR)
    XOR = ("l.xor", OperandFormat.RRR)
    OR = ("l.or", OperandFormat.RRR)
    MUL = ("l.mul", OperandFormat.RRR)
    MULU = ("l.mulu", OperandFormat.RRR)
    DIV = ("l.div", OperandFormat.RRR)
    DIVU = ("l.divu", OperandFormat.RRR)
    SLL = ("l.sll", OperandFormat.RRR)
    SRA = ("l.sra", OperandFormat.RRR)
    SRL = ("l.srl", OperandFormat.RRR)
    ROR = ("l.ror", OperandFormat.RRR)
    CMOV = ("l.cmov", OperandFormat.RRR)

    ADDI = ("l.addi", OperandFormat.RRI)
    ANDI = ("l.andi", OperandFormat.RRI)
    XORI = ("l.xori", OperandFormat.RRI)
    ORI = ("l.ori", OperandFormat.RRI)
    MULI = ("l.muli", OperandFormat.RRI)
    SLLI = ("l.slli", OperandFormat.RRI)
    SRAI = ("l.srai", OperandFormat.RRI)
    SRLI = ("l.srli", OperandFormat.RRI)
    RORI = ("l.rori", OperandFormat.RRI)

    MOVHI = ("l.movhi", OperandFormat.RI_SHIFT)

    BF = ("l.bf", OperandFormat.BRANCH_TARGET, FlowKind.BRANCH)
    BNF = ("l.bnf", OperandFormat.BRANCH_TARGET, FlowKind.BRANCH)
    J = ("l.j", OperandFormat.BRANCH_TARGET, FlowKind.JUMP)
    JAL = ("l.jal", OperandFormat.BRANCH_TARGET, FlowKind.CALL)
    JALR = ("l.jalr", OperandFormat.REGISTER_ONLY, FlowKind.CALL_REGISTER)
    JR = ("l.jr", OperandFormat.REGISTER_ONLY, FlowKind.JUMP_REGISTER)

    LBS = ("l.lbs", OperandFormat.LOAD)
    LBZ = ("l.lbz", OperandFormat.LOAD)
    LHS = ("l.lhs", OperandFormat.LOAD)
    LHZ = ("l.lhz", OperandFormat.LOAD)
    LWZ = ("l.lwz", OperandFormat.LOAD)

    SW = ("l.sw", OperandFormat.STORE)
    SH = ("l.sh", OperandFormat.STORE)
    SB = ("l.sb", OperandFormat.STORE)

    MFSPR = ("l.mfspr", OperandFormat.SPR_READ)
    MTSPR = ("l.mtspr", OperandFormat.SPR_WRITE)

    SFEQ = ("l.sfeq", OperandFormat.COMPARE_REG)
    SFNE = ("l.sfne", OperandFormat.COMPARE_REG)
    SFGES = ("l.sfges", OperandFormat.COMPARE_REG)
    SFGEU = ("l.sfgeu", OperandFormat.COMPARE_REG)
    SFGTS = ("l.sfgts", OperandFormat.COMPARE_REG)
    SFGTU = ("l.sfgtu", OperandFormat.COMPARE_REG)
    SFLES = ("l.sfles", OperandFormat.COMPARE_REG)
    SFLEU = ("l.sfleu", OperandFormat.COMPARE_REG)
    SFLTS = ("l.sflts", OperandFormat.COMPARE_REG)
    SFLTU = ("l.sfltu", OperandFormat.COMPARE_REG)

    SFEQI = ("l.sfeqi", OperandFormat.COMPARE_IMM)
    SFNEI = ("l.sfnei", OperandFormat.COMPARE_IMM)
    SFGESI = ("l.sfgesi", OperandFormat.COMPARE_IMM)
    SFGEUI = ("l.sfgeui", OperandFormat.COMPARE_IMM)
    SFGTSI = ("l.sfgtsi", OperandFormat.COMPARE_IMM)
    SFGTUI = ("l.sfgtui", OperandFormat.COMPARE_IMM)
    SFLESI = ("l.sflesi", OperandFormat.COMPARE_IMM)
    SFLEUI = ("l.sfleui", OperandFormat.COMPARE_IMM)
    SFLTSI = ("l.sfltsi", OperandFormat.COMPARE_IMM)
    SFLTUI = ("l.sfltui", OperandFormat.COMPARE_IMM)

    NOP = ("l.nop", OperandFormat.NO_OPERAND)
    CSYNC = ("l.csync", OperandFormat.NO_OPERAND)
    MSYNC = ("l.msync", OperandFormat.NO_OPERAND)
    PSYNC = ("l.psync", OperandFormat.NO_OPERAND)
    RFE = ("l.rfe", OperandFormat.NO_OPERAND)

    def __init__(
        self,
        mnemonic: str,
        operand_format: OperandFormat,
        flow: FlowKind = FlowKind.NONE,
    ) -> None:
        self.mnemonic = mnemonic
        self.operand_format = operand_format
        self.flow = flow

    @classmethod
    def from_mnemonic(cls, mnemonic: str, *, address: Optional[int] = None) -> "Opcode":
        opcode = _BY_MNEMONIC.get(mnemonic)
        if opcode is None:
            raise UnknownOpcode("unknown instruction", address=address, context=mnemonic)
        return opcode


_BY_MNEMONIC: Dict[str, Opcode] = {opcode.mnemonic: opcode for opcode in Opcode}


@dataclass(frozen=True)
class Operands:
    """Sparse operand record.

    Only the fields named by the opcode's :class:`OperandFormat` are set;
    the rest stay ``None`` so a missing immediate never looks like zero.
    """

    d: Optional[str] = None
    a: Optional[str] = None
    b: Optional[str] = None
    i: Optional[int] = None
    k: Optional[int] = None
    n: Optional[int] = None


@dataclass(frozen=True)
class Instruction:
    """A decoded listing line.

    ``address`` is where the instruction is rendered; delay-slot
    normalisation may move a filler onto its branch's address, in which case
    ``original_address`` still records where it came from.
    """

    address: int
    opcode: Opcode
    operands: Operands
    text: str
    original_address: int = -1
    emits_block_start: bool = True
    delay_resolved: bool = False

    def __post_init__(self) -> None:
        if self.original_address < 0:
            object.__setattr__(self, "original_address", self.address)

    @property
    def mnemonic(self) -> str:
        return self.opcode.mnemonic

    @property
    def flow(self) -> FlowKind:
        return self.opcode.flow

    @property
    def target(self) -> Optional[int]:
        return self.operands.n

    @property
    def is_nop(self) -> bool:
        return self.opcode is Opcode.NOP


_SPLIT = re.compile(r"\s*,\s*")
_REGISTER = re.compile(r"^r([0-9]+)$")
_TARGET = re.compile(r"^([0-9a-f]+)")
_HEX_IMMEDIATE = re.compile(r"^0x([0-9a-f]+)$")
_DEC_IMMEDIATE = re.compile(r"^(-?[0-9]+)$")
_MEMORY = re.compile(r"^(-?[0-9]+)\((r[0-9]+)\)$")


def decode_operands(
    operand_format: OperandFormat,
    text: str,
    *,
    address: Optional[int] = None,
) -> Operands:
    """Parse ``text`` according to ``operand_format``."""

    specs = operand_format.fields
    if not specs:
        # objdump prints e.g. ``l.nop 0x0``; the operand carries no meaning.
        return Operands()

    values = _SPLIT.split(text.strip())
    if len(values) != len(specs):
        raise OperandCountMismatch(
            f"expected {len(specs)} operand(s) for format {operand_format.value!r}",
            address=address,
            context=text,
        )

    fields: Dict[str, object] = {}
    for spec, value in zip(specs, values):
        if spec in ("a", "b", "d"):
            fields[spec] = _parse_register(value, address)
        elif spec == "n":
            match = _TARGET.match(value)
            if match is None:
                raise OperandSyntaxError("invalid branch target", address=address, context=value)
            fields["n"] = int(match.group(1), 16)
        elif spec in ("i", "k"):
            fields[spec] = _parse_immediate(value, address)
        elif spec in ("i(a)", "i(d)"):
            match = _MEMORY.match(value)
            if match is None:
                raise OperandSyntaxError("invalid memory operand", address=address, context=value)
            fields["i"] = int(match.group(1))
            fields[spec[2]] = _parse_register(match.group(2), address)
        else:  # pragma: no cover - formats are a closed set
            raise OperandSyntaxError("unsupported operand spec", address=address, context=spec)
    return Operands(**fields)  # type: ignore[arg-type]


def decode_instruction(address: int, mnemonic: str, operand_text: str) -> Instruction:
    opcode = Opcode.from_mnemonic(mnemonic, address=address)
    operands = decode_operands(opcode.operand_format, operand_text, address=address)
    text = f"{mnemonic} {operand_text}".rstrip()
    return Instruction(address=address, opcode=opcode, operands=operands, text=text)


def _parse_register(value: str, address: Optional[int]) -> str:
    match = _REGISTER.match(value)
    if match is None or int(match.group(1)) > 31:
        raise OperandSyntaxError("invalid register", address=address, context=value)
    return value


def _parse_immediate(value: str, address: Optional[int]) -> int:
    match = _HEX_IMMEDIATE.match(value)
    if match is not None:
        return int(match.group(1), 16)
    match = _DEC_IMMEDIATE.match(value)
    if match is not None:
        return int(match.group(1))
    raise OperandSyntaxError("invalid immediate", address=address, context=value)


__all__ = [
    "FlowKind",
    "Instruction",
    "OperandFormat",
    "Operands",
    "Opcode",
    "decode_instruction",
    "decode_operands",
]
