"""Per-opcode semantic rules that turn instructions into pseudo code.

Each :class:`Opcode` maps to exactly one rule.  A rule renders a single line
and updates the :class:`RegisterState` as a side effect: arithmetic folds to
a concrete value when every input register is known, otherwise the line is
rendered symbolically and the destination becomes unknown.

Multiply, divide, logical right shift, rotate and conditional move never
fold, even with known inputs.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from .address_space import AddressSpace
from .instruction import Instruction, Opcode
from .registers import (
    RegisterState,
    register_alias,
    register_index,
    sign_extend16,
    to_hex32,
    to_signed32,
)

Rule = Callable[["InstructionExplainer", Instruction, RegisterState], str]

_MASK32 = 0xFFFFFFFF


def _offset_suffix(value: int) -> str:
    if value > 0:
        return f"+{value}"
    if value == 0:
        return ""
    return str(value)


def _immediate_comment(value: int) -> str:
    text = f"{value} /* {to_hex32(sign_extend16(value))}"
    if 0x20 <= value <= 0x7F:
        text += f" '{chr(value)}'"
    return text + " */"


def _spr_operand(a: str, k: int) -> str:
    number = to_hex32(k & 0xFFFF)
    detail = f" /* grp = {(k >> 11) & 0x1F}, reg = {k & 0x7FF} */"
    if a == "r0":
        return number + detail
    if k == 0:
        return register_alias(a)
    return f"{register_alias(a)} | {number}{detail}"


class InstructionExplainer:
    """Render instructions one at a time against a shared register state."""

    def __init__(self, space: AddressSpace) -> None:
        self.space = space

    def explain(self, insn: Instruction, state: RegisterState) -> str:
        return _RULES[insn.opcode](self, insn, state)

    # ------------------------------------------------------------------
    # shared helpers
    # ------------------------------------------------------------------
    def _assign(self, state: RegisterState, dest: str, value: int) -> str:
        index = register_index(dest)
        state.set_register(index, value)
        return f"{register_alias(dest)} = {state.format_register(index)}"

    def _registers(
        self,
        insn: Instruction,
        state: RegisterState,
        compute: Optional[Callable[[int, int], int]],
        symbolic: str,
        *,
        zero_form: Optional[str] = None,
    ) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.a is not None and ops.b is not None
        a, b = register_index(ops.a), register_index(ops.b)
        if compute is not None and state.is_known(a) and state.is_known(b):
            return self._assign(
                state, ops.d, compute(state.get_register(a), state.get_register(b))
            )

        state.set_register_unknown(register_index(ops.d))
        dest = register_alias(ops.d)
        if zero_form is not None and ops.a == "r0":
            return f"{dest} = {zero_form.format(b=register_alias(ops.b))}"
        return f"{dest} = {symbolic.format(a=register_alias(ops.a), b=register_alias(ops.b))}"

    def _immediate(
        self,
        insn: Instruction,
        state: RegisterState,
        compute: Optional[Callable[[int, int], int]],
        symbolic: str,
    ) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.a is not None and ops.i is not None
        a = register_index(ops.a)
        if compute is not None and state.is_known(a):
            return self._assign(state, ops.d, compute(state.get_register(a), ops.i))

        state.set_register_unknown(register_index(ops.d))
        return f"{register_alias(ops.d)} = {symbolic}"

    def _load(self, insn: Instruction, state: RegisterState, width: str) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.a is not None and ops.i is not None
        state.set_register_unknown(register_index(ops.d))
        return f"{register_alias(ops.d)} = [{width} {register_alias(ops.a)}{_offset_suffix(ops.i)}]"

    def _store(self, insn: Instruction, state: RegisterState, width: str, mask: int) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.a is not None and ops.i is not None
        slot = f"[{width} {register_alias(ops.d)}{_offset_suffix(ops.i)}]"
        source = register_index(ops.a)
        if state.is_known(source):
            return f"{slot} = {state.format_value(to_signed32(state.get_register(source) & mask))}"
        return f"{slot} = {register_alias(ops.a)}"

    def _compare(self, insn: Instruction, operator: str, qualifier: str) -> str:
        ops = insn.operands
        assert ops.a is not None
        left = qualifier + register_alias(ops.a)
        if ops.i is not None:
            return f"FLAG = {left} {operator} {_immediate_comment(ops.i)}"
        assert ops.b is not None
        return f"FLAG = {left} {operator} {register_alias(ops.b)}"

    def _target(self, insn: Instruction) -> str:
        assert insn.target is not None
        return self.space.label(insn.target)

    # ------------------------------------------------------------------
    # register/register arithmetic
    # ------------------------------------------------------------------
    def _add(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a + b, "{a} + {b}", zero_form="{b}")

    def _sub(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a - b, "{a} - {b}", zero_form="-{b}")

    def _and(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a & b, "{a} & {b}")

    def _or(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a | b, "{a} | {b}")

    def _xor(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a ^ b, "{a} ^ {b}")

    def _sll(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a << (b & 0x1F), "{a} << {b}")

    def _sra(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, lambda a, b: a >> (b & 0x1F), "arith {a} >> {b}")

    def _srl(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "logical {a} >> {b}")

    def _ror(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "rotate {a} >> {b}")

    def _mul(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "{a} * {b}")

    def _mulu(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "unsigned {a} * {b}")

    def _div(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "signed {a} / {b}")

    def _divu(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "unsigned {a} / {b}")

    def _cmov(self, insn: Instruction, state: RegisterState) -> str:
        return self._registers(insn, state, None, "FLAG ? {a} : {b}")

    # ------------------------------------------------------------------
    # register/immediate arithmetic
    # ------------------------------------------------------------------
    def _addi(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None and ops.i is not None
        source = register_alias(ops.a)
        if ops.i < 0:
            symbolic = f"{source} - {-ops.i}"
        elif ops.i == 0:
            symbolic = source
        else:
            symbolic = f"{source} + {ops.i}"
        return self._immediate(insn, state, lambda a, i: a + i, symbolic)

    def _andi(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None and ops.i is not None
        symbolic = f"{register_alias(ops.a)} & {to_hex32(ops.i & 0xFFFF)}"
        return self._immediate(insn, state, lambda a, i: a & i, symbolic)

    def _ori(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None and ops.i is not None
        source = register_alias(ops.a)
        symbolic = source if ops.i == 0 else f"{source} | {to_hex32(ops.i & 0xFFFF)}"
        return self._immediate(insn, state, lambda a, i: a | i, symbolic)

    def _xori(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None and ops.i is not None
        symbolic = f"{register_alias(ops.a)} ^ {to_hex32(sign_extend16(ops.i))}"
        return self._immediate(insn, state, lambda a, i: a ^ i, symbolic)

    def _muli(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None
        return self._immediate(insn, state, None, f"{register_alias(ops.a)} * {ops.i}")

    def _slli(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None
        symbolic = f"{register_alias(ops.a)} << {ops.i}"
        return self._immediate(insn, state, lambda a, i: a << (i & 0x1F), symbolic)

    def _srai(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None
        symbolic = f"arith {register_alias(ops.a)} >> {ops.i}"
        return self._immediate(insn, state, lambda a, i: a >> (i & 0x1F), symbolic)

    def _srli(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None
        return self._immediate(insn, state, None, f"logical {register_alias(ops.a)} >> {ops.i}")

    def _rori(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None
        return self._immediate(insn, state, None, f"rotate {register_alias(ops.a)} >> {ops.i}")

    def _movhi(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.k is not None
        state.set_register(register_index(ops.d), (ops.k << 16) & _MASK32)
        if ops.k == 0:
            return f"{register_alias(ops.d)} = 0"
        return f"{register_alias(ops.d)} = 0x{ops.k & 0xFFFF:04x}0000"

    # ------------------------------------------------------------------
    # control transfer
    # ------------------------------------------------------------------
    def _bf(self, insn: Instruction, state: RegisterState) -> str:
        return f"if (FLAG) goto {self._target(insn)}"

    def _bnf(self, insn: Instruction, state: RegisterState) -> str:
        return f"if (!FLAG) goto {self._target(insn)}"

    def _j(self, insn: Instruction, state: RegisterState) -> str:
        return f"goto {self._target(insn)}"

    def _jal(self, insn: Instruction, state: RegisterState) -> str:
        return f"call {self._target(insn)}"

    def _jalr(self, insn: Instruction, state: RegisterState) -> str:
        assert insn.operands.d is not None
        return f"call {register_alias(insn.operands.d)}"

    def _jr(self, insn: Instruction, state: RegisterState) -> str:
        assert insn.operands.d is not None
        dest = register_alias(insn.operands.d)
        if dest == "LR":
            return "return"
        return f"goto {dest}"

    # ------------------------------------------------------------------
    # memory
    # ------------------------------------------------------------------
    def _lbs(self, insn: Instruction, state: RegisterState) -> str:
        return self._load(insn, state, "s8")

    def _lbz(self, insn: Instruction, state: RegisterState) -> str:
        return self._load(insn, state, "u8")

    def _lhs(self, insn: Instruction, state: RegisterState) -> str:
        return self._load(insn, state, "s16")

    def _lhz(self, insn: Instruction, state: RegisterState) -> str:
        return self._load(insn, state, "u16")

    def _lwz(self, insn: Instruction, state: RegisterState) -> str:
        return self._load(insn, state, "u32")

    def _sw(self, insn: Instruction, state: RegisterState) -> str:
        return self._store(insn, state, "u32", _MASK32)

    def _sh(self, insn: Instruction, state: RegisterState) -> str:
        return self._store(insn, state, "u16", 0xFFFF)

    def _sb(self, insn: Instruction, state: RegisterState) -> str:
        return self._store(insn, state, "u8", 0xFF)

    # ------------------------------------------------------------------
    # special purpose registers
    # ------------------------------------------------------------------
    def _mfspr(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.d is not None and ops.a is not None and ops.k is not None
        state.set_register_unknown(register_index(ops.d))
        return f"{register_alias(ops.d)} = SPR({_spr_operand(ops.a, ops.k)})"

    def _mtspr(self, insn: Instruction, state: RegisterState) -> str:
        ops = insn.operands
        assert ops.a is not None and ops.b is not None and ops.k is not None
        target = f"SPR({_spr_operand(ops.a, ops.k)})"
        source = register_index(ops.b)
        if state.is_known(source):
            return f"{target} = {state.format_register(source)}"
        return f"{target} = {register_alias(ops.b)}"

    # ------------------------------------------------------------------
    # misc
    # ------------------------------------------------------------------
    def _asm(self, insn: Instruction, state: RegisterState) -> str:
        return f'asm "{insn.mnemonic}"'


def _comparison(operator: str, signedness: str = "") -> Rule:
    qualifier = f"{signedness} " if signedness else ""

    def rule(explainer: InstructionExplainer, insn: Instruction, state: RegisterState) -> str:
        return explainer._compare(insn, operator, qualifier)

    return rule


_RULES: Dict[Opcode, Rule] = {
    Opcode.ADD: InstructionExplainer._add,
    Opcode.AND: InstructionExplainer._and,
    Opcode.SUB: InstructionExplainer._sub,
    Opcode.XOR: InstructionExplainer._xor,
    Opcode.OR: InstructionExplainer._or,
    Opcode.MUL: InstructionExplainer._mul,
    Opcode.MULU: InstructionExplainer._mulu,
    Opcode.DIV: InstructionExplainer._div,
    Opcode.DIVU: InstructionExplainer._divu,
    Opcode.SLL: InstructionExplainer._sll,
    Opcode.SRA: InstructionExplainer._sra,
    Opcode.SRL: InstructionExplainer._srl,
    Opcode.ROR: InstructionExplainer._ror,
    Opcode.CMOV: InstructionExplainer._cmov,
    Opcode.ADDI: InstructionExplainer._addi,
    Opcode.ANDI: InstructionExplainer._andi,
    Opcode.XORI: InstructionExplainer._xori,
    Opcode.ORI: InstructionExplainer._ori,
    Opcode.MULI: InstructionExplainer._muli,
    Opcode.SLLI: InstructionExplainer._slli,
    Opcode.SRAI: InstructionExplainer._srai,
    Opcode.SRLI: InstructionExplainer._srli,
    Opcode.RORI: InstructionExplainer._rori,
    Opcode.MOVHI: InstructionExplainer._movhi,
    Opcode.BF: InstructionExplainer._bf,
    Opcode.BNF: InstructionExplainer._bnf,
    Opcode.J: InstructionExplainer._j,
    Opcode.JAL: InstructionExplainer._jal,
    Opcode.JALR: InstructionExplainer._jalr,
    Opcode.JR: InstructionExplainer._jr,
    Opcode.LBS: InstructionExplainer._lbs,
    Opcode.LBZ: InstructionExplainer._lbz,
    Opcode.LHS: InstructionExplainer._lhs,
    Opcode.LHZ: InstructionExplainer._lhz,
    Opcode.LWZ: InstructionExplainer._lwz,
    Opcode.SW: InstructionExplainer._sw,
    Opcode.SH: InstructionExplainer._sh,
    Opcode.SB: InstructionExplainer._sb,
    Opcode.MFSPR: InstructionExplainer._mfspr,
    Opcode.MTSPR: InstructionExplainer._mtspr,
    Opcode.SFEQ: _comparison("=="),
    Opcode.SFNE: _comparison("!="),
    Opcode.SFGES: _comparison(">=", "signed"),
    Opcode.SFGEU: _comparison(">=", "unsigned"),
    Opcode.SFGTS: _comparison(">", "signed"),
    Opcode.SFGTU: _comparison(">", "unsigned"),
    Opcode.SFLES: _comparison("<=", "signed"),
    Opcode.SFLEU: _comparison("<=", "unsigned"),
    Opcode.SFLTS: _comparison("<", "signed"),
    Opcode.SFLTU: _comparison("<", "unsigned"),
    Opcode.SFEQI: _comparison("=="),
    Opcode.SFNEI: _comparison("!="),
    Opcode.SFGESI: _comparison(">=", "signed"),
    Opcode.SFGEUI: _comparison(">=", "unsigned"),
    Opcode.SFGTSI: _comparison(">", "signed"),
    Opcode.SFGTUI: _comparison(">", "unsigned"),
    Opcode.SFLESI: _comparison("<=", "signed"),
    Opcode.SFLEUI: _comparison("<=", "unsigned"),
    Opcode.SFLTSI: _comparison("<", "signed"),
    Opcode.SFLTUI: _comparison("<", "unsigned"),
    Opcode.NOP: InstructionExplainer._asm,
    Opcode.CSYNC: InstructionExplainer._asm,
    Opcode.MSYNC: InstructionExplainer._asm,
    Opcode.PSYNC: InstructionExplainer._asm,
    Opcode.RFE: InstructionExplainer._asm,
}

_MISSING = set(Opcode) - set(_RULES)
if _MISSING:  # pragma: no cover - guards additions to Opcode
    raise RuntimeError(f"opcodes without rendering rule: {sorted(op.mnemonic for op in _MISSING)}")


__all__ = ["InstructionExplainer"]
