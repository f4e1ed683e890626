import pytest

from or1kdecomp import (
    FlowKind,
    Opcode,
    OperandCountMismatch,
    OperandFormat,
    Operands,
    OperandSyntaxError,
    UnknownOpcode,
)
from or1kdecomp.instruction import decode_instruction, decode_operands


def test_every_mnemonic_maps_back_to_its_opcode():
    for opcode in Opcode:
        assert Opcode.from_mnemonic(opcode.mnemonic) is opcode
        assert opcode.mnemonic.startswith("l.")


def test_unknown_mnemonic_is_fatal():
    with pytest.raises(UnknownOpcode, match="l.frob"):
        Opcode.from_mnemonic("l.frob", address=0x100)


@pytest.mark.parametrize(
    "opcode, flow",
    [
        (Opcode.BF, FlowKind.BRANCH),
        (Opcode.BNF, FlowKind.BRANCH),
        (Opcode.J, FlowKind.JUMP),
        (Opcode.JAL, FlowKind.CALL),
        (Opcode.JALR, FlowKind.CALL_REGISTER),
        (Opcode.JR, FlowKind.JUMP_REGISTER),
        (Opcode.ADD, FlowKind.NONE),
        (Opcode.NOP, FlowKind.NONE),
    ],
)
def test_control_flow_classification(opcode: Opcode, flow: FlowKind) -> None:
    assert opcode.flow is flow


def test_delay_slot_and_target_properties():
    assert FlowKind.JUMP_REGISTER.has_delay_slot
    assert not FlowKind.JUMP_REGISTER.has_target
    assert FlowKind.CALL.has_target
    assert not FlowKind.NONE.has_delay_slot


@pytest.mark.parametrize(
    "operand_format, text, expected",
    [
        (OperandFormat.RRR, "r3,r4,r5", Operands(d="r3", a="r4", b="r5")),
        (OperandFormat.RRI, "r1, r1, -16", Operands(d="r1", a="r1", i=-16)),
        (OperandFormat.RRI, "r3,r3,0xff", Operands(d="r3", a="r3", i=0xFF)),
        (OperandFormat.RI_SHIFT, "r3,0x1c2", Operands(d="r3", k=0x1C2)),
        (OperandFormat.BRANCH_TARGET, "4a10 <fn_main+0x10>", Operands(n=0x4A10)),
        (OperandFormat.REGISTER_ONLY, "r9", Operands(d="r9")),
        (OperandFormat.LOAD, "r3,-4(r1)", Operands(d="r3", a="r1", i=-4)),
        (OperandFormat.STORE, "8(r1),r9", Operands(d="r1", a="r9", i=8)),
        (OperandFormat.SPR_READ, "r3,r0,0x11", Operands(d="r3", a="r0", k=0x11)),
        (OperandFormat.SPR_WRITE, "r0,r4,0x11", Operands(a="r0", b="r4", k=0x11)),
        (OperandFormat.COMPARE_REG, "r3,r4", Operands(a="r3", b="r4")),
        (OperandFormat.COMPARE_IMM, "r3,65", Operands(a="r3", i=65)),
        (OperandFormat.NO_OPERAND, "0x0", Operands()),
    ],
)
def test_decode_operands(operand_format: OperandFormat, text: str, expected: Operands) -> None:
    assert decode_operands(operand_format, text) == expected


def test_absent_operands_are_not_zero():
    operands = decode_operands(OperandFormat.COMPARE_REG, "r3,r4")
    assert operands.i is None
    assert operands.d is None


def test_operand_count_mismatch():
    with pytest.raises(OperandCountMismatch, match="expected 3"):
        decode_operands(OperandFormat.RRR, "r3,r4", address=0x100)


@pytest.mark.parametrize(
    "operand_format, text",
    [
        (OperandFormat.RRR, "r3,r4,x5"),
        (OperandFormat.RRR, "r3,r4,r32"),
        (OperandFormat.RRI, "r3,r4,abc"),
        (OperandFormat.RRI, "r3,r4,0xzz"),
        (OperandFormat.BRANCH_TARGET, "<fn_main>"),
        (OperandFormat.LOAD, "r3,r1"),
        (OperandFormat.STORE, "0x4(r1),r3"),
    ],
)
def test_operand_syntax_errors(operand_format: OperandFormat, text: str) -> None:
    with pytest.raises(OperandSyntaxError):
        decode_operands(operand_format, text)


def test_decode_instruction_keeps_original_text():
    insn = decode_instruction(0x120, "l.addi", "r3,r0,5")
    assert insn.opcode is Opcode.ADDI
    assert insn.text == "l.addi r3,r0,5"
    assert insn.original_address == 0x120
    assert insn.emits_block_start
    assert not insn.delay_resolved


def test_decode_instruction_without_operands():
    insn = decode_instruction(0x124, "l.nop", "")
    assert insn.text == "l.nop"
    assert insn.is_nop
    assert insn.target is None


def test_branch_target():
    insn = decode_instruction(0x128, "l.bf", "140 <l_000140>")
    assert insn.target == 0x140
    assert insn.flow is FlowKind.BRANCH
