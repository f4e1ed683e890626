"""Control-flow reconstruction.

The reconstructor performs a single forward pass over the decoded listing:

* every branch, jump and call target becomes a basic-block start and receives
  a cross reference pointing back at the origin;
* delay slots are normalised so the instruction that architecturally
  executes first is also rendered first;
* jump tables are read from the image up front so their entries can open
  basic blocks as well.

A second pass checks that nothing branches into a delay slot, which would
mean the listing and the image disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .address_space import AddressSpace
from .errors import DoubleDelayError, JumpToDelaySlotError
from .image import BinaryImage
from .instruction import FlowKind, Instruction, Opcode
from .tables import JumpTable, StringTable

logger = logging.getLogger(__name__)


class DelaySlot(Enum):
    """State of the pending transfer slot."""

    EMPTY = auto()
    HOLDING = auto()


class PendingTransfer:
    """Holds at most one control instruction waiting for its delay slot."""

    def __init__(self) -> None:
        self.state = DelaySlot.EMPTY
        self._instruction: Optional[Instruction] = None

    @property
    def holding(self) -> bool:
        return self.state is DelaySlot.HOLDING

    def hold(self, instruction: Instruction) -> None:
        if self.state is DelaySlot.HOLDING:
            assert self._instruction is not None
            raise DoubleDelayError(
                "control instruction in a delay slot",
                address=instruction.address,
                context=f"{self._instruction.text} ; {instruction.text}",
            )
        self.state = DelaySlot.HOLDING
        self._instruction = instruction

    def release(self) -> Instruction:
        if self.state is DelaySlot.EMPTY or self._instruction is None:
            raise RuntimeError("no pending control instruction")
        instruction = self._instruction
        self.state = DelaySlot.EMPTY
        self._instruction = None
        return instruction


@dataclass(frozen=True)
class CrossReference:
    """A call or jump from ``origin`` to the annotated address."""

    kind: str
    origin: int
    label: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.label}"


@dataclass
class ControlFlow:
    """Everything the renderer needs besides the register state."""

    space: AddressSpace
    listing: List[Instruction]
    instructions: List[Instruction]
    block_starts: Set[int] = field(default_factory=set)
    delay_slots: Set[int] = field(default_factory=set)
    xrefs: Dict[int, List[CrossReference]] = field(default_factory=dict)
    jump_tables: List[JumpTable] = field(default_factory=list)
    jump_table_targets: Dict[int, List[Tuple[str, int]]] = field(default_factory=dict)
    string_tables: Dict[int, StringTable] = field(default_factory=dict)

    @property
    def functions(self) -> FrozenSet[int]:
        return self.space.functions

    def is_block_start(self, address: int) -> bool:
        return address in self.block_starts

    def is_function(self, address: int) -> bool:
        return self.space.is_function(address)

    def summary(self) -> str:
        return (
            f"instructions={len(self.instructions)} blocks={len(self.block_starts)}"
            f" functions={len(self.functions)} delay_slots={len(self.delay_slots)}"
            f" jump_tables={len(self.jump_tables)} string_tables={len(self.string_tables)}"
        )


class ControlFlowReconstructor:
    """Build a :class:`ControlFlow` from instructions in listing order."""

    def __init__(self, space: AddressSpace, image: BinaryImage) -> None:
        self.space = space
        self.image = image

    def reconstruct(self, instructions: Sequence[Instruction]) -> ControlFlow:
        calls = {insn.target for insn in instructions if insn.opcode is Opcode.JAL}
        space = self.space.with_functions(target for target in calls if target is not None)

        flow = ControlFlow(space=space, listing=list(instructions), instructions=[])
        flow.block_starts.update(space.functions)
        self._resolve_jump_tables(flow)
        self._read_string_tables(flow)
        self._normalise(flow, instructions)
        self._check_delay_slot_targets(flow)

        logger.info("control flow: %s", flow.summary())
        return flow

    # ------------------------------------------------------------------
    # tables
    # ------------------------------------------------------------------
    def _resolve_jump_tables(self, flow: ControlFlow) -> None:
        for seed in flow.space.knowledge.jump_tables:
            table = self.image.read_code_address_table(seed)
            flow.jump_tables.append(table)
            for target, label, index in table.annotations():
                flow.block_starts.add(target)
                flow.jump_table_targets.setdefault(target, []).append((label, index))

    def _read_string_tables(self, flow: ControlFlow) -> None:
        for seed in flow.space.knowledge.string_tables:
            table = self.image.read_string_table(seed)
            flow.string_tables[flow.space.normalize(seed)] = table

    # ------------------------------------------------------------------
    # delay slots
    # ------------------------------------------------------------------
    def _normalise(self, flow: ControlFlow, instructions: Sequence[Instruction]) -> None:
        pending = PendingTransfer()
        ordered = flow.instructions

        for insn in instructions:
            if insn.flow.has_target:
                self._add_reference(flow, insn)

            if insn.flow.has_delay_slot:
                if not insn.delay_resolved:
                    pending.hold(insn)
                    continue
                if pending.holding:
                    pending.hold(insn)

            if not pending.holding:
                ordered.append(insn)
                continue

            held = pending.release()
            flow.delay_slots.add(insn.address)
            if insn.is_nop:
                ordered.append(replace(held, emits_block_start=True, delay_resolved=True))
            else:
                ordered.append(replace(insn, address=held.address))
                ordered.append(replace(held, emits_block_start=False, delay_resolved=True))

        if pending.holding:
            held = pending.release()
            logger.warning(
                "listing ends inside the delay slot of %s at 0x%06x", held.text, held.address
            )
            ordered.append(replace(held, delay_resolved=True))

    def _add_reference(self, flow: ControlFlow, insn: Instruction) -> None:
        target = insn.target
        assert target is not None
        flow.block_starts.add(target)
        kind = "call" if insn.flow is FlowKind.CALL else "jump"
        reference = CrossReference(kind, insn.address, flow.space.label(insn.address))
        flow.xrefs.setdefault(target, []).append(reference)

    @staticmethod
    def _check_delay_slot_targets(flow: ControlFlow) -> None:
        for insn in flow.listing:
            if not insn.flow.has_target:
                continue
            if insn.target in flow.delay_slots:
                raise JumpToDelaySlotError(
                    "branch into a delay slot",
                    address=insn.address,
                    context=insn.text,
                )


__all__ = [
    "ControlFlow",
    "ControlFlowReconstructor",
    "CrossReference",
    "DelaySlot",
    "PendingTransfer",
]
