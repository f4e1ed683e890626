"""Serialise a reconstructed :class:`ControlFlow` into the annotated listing."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Iterable, List, Optional, Union

from .explain import InstructionExplainer
from .flow import ControlFlow
from .image import BinaryImage
from .instruction import Instruction, Opcode
from .registers import RegisterState
from .values import ValueFormatter

FUNCTION_SEPARATOR = "-" * 62
EXPLANATION_WIDTH = 90


class ListingRenderer:
    """Replay the normalised stream and emit one line per instruction.

    Annotation lines (block gaps, function separators, cross references and
    jump table entries) precede the instruction they describe.  The register
    state is threaded through the whole listing and reset at every block
    start and after every unconditional jump.
    """

    def __init__(self, image: BinaryImage) -> None:
        self.image = image

    def render(self, flow: ControlFlow) -> str:
        return "".join(line + "\n" for line in self.iter_lines(flow))

    def write(self, flow: ControlFlow, output: Union[Path, IO[str]]) -> None:
        text = self.render(flow)
        if isinstance(output, Path):
            output.write_text(text, "utf-8")
        else:
            output.write(text)

    def iter_lines(self, flow: ControlFlow, state: Optional[RegisterState] = None) -> Iterable[str]:
        formatter = ValueFormatter(flow.space, self.image, flow.string_tables)
        if state is None:
            state = RegisterState(formatter)
        explainer = InstructionExplainer(flow.space)

        for insn in flow.instructions:
            yield from self._annotations(flow, insn, state)

            label = flow.space.label(insn.address)
            numeric = flow.space.label(insn.address, numeric=True)
            if label != numeric:
                yield f"{label}:"

            text = explainer.explain(insn, state)
            yield f"{numeric}:   {text:<{EXPLANATION_WIDTH}} // {insn.text}"

            if insn.opcode is Opcode.J:
                state.reset_all()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _annotations(flow: ControlFlow, insn: Instruction, state: RegisterState) -> List[str]:
        if not insn.emits_block_start:
            return []

        lines: List[str] = []
        address = insn.address
        if flow.is_block_start(address):
            state.reset_all()
            lines.extend(["", ""])
        if flow.is_function(address):
            lines.extend([FUNCTION_SEPARATOR, "", ""])

        references = flow.xrefs.get(address)
        if references:
            lines.append("// xrefs from: " + " ".join(str(ref) for ref in references))
        for table_label, index in flow.jump_table_targets.get(address, ()):
            lines.append(f"{table_label}[{index}]:")
        return lines


__all__ = ["EXPLANATION_WIDTH", "FUNCTION_SEPARATOR", "ListingRenderer"]
