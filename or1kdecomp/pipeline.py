"""High level facade wiring the decompiler stages together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Union

from .address_space import AddressSpace
from .flow import ControlFlow, ControlFlowReconstructor
from .image import BinaryImage
from .instruction import Instruction
from .knowledge import KnowledgeBase
from .listing import decode_listing
from .renderer import ListingRenderer

logger = logging.getLogger(__name__)


class Decompiler:
    """Decode a listing, reconstruct its control flow and render it.

    The stages run strictly in order and each one consumes the complete
    output of the previous stage.
    """

    def __init__(self, knowledge: KnowledgeBase, image: Union[bytes, Path]) -> None:
        self.knowledge = knowledge
        self.space = AddressSpace(knowledge)
        if isinstance(image, Path):
            self.image = BinaryImage.load(image, self.space)
        else:
            self.image = BinaryImage(image, self.space)
        logger.debug("firmware image: %d byte(s)", len(self.image))

    def decode(self, listing: str) -> List[Instruction]:
        instructions = decode_listing(listing, self.space)
        logger.debug("decoded %d instruction(s)", len(instructions))
        return instructions

    def reconstruct(self, listing: str) -> ControlFlow:
        return ControlFlowReconstructor(self.space, self.image).reconstruct(self.decode(listing))

    def decompile(self, listing: str) -> str:
        return ListingRenderer(self.image).render(self.reconstruct(listing))


__all__ = ["Decompiler"]
