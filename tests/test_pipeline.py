from pathlib import Path

import pytest

from or1kdecomp import Decompiler, KnowledgeBase, UnknownOpcode

LISTING = """
00000200 <l_000200>:
     200:\t18 60 01 c2 \tl.movhi r3,0x1c2
     204:\ta8 63 80 00 \tl.ori r3,r3,0x8000
     208:\t44 00 48 00 \tl.jr r9
     20c:\t15 00 00 00 \tl.nop 0x0
"""


def test_decompile_from_image_path(knowledge_file: Path, image_file: Path) -> None:
    decompiler = Decompiler(KnowledgeBase.load(knowledge_file), image_file)
    output = decompiler.decompile(LISTING)
    assert "A1 = UART0_RBR /* 0x01c28000 */" in output
    assert "return" in output
    assert output.endswith("// l.jr r9\n")


def test_decompile_from_bytes(knowledge: KnowledgeBase, image_file: Path) -> None:
    decompiler = Decompiler(knowledge, image_file.read_bytes())
    flow = decompiler.reconstruct(LISTING)
    assert len(flow.listing) == 4
    assert len(flow.instructions) == 3
    assert flow.delay_slots == {0x20C}


def test_unknown_mnemonic_aborts(knowledge: KnowledgeBase) -> None:
    decompiler = Decompiler(knowledge, bytes(0x800))
    with pytest.raises(UnknownOpcode, match="l.frob"):
        decompiler.decompile("     200:\t00 00 00 00 \tl.frob r3\n")
