import json
from pathlib import Path
from typing import Dict

import pytest

from or1kdecomp import AddressSpace, BinaryImage, KnowledgeBase

IMAGE_SIZE = 0x800

SAMPLE_KNOWLEDGE: Dict[str, object] = {
    "mirrors": [{"start": "0x43080000", "size": "0x1000", "canonical": "0x600"}],
    "ranges": [
        ["v", "0x0000", "0x00ff", "vectors"],
        {"kind": "code", "start": "0x0100", "end": "0x03ff", "label": "sram code"},
        {"kind": "string", "start": "0x0400", "end": "0x04ff", "label": "sram strings"},
        {"kind": "data", "start": "0x0500", "end": "0x05ff", "label": "sram globals"},
        {"kind": "code", "start": "0x43080000", "end": "0x430801ff", "label": "dram code"},
        {"kind": "register", "start": "0x01c28000", "end": "0x01c283ff", "label": "UART-0"},
    ],
    "registers": {"0x01c28000": "UART0_RBR", "0x0508": "boot_counter"},
    "symbols": {"0x0100": "fn_reset"},
    "functions": ["0x0300"],
    "jump_tables": ["0x0580"],
    "string_tables": ["0x0590"],
}


def put_word(data: bytearray, address: int, value: int) -> None:
    data[address : address + 4] = value.to_bytes(4, "big")


def build_image() -> bytes:
    data = bytearray(IMAGE_SIZE)
    data[0x400:0x407] = b"hello\n\0"
    data[0x410:0x416] = b"world\0"
    data[0x420:0x424] = b'q"x\0'

    put_word(data, 0x580, 0x00000200)
    put_word(data, 0x584, 0x43080010)
    put_word(data, 0x588, 0xDEADBEEF)

    put_word(data, 0x590, 0x00000400)
    put_word(data, 0x594, 0x00000410)
    put_word(data, 0x598, 0x00000420)
    put_word(data, 0x59C, 0x00000000)

    put_word(data, 0x604, 0x0000CAFE)
    return bytes(data)


@pytest.fixture
def knowledge() -> KnowledgeBase:
    return KnowledgeBase.from_json(SAMPLE_KNOWLEDGE)


@pytest.fixture
def space(knowledge: KnowledgeBase) -> AddressSpace:
    return AddressSpace(knowledge)


@pytest.fixture
def image(space: AddressSpace) -> BinaryImage:
    return BinaryImage(build_image(), space)


@pytest.fixture
def knowledge_file(tmp_path: Path) -> Path:
    path = tmp_path / "firmware.json"
    path.write_text(json.dumps(SAMPLE_KNOWLEDGE, indent=2), "utf-8")
    return path


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    path = tmp_path / "firmware.bin"
    path.write_bytes(build_image())
    return path
