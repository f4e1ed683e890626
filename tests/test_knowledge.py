import json
from pathlib import Path

import pytest

from or1kdecomp import KnowledgeBase, MemoryRange, MirrorWindow, RangeKind

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_bundled_firmware_knowledge_loads():
    knowledge = KnowledgeBase.load(REPO_ROOT / "knowledge" / "firmware.json")
    assert knowledge.register_name(0x01C00024) == "VER_REG"
    assert knowledge.symbol(0x13404) == "fn_dprintf"
    assert 0x101D8 in knowledge.functions
    assert knowledge.jump_tables[0] == 0x43089480
    assert knowledge.string_tables == (0x8A60, 0x43089570, 0x4308952C)
    assert knowledge.mirrors[0].normalize(0x43080000) == 0xC000


def test_bundled_firmware_knowledge_generated_registers():
    knowledge = KnowledgeBase.load(REPO_ROOT / "knowledge")
    assert knowledge.register_name(0x1C17104) == "MSGBOX1_FIFO_STATUS_REG"
    assert knowledge.register_name(0x1C1817C) == "SPINLOCK_LOCK_REG31"
    assert knowledge.register_name(0x01C20800 + 0x24 * 6) == "PIO_PG_CFG0"
    assert knowledge.register_name(0x9014) == "timer_server_counter"


def test_missing_file_yields_empty_knowledge(tmp_path: Path) -> None:
    knowledge = KnowledgeBase.load(tmp_path / "absent.json")
    assert knowledge.ranges == ()
    assert knowledge.mirrors == ()
    assert not knowledge.functions
    assert knowledge.symbol(0x100) is None


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "firmware.json"
    payload = {
        "ranges": [["c", "0x100", "0x1ff", "code"], {"kind": "s", "start": 512, "end": "2ff"}],
        "symbols": {"100": "entry"},
        "functions": ["0x180", "0x180"],
        "jump_tables": ["0x200", "0x204", "0x200"],
    }
    path.write_text(json.dumps(payload), "utf-8")

    knowledge = KnowledgeBase.load(tmp_path)
    assert knowledge.ranges == (
        MemoryRange(RangeKind.CODE, 0x100, 0x1FF, "code"),
        MemoryRange(RangeKind.STRING, 0x200, 0x2FF, ""),
    )
    assert knowledge.symbol(0x100) == "entry"
    assert knowledge.functions == frozenset({0x180})
    assert knowledge.jump_tables == (0x200, 0x204)


def test_number_strings_are_always_hex():
    knowledge = KnowledgeBase.from_json(
        {"functions": ["10080", "0x101d8", "101D8", 42], "symbols": {"13404": "fn_dprintf"}}
    )
    assert knowledge.functions == frozenset({0x10080, 0x101D8, 42})
    assert knowledge.symbol(0x13404) == "fn_dprintf"


def test_number_strings_must_be_hex():
    with pytest.raises(ValueError):
        KnowledgeBase.from_json({"functions": ["0x10g80"]})


def test_name_tables_are_read_only(knowledge: KnowledgeBase) -> None:
    with pytest.raises(TypeError):
        knowledge.symbols[0x200] = "other"  # type: ignore[index]


def test_mirror_must_not_overlap_canonical_window():
    mirror = MirrorWindow(start=0x1000, size=0x1000, canonical=0x1800)
    with pytest.raises(ValueError, match="overlaps"):
        KnowledgeBase(mirrors=[mirror])


@pytest.mark.parametrize(
    "token, kind",
    [
        ("v", RangeKind.VECTOR),
        ("code", RangeKind.CODE),
        ("D", RangeKind.DATA),
        ("string", RangeKind.STRING),
        ("r", RangeKind.REGISTER_WINDOW),
        ("register_window", RangeKind.REGISTER_WINDOW),
    ],
)
def test_range_kind_parsing(token: str, kind: RangeKind) -> None:
    assert RangeKind.parse(token) is kind


def test_malformed_ranges_are_rejected():
    with pytest.raises(ValueError, match="unknown memory range kind"):
        KnowledgeBase.from_json({"ranges": [["x", "0x0", "0x10"]]})
    with pytest.raises(ValueError, match="ends before it starts"):
        KnowledgeBase.from_json({"ranges": [["c", "0x10", "0x0", "backwards"]]})
