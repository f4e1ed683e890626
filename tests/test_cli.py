import subprocess
import sys
from pathlib import Path

SCRIPT = Path(__file__).resolve().parents[1] / "or1k_decompile.py"

LISTING = """
     200:\t18 60 01 c2 \tl.movhi r3,0x1c2
     204:\ta8 63 80 00 \tl.ori r3,r3,0x8000
     208:\t44 00 48 00 \tl.jr r9
     20c:\t15 00 00 00 \tl.nop 0x0
"""


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
    )


def test_cli_prints_annotated_listing(tmp_path: Path, knowledge_file: Path, image_file: Path) -> None:
    listing_path = tmp_path / "firmware.lst"
    listing_path.write_text(LISTING, "utf-8")

    result = _run(str(listing_path), str(image_file), "--knowledge-base", str(knowledge_file))

    assert result.returncode == 0, result.stderr
    assert "jt_000580[0]:" in result.stdout
    assert "A1 = UART0_RBR /* 0x01c28000 */" in result.stdout


def test_cli_writes_output_file(tmp_path: Path, knowledge_file: Path, image_file: Path) -> None:
    listing_path = tmp_path / "firmware.lst"
    listing_path.write_text(LISTING, "utf-8")
    output_path = tmp_path / "firmware.c.txt"

    result = _run(
        str(listing_path),
        str(image_file),
        "--knowledge-base",
        str(knowledge_file),
        "--output",
        str(output_path),
        "--verbose",
    )

    assert result.returncode == 0, result.stderr
    assert f"listing written to {output_path}" in result.stdout
    assert "return" in output_path.read_text("utf-8")
    assert "control flow:" in result.stderr


def test_cli_reports_decompiler_errors(tmp_path: Path, knowledge_file: Path, image_file: Path) -> None:
    listing_path = tmp_path / "broken.lst"
    listing_path.write_text("     200:\t00 00 00 00 \tl.frob r3\n", "utf-8")

    result = _run(str(listing_path), str(image_file), "--knowledge-base", str(knowledge_file))

    assert result.returncode == 1
    assert "error: unknown instruction at 0x000200 ('l.frob')" in result.stderr


def test_cli_rejects_missing_inputs(tmp_path: Path) -> None:
    result = _run(str(tmp_path / "absent.lst"), str(tmp_path / "absent.bin"))
    assert result.returncode == 1
    assert "missing input file" in result.stderr


def test_cli_reports_malformed_knowledge_file(tmp_path: Path, image_file: Path) -> None:
    listing_path = tmp_path / "firmware.lst"
    listing_path.write_text(LISTING, "utf-8")
    knowledge_path = tmp_path / "broken.json"
    knowledge_path.write_text("{not json", "utf-8")

    result = _run(str(listing_path), str(image_file), "--knowledge-base", str(knowledge_path))

    assert result.returncode == 1
    assert result.stderr.startswith("error: ")
    assert "Traceback" not in result.stderr
