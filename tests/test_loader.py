import pytest

from bend_sim.core.memory import DATA_BASE, TEXT_BASE
from bend_sim.tools.loader import load_into, parse_hex_program


def test_parse_blocks_and_comments():
    blocks = parse_hex_program(
        "# header\n"
        "0x20010005 0x0000000A\n"
        "\n"
        "@0x10010000   ; data\n"
        "2a, ff_ff_ff_ff\n"
    )
    assert len(blocks) == 2
    assert blocks[0].addr == TEXT_BASE
    assert blocks[0].words == [0x20010005, 0x0000000A]
    assert blocks[0].end == TEXT_BASE + 8
    assert blocks[1].addr == 0x10010000
    assert blocks[1].words == [0x2A, 0xFFFFFFFF]


def test_named_origins():
    blocks = parse_hex_program("@data\n0x2A\n@TEXT\n0x0000000A\n")
    assert [b.addr for b in blocks] == [DATA_BASE, TEXT_BASE]


@pytest.mark.parametrize("text", ["@0x3\n0x0\n", "@heap\n0x0\n", "0x123456789\n", "zz\n"])
def test_parse_errors(text):
    with pytest.raises(ValueError):
        parse_hex_program(text)


def test_load_into_sets_program_region(cpu, asm):
    blocks = parse_hex_program(
        f"0x{asm('FLOW', 1, 0, 2):08X}\n0x{asm('MEDITATE'):08X}\n@0x10010000\n0x2A\n"
    )
    cpu.registers.set(2, 0x10010000)
    base, end = load_into(cpu, blocks)
    assert (base, end) == (TEXT_BASE, TEXT_BASE + 8)
    assert cpu.run() == 2
    assert cpu.registers.get(1) == 42


def test_load_into_empty_program(cpu):
    with pytest.raises(ValueError):
        load_into(cpu, [])
