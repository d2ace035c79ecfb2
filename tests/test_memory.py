import pytest

from bend_sim.core.errors import AddressError
from bend_sim.core.memory import DATA_BASE, Memory


def test_write_is_visible_to_next_read():
    mem = Memory()
    mem.write_word(0x100, 42)
    assert mem.read_word(0x100) == 42
    mem.write_word(0x100, -7)
    assert mem.read_word(0x100) == -7
    assert mem.read_bits(0x100) == 0xFFFFFFF9


def test_untouched_memory_reads_zero():
    assert Memory().read_word(0x1000) == 0


@pytest.mark.parametrize("addr", [1, 2, 3, 0x101])
def test_misaligned_access_is_rejected(addr):
    mem = Memory()
    with pytest.raises(AddressError) as exc:
        mem.read_word(addr)
    assert exc.value.address == addr
    assert "aligned" in exc.value.reason
    with pytest.raises(AddressError):
        mem.write_word(addr, 1)


def test_out_of_range_access_is_rejected():
    mem = Memory(base=0x1000, size=0x100)
    mem.write_word(0x10FC, 1)
    for addr in (0x0FFC, 0x1100, 0xFFFFFFFC):
        with pytest.raises(AddressError) as exc:
            mem.read_word(addr)
        assert "range" in exc.value.reason


def test_default_range_excludes_kernel_space():
    mem = Memory()
    with pytest.raises(AddressError):
        mem.write_word(0x80000000, 1)


def test_byte_order():
    little = Memory()
    little.write_word(0, 0x11223344)
    assert [little.read_byte(i) for i in range(4)] == [0x44, 0x33, 0x22, 0x11]

    big = Memory(byteorder="big")
    big.write_word(0, 0x11223344)
    assert [big.read_byte(i) for i in range(4)] == [0x11, 0x22, 0x33, 0x44]


def test_bad_configuration():
    with pytest.raises(ValueError):
        Memory(byteorder="middle")
    with pytest.raises(ValueError):
        Memory(base=0xFFFFFF00, size=0x1000)


def test_load_words_and_dump():
    mem = Memory()
    end = mem.load_words(0x400000, [1, 2, 0xFFFFFFFF])
    assert end == 0x40000C
    assert mem.dump(0x400000, 3) == [1, 2, 0xFFFFFFFF]


def test_byte_writes_compose_a_word():
    mem = Memory()
    for i, b in enumerate((0x78, 0x56, 0x34, 0x12)):
        mem.write_byte(0x200 + i, b)
    assert mem.read_bits(0x200) == 0x12345678
    mem.write_byte(0x203, 0x1FF)
    assert mem.read_byte(0x203) == 0xFF
    with pytest.raises(AddressError):
        mem.write_byte(0x80000000, 1)


def test_clear_forgets_every_byte():
    mem = Memory()
    mem.load_words(DATA_BASE, [1, 2])
    mem.clear()
    assert mem.dump(DATA_BASE, 2) == [0, 0]
