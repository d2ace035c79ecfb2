import pytest

from bend_sim.core.errors import InvalidRegister
from bend_sim.core.registers import RegisterFile, AVATAR_REGISTER


def test_fresh_file_is_zeroed():
    regs = RegisterFile()
    assert regs.snapshot() == [0] * 32
    assert regs.pc == 0


@pytest.mark.parametrize("index", [-1, 32, 100, "r1", None, 1.0, True])
def test_invalid_index_fails_loudly(index):
    regs = RegisterFile()
    with pytest.raises(InvalidRegister) as exc:
        regs.get(index)
    assert exc.value.index == index
    with pytest.raises(InvalidRegister):
        regs.set(index, 1)


def test_values_wrap_to_32_bits():
    regs = RegisterFile()
    regs.set(1, 0x7FFFFFFF + 1)
    assert regs.get(1) == -(1 << 31)
    regs.set(2, 0xFFFFFFFF)
    assert regs.get(2) == -1
    regs.set(3, -(1 << 31) - 1)
    assert regs.get(3) == 0x7FFFFFFF


def test_register_zero_is_ordinary_by_default():
    regs = RegisterFile()
    regs.set(0, 9)
    assert regs.get(0) == 9


def test_register_zero_can_be_wired():
    regs = RegisterFile(zero_wired=True)
    regs.set(0, 9)
    assert regs.get(0) == 0


def test_program_counter_is_unsigned_and_unvalidated():
    regs = RegisterFile()
    regs.set_program_counter(0x00400000)
    assert regs.get_program_counter() == 0x00400000
    regs.pc = -4
    assert regs.pc == 0xFFFFFFFC
    regs.pc = 3  # misaligned is only caught at fetch time
    assert regs.pc == 3


def test_avatar_flag_lives_in_register_27():
    regs = RegisterFile()
    assert AVATAR_REGISTER == 27
    regs.set(27, 1)
    assert regs.avatar == 1


def test_reset():
    regs = RegisterFile()
    regs.set(5, 5)
    regs.pc = 40
    regs.reset(pc=8)
    assert regs.get(5) == 0 and regs.pc == 8
