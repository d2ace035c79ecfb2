import io
import threading

import pytest

from bend_sim.core.cpu import CPU
from bend_sim.core.descriptors import Format, InstructionDescriptor, InstructionTable
from bend_sim.core.errors import AddressError, RoutineError, UnknownInstruction
from bend_sim.core.memory import TEXT_BASE
from bend_sim.core.registers import RegisterFile
from bend_sim.core.trap import TrapHandler


def loop_program(asm):
    """r5 += 1 three times via FORMLOOP, then trap and halt."""
    return [
        asm("PACK", 4, 0, 3),        # 0x00: r4 = 3
        asm("PACK", 5, 5, 1),        # 0x04: r5 += 1
        asm("FORMLOOP", 4, -2),      # 0x08: --r4, back to 0x04 while nonzero
        asm("SPIRITCALL", 1),        # 0x0C
        asm("MEDITATE"),             # 0x10
    ]


def test_step_fetches_from_pc(cpu, asm):
    cpu.load_program([asm("PACK", 1, 0, 5), asm("PACK", 2, 1, 2)])
    assert cpu.registers.pc == TEXT_BASE
    assert cpu.step() == TEXT_BASE + 4
    assert cpu.step() == TEXT_BASE + 8
    assert cpu.registers.get(1) == 5
    assert cpu.registers.get(2) == 7


def test_run_until_pc_leaves_program(cpu, asm, trap_out):
    cpu.load_program(loop_program(asm))
    steps = cpu.run()
    assert steps == 9
    assert cpu.registers.pc == 0
    assert cpu.registers.get(4) == 0
    assert cpu.registers.get(5) == 3
    assert trap_out == ["SPIRITCALL 1: Avatar path\n"]


def test_run_respects_max_steps(cpu, asm):
    cpu.load_program(loop_program(asm))
    assert cpu.run(max_steps=4) == 4
    assert cpu.registers.pc == TEXT_BASE + 8


def test_run_stops_at_breakpoint(cpu, asm):
    cpu.load_program(loop_program(asm))
    assert cpu.run(stop_at=TEXT_BASE + 12) == 7
    assert cpu.registers.pc == TEXT_BASE + 12
    assert cpu.registers.get(5) == 3


def test_breakpoint_at_start_does_not_block(cpu, asm):
    cpu.load_program(loop_program(asm))
    assert cpu.run(stop_at=TEXT_BASE) == 9


def test_run_without_program(cpu):
    with pytest.raises(ValueError):
        cpu.run()


def test_avatar_program(cpu, asm, trap_out):
    cpu.load_program([
        asm("GLIDE.A", TEXT_BASE + 16),  # AV = 0: falls through
        asm("AVATAR.ON"),
        asm("GLIDE.A", TEXT_BASE + 16),  # taken
        asm("SPIRITCALL", 0),            # skipped
        asm("SPIRITCALL", 2),
        asm("MEDITATE"),
    ])
    assert cpu.run() == 5
    assert trap_out == ["SPIRITCALL 2: invoked\n"]


def test_start_address(cpu, asm):
    cpu.load_program([asm("PACK", 1, 0, 1), asm("PACK", 2, 0, 2)], start=TEXT_BASE + 4)
    cpu.run()
    assert cpu.registers.get(1) == 0
    assert cpu.registers.get(2) == 2


def test_illegal_instruction_is_reported_not_skipped(cpu):
    cpu.load_program([0xFC000000])
    with pytest.raises(UnknownInstruction) as exc:
        cpu.step()
    assert exc.value.address == TEXT_BASE
    assert cpu.registers.pc == TEXT_BASE
    assert cpu.metrics["errors"] == 1


def test_fetch_from_misaligned_pc(cpu, asm):
    cpu.load_program([asm("MEDITATE")])
    cpu.registers.pc = TEXT_BASE + 2
    with pytest.raises(AddressError):
        cpu.step()


def test_address_error_stops_run(cpu, asm):
    cpu.load_program([asm("FLOW", 1, 3, 0), asm("PACK", 2, 0, 1)])
    with pytest.raises(AddressError):
        cpu.run()
    assert cpu.registers.pc == TEXT_BASE
    assert cpu.registers.get(2) == 0


def test_routine_must_return_next_pc():
    def forgetful(ops, regs, mem, trap):
        regs.set(1, 1)

    table = InstructionTable([
        InstructionDescriptor("NOPE", "NOPE", Format.R_FORMAT, "1" * 32, forgetful),
    ])
    cpu = CPU(table=table)
    cpu.registers.pc = 0x40
    with pytest.raises(RoutineError) as exc:
        cpu.execute_word(0xFFFFFFFF)
    assert exc.value.mnemonic == "NOPE"
    assert cpu.registers.pc == 0x40


def test_custom_instruction_extends_catalog(cpu):
    def double(ops, regs, mem, trap):
        rd, rs = ops
        regs.set(rd, regs.get(rs) * 2)
        return regs.pc + 4

    cpu.table.register(InstructionDescriptor(
        "SURGE", "SURGE rd,rs", Format.R_FORMAT, "111111fffffsssss0000000000000000", double,
    ))
    cpu.registers.set(2, 21)
    cpu.execute_word(0xFC000000 | (1 << 21) | (2 << 16))
    assert cpu.registers.get(1) == 42


def test_machines_are_independent(asm):
    a, b = CPU(trap=TrapHandler(collector=[])), CPU(trap=TrapHandler(collector=[]))
    a.registers.set(1, 5)
    a.execute_word(asm("PACK", 2, 1, 1))
    assert a.registers.get(2) == 6
    assert b.registers.get(2) == 0
    assert b.registers.pc == 0


def test_zero_wired_option(asm):
    cpu = CPU(registers=RegisterFile(zero_wired=True))
    cpu.execute_word(asm("PACK", 0, 0, 9))
    assert cpu.registers.get(0) == 0


def test_trap_stream_output(asm):
    stream = io.StringIO()
    cpu = CPU(trap=TrapHandler(stream=stream))
    cpu.execute_word(asm("SPIRITCALL", 7))
    assert stream.getvalue() == "SPIRITCALL 7: invoked\n"


def test_concurrent_steps_are_serialised(asm):
    cpu = CPU(trap=TrapHandler(collector=[]))
    n = 200
    cpu.load_program([asm("PACK", 1, 1, 1)] * n)

    def worker():
        for _ in range(n // 4):
            cpu.step()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert cpu.registers.get(1) == n
    assert cpu.registers.pc == TEXT_BASE + 4 * n


def test_verbose_prints_each_step(asm, capsys):
    cpu = CPU(verbose=True)
    cpu.registers.pc = 0x100
    cpu.execute_word(asm("RAISE", 3, 1, 2))
    out = capsys.readouterr().out
    assert "DEBUG: 0x00000100: RAISE $3,$1,$2" in out


def test_register_dump(cpu):
    cpu.registers.set(31, -1)
    lines = cpu.register_dump()
    assert lines[0] == "pc  = 0x00000000"
    assert len(lines) == 9
    assert "r31= " in lines[-1] and "-1" in lines[-1]


def test_reset(cpu, asm):
    cpu.load_program(loop_program(asm))
    cpu.run()
    cpu.reset()
    assert cpu.registers.pc == TEXT_BASE
    assert cpu.registers.get(5) == 0
    assert cpu.metrics["instr_count"] == 0


def test_execute_waits_for_a_cycle_in_progress(asm):
    cpu = CPU(trap=TrapHandler(collector=[]))
    decoded = cpu.decode(asm("PACK", 1, 1, 1))
    with cpu._lock:
        t = threading.Thread(target=cpu.execute, args=(decoded,))
        t.start()
        t.join(timeout=0.2)
        assert t.is_alive()
        assert cpu.registers.get(1) == 0
    t.join()
    assert cpu.registers.get(1) == 1
    assert cpu.registers.pc == 4
