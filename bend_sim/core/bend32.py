# bend32.py: the BEND32 catalog (water/earth/fire/air + Avatar state)
#
# Every routine has the signature routine(ops, regs, mem, trap) -> next_pc.
# Nothing advances the PC for a routine: fall-through is an explicit PC + 4.
from typing import List

from .descriptors import Format, InstructionDescriptor, InstructionTable
from .encoding import WORD_MASK, SIGN_BIT, wrap32
from .registers import AVATAR_REGISTER

R = Format.R_FORMAT
I = Format.I_FORMAT
IB = Format.I_BRANCH_FORMAT
J = Format.J_FORMAT

NAME = "BEND32"
DESCRIPTION = "AVATAR Assembly Language (BEND32) - water/earth/fire/air + Avatar state."


def fall_through(regs) -> int:
    return (regs.pc + 4) & WORD_MASK


def branch_target(regs, offset: int) -> int:
    return (regs.pc + 4 + (offset << 2)) & WORD_MASK


def effective_address(regs, base_reg: int, imm: int) -> int:
    return (regs.get(base_reg) + imm) & WORD_MASK


# ---- Earth: R-type ALU ----
def _alu(op):
    def routine(ops, regs, mem, trap):
        rd, rs, rt = ops
        regs.set(rd, op(regs.get(rs), regs.get(rt)))
        return fall_through(regs)
    return routine


def _ripple(a: int, b: int) -> int:
    # the sum wraps to 32 bits before the arithmetic shift
    return wrap32(a + b) >> 1


# ---- Water: memory + immediate ----
def _flow(ops, regs, mem, trap):
    rt, imm, rs = ops
    regs.set(rt, mem.read_word(effective_address(regs, rs, imm)))
    return fall_through(regs)


def _freeze(ops, regs, mem, trap):
    rt, imm, rs = ops
    mem.write_word(effective_address(regs, rs, imm), regs.get(rt))
    return fall_through(regs)


def _pack(ops, regs, mem, trap):
    rt, rs, imm = ops
    regs.set(rt, regs.get(rs) + imm)
    return fall_through(regs)


# ---- Air: branches + jumps ----
def _branch(cond):
    def routine(ops, regs, mem, trap):
        rs, rt, off = ops
        if cond(regs.get(rs), regs.get(rt)):
            return branch_target(regs, off)
        return fall_through(regs)
    return routine


def _signs_differ(a: int, b: int) -> bool:
    return ((a ^ b) & SIGN_BIT) != 0


def _formloop(ops, regs, mem, trap):
    rs, off = ops
    regs.set(rs, regs.get(rs) - 1)
    if regs.get(rs) != 0:
        return branch_target(regs, off)
    return fall_through(regs)


def _glide(ops, regs, mem, trap):
    return ops[0]


def _glide_avatar(ops, regs, mem, trap):
    if regs.get(AVATAR_REGISTER) != 0:
        return ops[0]
    return fall_through(regs)


# ---- Avatar state & system interaction ----
def _avatar_on(ops, regs, mem, trap):
    regs.set(AVATAR_REGISTER, 1)
    return fall_through(regs)


def _avatar_off(ops, regs, mem, trap):
    regs.set(AVATAR_REGISTER, 0)
    return fall_through(regs)


def _meditate(ops, regs, mem, trap):
    # "cliff termination": the run loop stops once PC leaves the program region
    return 0


def _spiritcall(ops, regs, mem, trap):
    trap.invoke(ops[0])
    return fall_through(regs)


def bend32_descriptors() -> List[InstructionDescriptor]:
    D = InstructionDescriptor
    return [
        D("RAISE", "RAISE rd,rs,rt", R, "000000ssssstttttfffff00000000000",
          _alu(lambda a, b: a + b), "integer add (rd = rs + rt)"),
        D("BREAK", "BREAK rd,rs,rt", R, "000000ssssstttttfffff00000000001",
          _alu(lambda a, b: a - b), "integer subtract (rd = rs - rt)"),
        D("SEAR", "SEAR rd,rs,rt", R, "000000ssssstttttfffff00000000010",
          _alu(lambda a, b: a & b), "bitwise AND (rd = rs & rt)"),
        D("FLARE", "FLARE rd,rs,rt", R, "000000ssssstttttfffff00000000011",
          _alu(lambda a, b: a | b), "bitwise OR (rd = rs | rt)"),
        D("SPARK", "SPARK rd,rs,rt", R, "000000ssssstttttfffff00000000100",
          _alu(lambda a, b: a ^ b), "bitwise XOR (rd = rs ^ rt)"),
        D("RIPPLE", "RIPPLE rd,rs,rt", R, "000000ssssstttttfffff00000000101",
          _alu(_ripple), "average (rd = (rs + rt) >> 1)"),

        D("FLOW", "FLOW rt,imm(rs)", I, "100011tttttfffffssssssssssssssss",
          _flow, "load word (rt = MEM[rs + signext(imm)])"),
        D("FREEZE", "FREEZE rt,imm(rs)", I, "101011tttttfffffssssssssssssssss",
          _freeze, "store word (MEM[rs + signext(imm)] = rt)"),
        D("PACK", "PACK rt,rs,imm", I, "001000sssssffffftttttttttttttttt",
          _pack, "add immediate (rt = rs + imm)"),

        D("SWIRL", "SWIRL rs,rt,label", IB, "000100sssssffffftttttttttttttttt",
          _branch(lambda a, b: a == b), "branch if rs == rt"),
        D("GUST", "GUST rs,rt,label", IB, "000101sssssffffftttttttttttttttt",
          _branch(lambda a, b: a != b), "branch if rs != rt"),
        D("PHASE", "PHASE rs,rt,label", IB, "000110sssssffffftttttttttttttttt",
          _branch(_signs_differ), "branch if sign(rs) != sign(rt)"),
        D("FORMLOOP", "FORMLOOP rs,label", IB, "010000fffff00000ssssssssssssssss",
          _formloop, "rs = rs - 1; branch if rs != 0"),
        D("GLIDE", "GLIDE label", J, "000010ffffffffffffffffffffffffff",
          _glide, "unconditional jump"),
        D("GLIDE.A", "GLIDE.A label", J, "000111ffffffffffffffffffffffffff",
          _glide_avatar, "jump only if Avatar state (AV) is 1"),

        D("AVATAR.ON", "AVATAR.ON", R, "00000000000000000000000000001000",
          _avatar_on, "enter Avatar state (AV = 1)"),
        D("AVATAR.OFF", "AVATAR.OFF", R, "00000000000000000000000000001001",
          _avatar_off, "exit Avatar state (AV = 0)"),
        D("MEDITATE", "MEDITATE", R, "00000000000000000000000000001010",
          _meditate, "halt: PC = 0"),
        D("SPIRITCALL", "SPIRITCALL imm", I, "0110000000000000ffffffffffffffff",
          _spiritcall, "call into the Spirit World with code imm", unsigned_imm=True),
    ]


def build_table() -> InstructionTable:
    return InstructionTable(bend32_descriptors())
