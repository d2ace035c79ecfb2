# loader.py: hex-word program files
#
#   # comment            (also ';' comments, inline too)
#   @0x00400000          origin for the following words
#   @data                named origin (@text, @data)
#   0x20010005           one 32-bit word per token, several per line allowed
from pathlib import Path
from typing import List, Tuple

from ..core.encoding import BYTE_PER_WORD, parse_hex_words
from ..core.memory import DATA_BASE, TEXT_BASE

NAMED_ORIGINS = {"text": TEXT_BASE, "data": DATA_BASE}


class LoadedBlock:
    def __init__(self, addr: int, words: List[int]):
        self.addr = addr
        self.words = words

    @property
    def end(self) -> int:
        return self.addr + len(self.words) * BYTE_PER_WORD

    def __repr__(self):
        return f"LoadedBlock(addr=0x{self.addr:08X}, words={len(self.words)})"


def _strip_inline_comments(line: str) -> str:
    cut_positions = [p for p in (line.find(';'), line.find('#')) if p != -1]
    return line[:min(cut_positions)] if cut_positions else line


def _origin(token: str, lineno: int) -> int:
    if token.lower() in NAMED_ORIGINS:
        return NAMED_ORIGINS[token.lower()]
    try:
        return int(token, 0)
    except ValueError:
        raise ValueError(f"line {lineno}: bad origin {token!r}") from None


def parse_hex_program(text: str, base: int = TEXT_BASE) -> List[LoadedBlock]:
    blocks: List[LoadedBlock] = []
    current = LoadedBlock(base, [])
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = _strip_inline_comments(raw).strip()
        if not line:
            continue
        if line.startswith("@"):
            addr = _origin(line[1:].strip(), lineno)
            if addr % BYTE_PER_WORD != 0:
                raise ValueError(f"line {lineno}: origin 0x{addr:X} is not word aligned")
            if current.words:
                blocks.append(current)
            current = LoadedBlock(addr, [])
            continue
        try:
            current.words.extend(parse_hex_words(line.replace(",", " ").split()))
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
    if current.words:
        blocks.append(current)
    return blocks


def load_into(cpu, blocks: List[LoadedBlock], start: int = None) -> Tuple[int, int]:
    """
    Write every block to memory. The first block is the program region used by
    CPU.run(); later blocks are plain data. Returns (text_base, text_end).
    """
    if not blocks:
        raise ValueError("Program has no words")
    first, rest = blocks[0], blocks[1:]
    for blk in rest:
        cpu.memory.load_words(blk.addr, blk.words)
    cpu.load_program(first.words, base=first.addr, start=start)
    return cpu.text_base, cpu.text_end


def load_hex_file(cpu, path, start: int = None) -> Tuple[int, int]:
    text = Path(path).read_text(encoding="utf-8")
    return load_into(cpu, parse_hex_program(text), start=start)
