from __future__ import annotations


_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


class Mulberry32:
    """Small 32-bit mixing generator.

    The output stream is fully determined by the integer seed, which is what
    lets every client rebuild the same board from ``board.seed``.
    """

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & _MASK32

    def random(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    def randbelow(self, n: int) -> int:
        return int(self.random() * n)

    def choice(self, items):
        return items[self.randbelow(len(items))]
