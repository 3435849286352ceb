from __future__ import annotations

import math


def popcount(value: int) -> int:
    return value.bit_count()


def hamming(a: int, b: int) -> int:
    return (a ^ b).bit_count()


def bit_is_set(value: int, index: int) -> bool:
    return (value >> index) & 1 == 1


def flip_bit(value: int, index: int) -> int:
    return value ^ (1 << index)


def to_binary(value: int, width: int = 0) -> str:
    """Most significant bit first, zero padded to ``width``."""
    return format(value, "b").zfill(width)


def int_fbits(cost: int) -> float:
    """Fractional bit length of an integer cost, close to log2 for large values."""
    magnitude = abs(cost)
    n = magnitude.bit_length()
    if n <= 0:
        return 0.0
    n -= 1
    return magnitude / (1 << n) + n


def float_fbits(cost: float) -> float:
    if cost > 0:
        return math.log2(1.0 + cost)
    return -math.log2(1.0 - cost)


def capped_fbits(cost: float, cap: float = 10.0) -> float:
    fb = min(math.log2(1.0 + abs(cost)), cap)
    if cost > 0:
        return fb
    return -fb
