"""
Compact target codec and difficulty helpers.
"""

from __future__ import annotations

HIGHEST_TARGET_BITS = 0x2100FFFF
SIGN_BIT = 0x800000


class DifficultyError(Exception):
    pass


def compact_to_target(bits: int) -> int:
    exponent = bits >> 24
    mantissa = bits & 0x7FFFFF
    if bits & SIGN_BIT and mantissa:
        raise DifficultyError(f"Negative compact target {bits:#010x}")
    if exponent <= 3:
        target = mantissa >> (8 * (3 - exponent))
    else:
        target = mantissa << (8 * (exponent - 3))
    return target


def target_to_compact(target: int) -> int:
    if target < 0:
        raise DifficultyError("Target must be non-negative")
    size = (target.bit_length() + 7) // 8
    if size <= 3:
        mantissa = target << (8 * (3 - size))
    else:
        mantissa = target >> (8 * (size - 3))
    if mantissa & SIGN_BIT:
        mantissa >>= 8
        size += 1
    return (size << 24) | (mantissa & 0xFFFFFF)


HIGHEST_TARGET = compact_to_target(HIGHEST_TARGET_BITS)


def target_to_difficulty(bits: int, max_bits: int = HIGHEST_TARGET_BITS) -> int:
    """Difficulty relative to the network ceiling (1 at the easiest target)."""

    target = compact_to_target(bits)
    if target <= 0:
        raise DifficultyError("Target must be positive")
    return compact_to_target(max_bits) // target
