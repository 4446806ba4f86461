from __future__ import annotations

"""
Checked unsigned arithmetic and fixed-point helpers.

All amounts, shares and share-seconds are non-negative integers bounded by
UINT256_MAX. Every helper raises ArithmeticFault instead of wrapping or
saturating.

Two fixed-point formats are used:
- 18-decimal "bonus" values: 1.0 == SCALE == 10**18
- signed 64.64 binary values for the logarithm (1.0 == 2**64)
"""

from .errors import ArithmeticFault

DECIMALS: int = 18
SCALE: int = 10**DECIMALS

UINT256_MAX: int = 2**256 - 1

ONE_64X64: int = 1 << 64
INT128_MAX: int = 2**127 - 1

# log10(2) in 64.64
LOG10_2_64X64: int = 0x4D104D427DE7FBCC


def _check_range(value: int, op: str) -> int:
    if value < 0:
        raise ArithmeticFault(f"{op}: underflow")
    if value > UINT256_MAX:
        raise ArithmeticFault(f"{op}: overflow")
    return value


def checked_add(a: int, b: int) -> int:
    return _check_range(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _check_range(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _check_range(a * b, "mul")


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticFault("div: division by zero")
    return _check_range(a // b, "div")


def mul_div(a: int, b: int, c: int) -> int:
    """floor(a * b / c) with the intermediate product range-checked."""
    return checked_div(checked_mul(a, b), c)


def to_64x64(numerator: int, denominator: int) -> int:
    """numerator / denominator as a positive signed 64.64 value."""
    if denominator == 0:
        raise ArithmeticFault("to_64x64: division by zero")
    value = (numerator << 64) // denominator
    if value > INT128_MAX:
        raise ArithmeticFault("to_64x64: overflow")
    return value


def log2_64x64(x: int) -> int:
    """
    Binary logarithm of a positive 64.64 value, returned as 64.64.

    Integer part comes from the most significant bit; the 64 fractional
    bits are produced one at a time by repeated squaring of the
    normalised mantissa. Deterministic and exact to the last bit.
    """
    if x <= 0:
        raise ArithmeticFault("log2: argument must be positive")
    if x > INT128_MAX:
        raise ArithmeticFault("log2: argument exceeds int128")

    msb = x.bit_length() - 1
    result = (msb - 64) << 64
    ux = x << (127 - msb)

    bit = 1 << 63
    while bit > 0:
        ux *= ux
        b = ux >> 255
        ux >>= 127 + b
        result += bit * b
        bit >>= 1
    return result


def log10_64x64(x: int) -> int:
    """Base-10 logarithm of a positive 64.64 value, returned as 64.64."""
    return (log2_64x64(x) * LOG10_2_64X64) >> 64


def from_64x64(value: int, scale: int = SCALE) -> int:
    """Convert a non-negative 64.64 value into `scale`-based fixed point."""
    if value < 0:
        raise ArithmeticFault("from_64x64: negative value")
    return (value * scale) >> 64
