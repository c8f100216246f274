# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Utility functions used by the channelizer blocks."""

import math
import string
import warnings

import numpy as np

FLT_MIN = np.finfo(float).tiny


class OverflowWarning(Warning):
    """A warning for integer overflows."""

    pass


def db(input):
    """Convert an amplitude to decibels (20*log10(abs(x)))."""
    out = 20 * np.log10(np.abs(input) + FLT_MIN)
    return out


def db_pow(input):
    """Convert a power to decibels (10*log10(abs(x)))."""
    out = 10 * np.log10(np.abs(input) + FLT_MIN)
    return out


def clog2(n: int) -> int:
    """Return ceil(log2(n)), with clog2(1) == 0."""
    if n < 1:
        raise ValueError("clog2 is only defined for n >= 1")
    return (n - 1).bit_length()


def Q_max(Q_format: int) -> int:
    """Return the maximum value for a given Q format, i.e.
    ``(1 << Q_format) - 1``.
    """
    return int((1 << Q_format) - 1)


def int_max(width: int) -> int:
    """Largest value of a signed ``width`` bit integer."""
    return Q_max(width - 1)


def int_min(width: int) -> int:
    """Smallest value of a signed ``width`` bit integer."""
    return -(1 << (width - 1))


def fits(val: int, width: int) -> bool:
    """Check if val can be represented as a signed ``width`` bit integer."""
    return int_min(width) <= val <= int_max(width)


def wrap(val: int, width: int) -> int:
    """Signed ``width`` bit integer type.

    Integers in Python are unbounded, so check the value is within the
    valid range. Out of range values wrap around like two's complement
    hardware registers, and an OverflowWarning is raised.
    """
    if fits(val, width):
        return int(val)
    warnings.warn("Overflow occurred", OverflowWarning)
    return int(((val + (1 << (width - 1))) % (1 << width)) - (1 << (width - 1)))


def resize(val: int, width: int) -> int:
    """Narrow a signed integer to ``width`` bits the way VHDL
    ``numeric_std.resize`` does: the sign bit is kept and the bits
    directly below it are dropped, the low ``width - 1`` bits survive.

    Widening is a plain sign extension and never changes the value.
    """
    if fits(val, width):
        return int(val)
    low = val & Q_max(width - 1)
    out = low - (1 << (width - 1)) if val < 0 else low
    warnings.warn("Overflow occurred", OverflowWarning)
    return int(out)


def ashr(x: int, shr: int) -> int:
    """Arithmetic right shift, with negative values shifting left.

    Python's ``>>`` floors, which is the same as dropping the low bits of
    a two's complement number (truncation, no rounding).
    """
    if shr >= 0:
        return x >> shr
    else:
        return x << -shr


def bit_reverse(val: int, n_bits: int) -> int:
    """Reverse the lowest ``n_bits`` bits of ``val``."""
    out = 0
    for _ in range(n_bits):
        out = (out << 1) | (val & 1)
        val >>= 1
    return out


def hex_digits(width: int) -> int:
    """Number of hex digits used to store a ``width`` bit word."""
    return math.ceil(width / 4)


def hex_to_int(text: str, width: int) -> int:
    """Parse a two's complement hex word of ``width`` bits.

    Raises
    ------
    ValueError
        If the word does not have exactly ``width / 4`` digits, or
        contains anything other than hex digits.
    """
    n_digits = hex_digits(width)
    if len(text) != n_digits:
        raise ValueError(f"expected {n_digits} hex digits, got {len(text)}")
    if any(c not in string.hexdigits for c in text):
        raise ValueError(f"invalid hex word {text!r}")
    val = int(text, 16)
    if val >= (1 << (width - 1)):
        val -= 1 << width
    return val


def int_to_hex(val: int, width: int) -> str:
    """Format a signed integer as a two's complement hex word of
    ``width`` bits, upper case and zero padded.
    """
    if not fits(val, width):
        raise OverflowError(f"{val} does not fit in {width} bits")
    return f"{val & Q_max(width):0{hex_digits(width)}X}"


def float_to_fixed(x: float, Q_sig: int = 15, width: int = 16) -> int:
    """Round and scale a floating point number to a ``width`` bit
    integer in a given Q format, clipping to the representable range.
    """
    val = round(x * (1 << Q_sig))
    return int(min(max(val, int_min(width)), int_max(width)))


def fixed_to_float(x: int, Q_sig: int = 15) -> float:
    """Convert a fixed point integer to floating point, given its Q format."""
    return float(x) / float(1 << Q_sig)


def float_to_fixed_array(x: np.ndarray, Q_sig: int = 15, width: int = 16) -> np.ndarray:
    """Round and scale a floating point array to ``width`` bit integers
    in a given Q format, clipping to the representable range.
    """
    quantised = np.rint(np.ldexp(np.asarray(x, dtype=float), Q_sig))
    quantised = np.clip(quantised, int_min(width), int_max(width))
    return quantised.astype(np.int64)


def fixed_to_float_array(x: np.ndarray, Q_sig: int = 15) -> np.ndarray:
    """Convert a fixed point integer array to floating point, given its Q format."""
    return np.asarray(x).astype(float) / float(1 << Q_sig)
