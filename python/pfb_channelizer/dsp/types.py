# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Fixed point value types used by the channelizer arithmetic.

Every operation is exact: additions grow by one bit, products by the sum
of both widths. Bits are only ever lost through the explicit ``resize``,
``wrap`` and ``shift_right`` methods, which is where each block applies
its truncation policy.
"""

import pfb_channelizer.dsp.utils as utils


class fixed:
    """A signed two's complement fixed point number.

    Parameters
    ----------
    value : int
        The raw integer value.
    width : int
        Total number of bits, including the sign bit.
    frac : int, optional
        Number of fractional bits, the number represented is
        ``value * 2**-frac``. Defaults to 0 (a plain integer).

    Raises
    ------
    OverflowError
        If value does not fit in width bits.
    """

    __slots__ = ("value", "width", "frac")

    def __init__(self, value: int, width: int, frac: int = 0):
        if width < 1:
            raise ValueError("fixed width must be at least 1 bit")
        if not utils.fits(value, width):
            raise OverflowError(f"{value} does not fit in a signed {width} bit word")
        self.value = int(value)
        self.width = width
        self.frac = frac

    def _check(self, other, op):
        if not isinstance(other, fixed):
            raise TypeError(f"fixed can only be {op} fixed")
        if other.frac != self.frac:
            raise ValueError("fixed point scales must match, shift one operand first")

    def __add__(self, other):
        self._check(other, "added to")
        return fixed(self.value + other.value, max(self.width, other.width) + 1, self.frac)

    def __sub__(self, other):
        self._check(other, "subtracted from")
        return fixed(self.value - other.value, max(self.width, other.width) + 1, self.frac)

    def __mul__(self, other):
        if not isinstance(other, fixed):
            raise TypeError("fixed can only be multiplied with fixed")
        return fixed(self.value * other.value, self.width + other.width, self.frac + other.frac)

    def __neg__(self):
        return fixed(-self.value, self.width + 1, self.frac)

    def widen(self, width: int):
        """Sign extend to ``width`` bits. The value is unchanged."""
        if width < self.width:
            raise ValueError(f"cannot widen a {self.width} bit value to {width} bits")
        return fixed(self.value, width, self.frac)

    def resize(self, width: int):
        """Resize to ``width`` bits, dropping the guard bits below the
        sign bit when narrowing (see :func:`utils.resize`).
        """
        return fixed(utils.resize(self.value, width), width, self.frac)

    def wrap(self, width: int):
        """Wrap to ``width`` bits like a two's complement register."""
        return fixed(utils.wrap(self.value, width), width, self.frac)

    def shift_right(self, n: int):
        """Arithmetic shift right by n bits, truncating the low bits."""
        return fixed(utils.ashr(self.value, n), max(self.width - n, 1), self.frac - n)

    def __int__(self):
        return self.value

    def __index__(self):
        return self.value

    def __float__(self):
        return utils.fixed_to_float(self.value, self.frac)

    def __eq__(self, other):
        if isinstance(other, fixed):
            return self.value == other.value and self.frac == other.frac
        if isinstance(other, int):
            return self.value == other
        return NotImplemented

    def __hash__(self):
        return hash((self.value, self.frac))

    def __repr__(self):
        return f"fixed({self.value}, width={self.width}, frac={self.frac})"


class cfixed:
    """A complex number made of two :class:`fixed` parts.

    Parameters
    ----------
    re : fixed
        Real part.
    im : fixed
        Imaginary part, must share the real part's scale.
    """

    __slots__ = ("re", "im")

    def __init__(self, re: fixed, im: fixed):
        if re.frac != im.frac:
            raise ValueError("real and imaginary scales must match")
        self.re = re
        self.im = im

    @classmethod
    def from_ints(cls, re: int, im: int, width: int, frac: int = 0):
        """Build a cfixed from two raw integers of the same width."""
        return cls(fixed(re, width, frac), fixed(im, width, frac))

    @property
    def width(self) -> int:
        return max(self.re.width, self.im.width)

    @property
    def frac(self) -> int:
        return self.re.frac

    def __add__(self, other):
        if not isinstance(other, cfixed):
            raise TypeError("cfixed can only be added to cfixed")
        return cfixed(self.re + other.re, self.im + other.im)

    def __sub__(self, other):
        if not isinstance(other, cfixed):
            raise TypeError("cfixed can only be subtracted from cfixed")
        return cfixed(self.re - other.re, self.im - other.im)

    def __mul__(self, other):
        if not isinstance(other, cfixed):
            raise TypeError("cfixed can only be multiplied with cfixed")
        re = self.re * other.re - self.im * other.im
        im = self.re * other.im + self.im * other.re
        return cfixed(re, im)

    def mul_neg_j(self):
        """Multiply by -j, which is ``(re, im) -> (im, -re)``."""
        width = self.width + 1
        return cfixed(self.im.widen(width), (-self.re).widen(width))

    def widen(self, width: int):
        return cfixed(self.re.widen(width), self.im.widen(width))

    def resize(self, width: int):
        return cfixed(self.re.resize(width), self.im.resize(width))

    def wrap(self, width: int):
        return cfixed(self.re.wrap(width), self.im.wrap(width))

    def shift_right(self, n: int):
        return cfixed(self.re.shift_right(n), self.im.shift_right(n))

    def as_tuple(self) -> tuple[int, int]:
        """The raw (real, imaginary) integers."""
        return (self.re.value, self.im.value)

    def __complex__(self):
        return complex(float(self.re), float(self.im))

    def __eq__(self, other):
        if isinstance(other, cfixed):
            return self.re == other.re and self.im == other.im
        if isinstance(other, tuple):
            return self.as_tuple() == other
        return NotImplemented

    def __hash__(self):
        return hash((self.re, self.im))

    def __repr__(self):
        return f"cfixed({self.re.value}, {self.im.value}, width={self.width}, frac={self.frac})"
