# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The coefficient table and its read port."""

from pathlib import Path
from typing import NamedTuple, Optional, Sequence

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp import utils


class CoefficientFormatError(ValueError):
    """A coefficient table file is malformed."""

    pass


def read_coeff_table(
    coeffs_path: Path, coeff_width: int = dspg.COEFF_WIDTH, n_coeffs: Optional[int] = None
) -> tuple[int, ...]:
    """
    Parse a coefficient table file.

    The file holds one two's complement value per line, as exactly
    ``coeff_width / 4`` hex digits.

    Parameters
    ----------
    coeffs_path : Path
        Path to the table.
    coeff_width : int, optional
        Width of a coefficient in bits.
    n_coeffs : int, optional
        Expected number of values, not checked if None.

    Returns
    -------
    tuple[int, ...]
        The signed coefficient values, in file order.

    Raises
    ------
    CoefficientFormatError
        If a line is not a valid hex word, or the file has the wrong
        number of values.
    """
    coeffs_path = Path(coeffs_path)
    values = []
    with open(coeffs_path, "rb") as f:
        for line_no, line in enumerate(f, start=1):
            try:
                word = line.decode("ascii").strip()
                values.append(utils.hex_to_int(word, coeff_width))
            # UnicodeDecodeError is a ValueError
            except ValueError as e:
                raise CoefficientFormatError(f"{coeffs_path}:{line_no}: {e}") from e

    if n_coeffs is not None and len(values) != n_coeffs:
        raise CoefficientFormatError(
            f"{coeffs_path}: expected {n_coeffs} coefficients, found {len(values)}"
        )
    return tuple(values)


def write_coeff_table(
    coeffs_path: Path, values: Sequence[int], coeff_width: int = dspg.COEFF_WIDTH
) -> None:
    """Write a coefficient table readable by :func:`read_coeff_table`."""
    lines = [utils.int_to_hex(int(v), coeff_width) for v in values]
    Path(coeffs_path).write_text("\n".join(lines) + "\n")


class coeff_rom_state(NamedTuple):
    data: int


class coeff_rom(dspg.clocked_block):
    """
    A read only coefficient table with a registered read port.

    The value at the address given on one tick is visible on ``data``
    after that tick. The table never changes after construction, so it can
    be shared between readers without locking.

    Parameters
    ----------
    values : Sequence[int]
        The table contents.
    coeff_width : int, optional
        Width of a coefficient in bits.

    Attributes
    ----------
    values : tuple[int, ...]
        The table contents.
    coeff_width : int
        Width of a coefficient in bits.
    """

    def __init__(self, values: Sequence[int], coeff_width: int = dspg.COEFF_WIDTH):
        for v in values:
            if not utils.fits(v, coeff_width):
                raise ValueError(f"coefficient {v} does not fit in {coeff_width} bits")
        self.values = tuple(int(v) for v in values)
        self.coeff_width = coeff_width
        self.reset_state()

    @classmethod
    def from_file(
        cls, coeffs_path: Path, coeff_width: int = dspg.COEFF_WIDTH, n_coeffs: Optional[int] = None
    ):
        """Load the table from a hex file, see :func:`read_coeff_table`."""
        return cls(read_coeff_table(coeffs_path, coeff_width, n_coeffs), coeff_width)

    def __len__(self):
        return len(self.values)

    def initial_state(self) -> coeff_rom_state:
        return coeff_rom_state(0)

    @property
    def data(self) -> int:
        """The value read on the previous tick."""
        return self.state.data

    def next_state(self, address: Optional[int] = None) -> coeff_rom_state:
        """
        Register the value at address. If address is None the previous
        value is held.
        """
        if address is None:
            return self.state
        return coeff_rom_state(self.values[address])
