# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The delay line block."""

from typing import NamedTuple

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp import utils


class delay_line_state(NamedTuple):
    taps: tuple[int, ...]


class delay_line(dspg.clocked_block):
    """
    A shift register holding the most recent ``n_taps`` samples.

    Tap 0 is the newest sample and tap ``n_taps - 1`` the oldest. All taps
    are visible at once so a MAC can read them in parallel.

    Parameters
    ----------
    n_taps : int
        Number of samples held.
    data_width : int, optional
        Width of a sample in bits.

    Attributes
    ----------
    n_taps : int
        Number of samples held.
    data_width : int
        Width of a sample in bits.
    """

    def __init__(self, n_taps: int, data_width: int = dspg.DATA_WIDTH):
        if n_taps < 1:
            raise ValueError("A delay line needs at least one tap")
        self.n_taps = n_taps
        self.data_width = data_width
        self.reset_state()

    def initial_state(self) -> delay_line_state:
        return delay_line_state((0,) * self.n_taps)

    @property
    def taps(self) -> tuple[int, ...]:
        """The held samples, newest first."""
        return self.state.taps

    def next_state(self, sample: int = 0, shift_en: bool = False) -> delay_line_state:
        """
        Insert sample at tap 0 when shift_en is set, otherwise hold.

        Parameters
        ----------
        sample : int
            The new sample.
        shift_en : bool
            Shift the new sample in.

        Returns
        -------
        delay_line_state
            The next state, to be passed to ``commit``.
        """
        if not shift_en:
            return self.state
        if not utils.fits(sample, self.data_width):
            raise OverflowError(f"sample {sample} does not fit in {self.data_width} bits")
        return delay_line_state((int(sample),) + self.state.taps[:-1])

    def shift(self, sample: int) -> None:
        """Shift a sample in, discarding the oldest one."""
        self.tick(sample, True)

    def hold(self) -> None:
        """Tick without shifting, the taps are unchanged."""
        self.tick(0, False)
