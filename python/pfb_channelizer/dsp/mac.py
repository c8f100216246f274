# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""
A sequential multiply-accumulate (MAC) engine.

The engine computes the dot product of a coefficient vector and a sample
vector one term per clock tick, so one multiplier is shared by all the
taps of a FIR branch. Products are kept at full precision and sign
extended to the accumulator width before they are added; nothing is
rounded.
"""

from enum import Enum
from typing import NamedTuple, Optional, Sequence

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp import utils
from pfb_channelizer.dsp.types import fixed


class mac_fsm(Enum):
    IDLE = 0
    COMPUTING = 1
    DONE = 2


class mac_state(NamedTuple):
    fsm: mac_fsm
    tap_index: int
    accumulator: int
    result: int
    # operands latched at start, only used to check they stay stable
    operands: Optional[tuple]


class mac(dspg.clocked_block):
    """
    A sequential dot product unit.

    In IDLE or DONE, ``start`` clears the accumulator and moves to
    COMPUTING. Each COMPUTING tick adds ``coeffs[k] * samples[k]`` for
    the next tap k; after tap ``n_taps - 1`` the engine is DONE, which
    holds ``result`` until the next start. ``done`` is first high exactly
    ``n_taps`` ticks after the start tick. A start while COMPUTING is
    ignored.

    The coefficients and samples must not change between start and done.
    This is checked with an assertion, so it is not checked when Python
    runs with ``-O``.

    Parameters
    ----------
    n_taps : int
        Length of the dot product, M.
    data_width : int, optional
        Width of a sample in bits.
    coeff_width : int, optional
        Width of a coefficient in bits.
    accum_width : int, optional
        Width of the accumulator in bits. Must be at least
        ``data_width + coeff_width + ceil(log2(n_taps))``. If None, the
        minimum width is used.

    Attributes
    ----------
    n_taps : int
        Length of the dot product.
    data_width : int
        Width of a sample in bits.
    coeff_width : int
        Width of a coefficient in bits.
    accum_width : int
        Width of the accumulator in bits.
    """

    def __init__(
        self,
        n_taps: int,
        data_width: int = dspg.DATA_WIDTH,
        coeff_width: int = dspg.COEFF_WIDTH,
        accum_width: Optional[int] = None,
    ):
        if n_taps < 1:
            raise ValueError("A MAC needs at least one tap")
        self.n_taps = n_taps
        self.data_width = data_width
        self.coeff_width = coeff_width

        min_width = min_accum_width(n_taps, data_width, coeff_width)
        if accum_width is None:
            accum_width = min_width
        elif accum_width < min_width:
            raise ValueError(
                f"accum_width {accum_width} can overflow, at least {min_width} bits "
                f"are needed for {n_taps} products of {data_width}x{coeff_width} bits"
            )
        self.accum_width = accum_width

        self.reset_state()

    def initial_state(self) -> mac_state:
        return mac_state(mac_fsm.IDLE, 0, 0, 0, None)

    @property
    def result(self) -> int:
        """The last completed dot product."""
        return self.state.result

    @property
    def done(self) -> bool:
        """High while the engine holds a completed result."""
        return self.state.fsm == mac_fsm.DONE

    @property
    def busy(self) -> bool:
        """High while a dot product is in progress."""
        return self.state.fsm == mac_fsm.COMPUTING

    def next_state(
        self, start: bool = False, coeffs: Sequence[int] = (), samples: Sequence[int] = ()
    ) -> mac_state:
        """
        Compute the state after one tick.

        Parameters
        ----------
        start : bool
            Start a new dot product, sampled in IDLE and DONE.
        coeffs : Sequence[int]
            The coefficient vector, n_taps long.
        samples : Sequence[int]
            The sample vector, n_taps long, index 0 is the newest sample.

        Returns
        -------
        mac_state
            The next state, to be passed to ``commit``.
        """
        s = self.state

        if s.fsm == mac_fsm.COMPUTING:
            assert (tuple(coeffs), tuple(samples)) == s.operands, (
                "MAC operands changed during a dot product"
            )
            k = s.tap_index
            product = fixed(samples[k], self.data_width) * fixed(coeffs[k], self.coeff_width)
            acc = fixed(s.accumulator, self.accum_width) + product.widen(self.accum_width)
            acc = acc.wrap(self.accum_width).value

            if k == self.n_taps - 1:
                return mac_state(mac_fsm.DONE, 0, acc, acc, None)
            return mac_state(mac_fsm.COMPUTING, k + 1, acc, s.result, s.operands)

        if start:
            assert len(coeffs) == self.n_taps and len(samples) == self.n_taps, (
                f"MAC needs {self.n_taps} coefficients and samples"
            )
            return mac_state(mac_fsm.COMPUTING, 0, 0, s.result, (tuple(coeffs), tuple(samples)))

        return s

    def compute(self, coeffs: Sequence[int], samples: Sequence[int]) -> int:
        """Start a dot product and tick until it is done.

        Parameters
        ----------
        coeffs : Sequence[int]
            The coefficient vector.
        samples : Sequence[int]
            The sample vector.

        Returns
        -------
        int
            The dot product.
        """
        self.tick(True, coeffs, samples)
        while not self.done:
            self.tick(False, coeffs, samples)
        return self.result


def min_accum_width(n_taps: int, data_width: int, coeff_width: int) -> int:
    """The smallest accumulator that cannot overflow for n_taps products."""
    return data_width + coeff_width + utils.clog2(n_taps)
