# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""
Fixed point FFT blocks that turn the filterbank outputs into frequency
bins.

Two sizes are provided. :class:`fft_4pt` is a closed form radix-2
transform whose only twiddles are 1 and -j, so it needs no multipliers.
:class:`fft_64pt` is an iterative radix-2 decimation in frequency (DIF)
transform with one time multiplexed butterfly and a pair of ping-pong
buffers.

Both follow the ``numpy.fft.fft`` sign convention,
``X[k] = sum(x[n] * exp(-2j*pi*k*n/N))``, without normalisation.
"""

from enum import Enum
from typing import NamedTuple, Optional, Sequence

import numpy as np

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp import utils
from pfb_channelizer.dsp.types import cfixed

# Q1.14 twiddles stored in 16 bit words
TWIDDLE_WIDTH = 16
TWIDDLE_FRAC = 14

cint = tuple[int, int]


def twiddle_rom(
    n_points: int = 64, width: int = TWIDDLE_WIDTH, frac: int = TWIDDLE_FRAC
) -> tuple[cint, ...]:
    """
    Compute the twiddle table ``W^k = cos(2*pi*k/N) - j*sin(2*pi*k/N)``
    for k in ``[0, N/2)``, quantised to ``frac`` fractional bits.

    Returns
    -------
    tuple[tuple[int, int], ...]
        (real, imaginary) integer pairs.
    """
    k = np.arange(n_points // 2)
    re = utils.float_to_fixed_array(np.cos(2 * np.pi * k / n_points), frac, width)
    im = utils.float_to_fixed_array(-np.sin(2 * np.pi * k / n_points), frac, width)
    return tuple((int(r), int(i)) for r, i in zip(re, im))


def dif_butterfly(stage: int, butterfly: int, log2_n: int) -> tuple[int, int, int]:
    """
    Buffer addresses and twiddle index of one butterfly.

    The input is stored in bit reversed order, so the DIF butterflies of
    stage ``s`` pair positions ``p`` and ``p + 2**s`` (``p`` has bit
    ``s`` clear), and the twiddle index is the bit reversed group
    number scaled by ``2**s``. The bins then come out in natural order.

    Parameters
    ----------
    stage : int
        Stage number, ``[0, log2_n)``.
    butterfly : int
        Butterfly number within the stage, ``[0, 2**(log2_n - 1))``.
    log2_n : int
        log2 of the transform size.

    Returns
    -------
    tuple[int, int, int]
        The two operand addresses and the twiddle table index.
    """
    span = 1 << stage
    p = ((butterfly >> stage) << (stage + 1)) | (butterfly & (span - 1))
    group = utils.bit_reverse(butterfly >> stage, log2_n - 1 - stage)
    return p, p + span, group << stage


def reference_dft(x: Sequence[complex]) -> np.ndarray:
    """The floating point transform the fixed point blocks approximate."""
    return np.fft.fft(np.asarray(x, dtype=complex))


class fft_4pt_state(NamedTuple):
    bins: tuple[cint, cint, cint, cint]
    valid_out: bool


class fft_4pt(dspg.clocked_block):
    """
    A 4 point FFT with one register stage of latency.

    Stage 1 forms ``x0 + x2``, ``x1 + x3``, ``x0 - x2`` and
    ``(x1 - x3) * -j``; stage 2 adds and subtracts those pairs. The
    arithmetic carries 2 guard bits above ``data_width``, and the bins are
    narrowed back to ``data_width`` by dropping the guard bits, without
    rounding.

    The bins register on the tick where ``valid_in`` is high, and
    ``valid_out`` is ``valid_in`` delayed by one tick.

    Parameters
    ----------
    data_width : int, optional
        Width of the real and imaginary parts of a sample in bits.

    Attributes
    ----------
    data_width : int
        Width of the real and imaginary parts of a sample in bits.
    internal_width : int
        Width of the intermediate values, ``data_width + 2``.
    """

    n_points = 4

    def __init__(self, data_width: int = dspg.DATA_WIDTH):
        self.data_width = data_width
        self.internal_width = data_width + 2
        self.reset_state()

    def initial_state(self) -> fft_4pt_state:
        return fft_4pt_state(((0, 0),) * 4, False)

    @property
    def bins(self) -> tuple[cint, ...]:
        """X0..X3 as (real, imaginary) pairs."""
        return self.state.bins

    @property
    def valid_out(self) -> bool:
        return self.state.valid_out

    def transform(self, inputs: Sequence[cint]) -> tuple[cint, ...]:
        """Compute the 4 bins without touching the registers."""
        if len(inputs) != 4:
            raise ValueError("fft_4pt takes 4 inputs")
        iw = self.internal_width
        x0, x1, x2, x3 = (cfixed.from_ints(re, im, self.data_width) for re, im in inputs)

        a0 = (x0 + x2).widen(iw)
        a1 = (x1 + x3).widen(iw)
        b0 = (x0 - x2).widen(iw)
        b1 = (x1 - x3).mul_neg_j().resize(iw)

        bins = ((a0 + a1), (b0 + b1), (a0 - a1), (b0 - b1))
        return tuple(b.resize(iw).resize(self.data_width).as_tuple() for b in bins)

    def next_state(
        self, inputs: Sequence[cint] = ((0, 0),) * 4, valid_in: bool = False
    ) -> fft_4pt_state:
        """
        Compute the state after one tick.

        Parameters
        ----------
        inputs : Sequence[tuple[int, int]]
            x0..x3 as (real, imaginary) pairs.
        valid_in : bool
            The inputs are valid this tick.

        Returns
        -------
        fft_4pt_state
            The next state, to be passed to ``commit``.
        """
        if not valid_in:
            return fft_4pt_state(self.state.bins, False)
        return fft_4pt_state(self.transform(inputs), True)


class fft_64pt_fsm(Enum):
    IDLE = 0
    LOADING = 1
    COMPUTING = 2
    OUTPUTTING = 3


class fft_64pt_state(NamedTuple):
    fsm: fft_64pt_fsm
    # buffers[src] is read, buffers[1 - src] written
    buffers: tuple[tuple[cint, ...], tuple[cint, ...]]
    src: int
    stage: int
    butterfly: int
    # butterfly operands fetched on the previous tick, (a, b, twiddle)
    operands: Optional[tuple[cint, cint, cint]]
    out_index: int
    out_data: cint
    out_valid: bool
    out_last: bool


class fft_64pt(dspg.clocked_block):
    """
    An iterative 64 point radix-2 DIF FFT.

    LOADING: samples arrive one per tick tagged with their index, and are
    stored at the bit reversed index of buffer A. Indices may come in any
    order, but each of the 64 must be written once per block since buffer
    A is reused by the transform. The sample tagged ``last`` ends loading.

    COMPUTING: 6 stages of 32 butterflies. Each butterfly takes two
    ticks, one to fetch both operands and the twiddle, one to write
    ``a + b`` and ``(a - b) * W`` to the other buffer. The buffers swap
    after each stage, so the transform takes 384 ticks.

    OUTPUTTING: the bins are streamed out in natural order, one per tick,
    with ``out_valid`` high and ``out_last`` high on bin 63.

    The buffers carry ``data_width + 6`` bits so the unscaled transform of
    a real input cannot overflow. Twiddle products are computed at full
    width and shifted right by 14 bits, truncating.

    Parameters
    ----------
    data_width : int, optional
        Width of the real and imaginary parts of an input sample in bits.

    Attributes
    ----------
    data_width : int
        Width of an input sample in bits.
    buffer_width : int
        Width of the buffers and of the output bins.
    twiddles : tuple[tuple[int, int], ...]
        The 32 entry Q1.14 twiddle table.
    """

    n_points = 64
    log2_n = 6

    def __init__(self, data_width: int = dspg.DATA_WIDTH):
        self.data_width = data_width
        self.buffer_width = data_width + self.log2_n
        self.twiddles = twiddle_rom(self.n_points)
        self.reset_state()

    def initial_state(self) -> fft_64pt_state:
        empty = ((0, 0),) * self.n_points
        return fft_64pt_state(
            fsm=fft_64pt_fsm.IDLE,
            buffers=(empty, empty),
            src=0,
            stage=0,
            butterfly=0,
            operands=None,
            out_index=0,
            out_data=(0, 0),
            out_valid=False,
            out_last=False,
        )

    @property
    def ready_in(self) -> bool:
        """High when an input sample will be accepted."""
        return self.state.fsm in (fft_64pt_fsm.IDLE, fft_64pt_fsm.LOADING)

    @property
    def busy(self) -> bool:
        return self.state.fsm != fft_64pt_fsm.IDLE

    @property
    def out_data(self) -> cint:
        return self.state.out_data

    @property
    def out_valid(self) -> bool:
        return self.state.out_valid

    @property
    def out_last(self) -> bool:
        return self.state.out_last

    @property
    def out_index(self) -> int:
        """Bin number of out_data, valid while out_valid is high."""
        return (self.state.out_index - 1) % self.n_points

    def _load(self, s: fft_64pt_state, sample: cint, index: int) -> fft_64pt_state:
        if not 0 <= index < self.n_points:
            raise IndexError(f"sample index {index} out of range")
        re, im = sample
        if not (utils.fits(re, self.data_width) and utils.fits(im, self.data_width)):
            raise OverflowError(f"sample {sample} does not fit in {self.data_width} bits")
        buffer = list(s.buffers[0])
        buffer[utils.bit_reverse(index, self.log2_n)] = (int(re), int(im))
        return s._replace(buffers=(tuple(buffer), s.buffers[1]))

    def _butterfly(self, operands) -> tuple[cint, cint]:
        bw = self.buffer_width
        a, b, w = operands
        a = cfixed.from_ints(*a, bw)
        b = cfixed.from_ints(*b, bw)
        w = cfixed.from_ints(*w, TWIDDLE_WIDTH, TWIDDLE_FRAC)

        out_a = (a + b).resize(bw)
        # the product has TWIDDLE_FRAC fractional bits, drop them
        out_b = ((a - b) * w).shift_right(TWIDDLE_FRAC).resize(bw)
        return out_a.as_tuple(), out_b.as_tuple()

    def next_state(
        self,
        sample: cint = (0, 0),
        index: int = 0,
        valid: bool = False,
        last: bool = False,
    ) -> fft_64pt_state:
        """
        Compute the state after one tick.

        Parameters
        ----------
        sample : tuple[int, int]
            Input sample as a (real, imaginary) pair.
        index : int
            Position of the sample in the input block, 0..63.
        valid : bool
            A sample is offered this tick, accepted only in IDLE and
            LOADING.
        last : bool
            This is the final sample of the block.

        Returns
        -------
        fft_64pt_state
            The next state, to be passed to ``commit``.
        """
        s = self.state._replace(out_valid=False, out_last=False)

        if s.fsm in (fft_64pt_fsm.IDLE, fft_64pt_fsm.LOADING):
            if not valid:
                return s
            s = self._load(s, sample, index)
            if last:
                return s._replace(
                    fsm=fft_64pt_fsm.COMPUTING, src=0, stage=0, butterfly=0, operands=None
                )
            return s._replace(fsm=fft_64pt_fsm.LOADING)

        if s.fsm == fft_64pt_fsm.COMPUTING:
            p, q, k = dif_butterfly(s.stage, s.butterfly, self.log2_n)

            if s.operands is None:
                source = s.buffers[s.src]
                return s._replace(operands=(source[p], source[q], self.twiddles[k]))

            out_a, out_b = self._butterfly(s.operands)
            dst = list(s.buffers[1 - s.src])
            dst[p] = out_a
            dst[q] = out_b
            buffers = list(s.buffers)
            buffers[1 - s.src] = tuple(dst)
            s = s._replace(buffers=tuple(buffers), operands=None)

            if s.butterfly < self.n_points // 2 - 1:
                return s._replace(butterfly=s.butterfly + 1)
            s = s._replace(butterfly=0, stage=s.stage + 1, src=1 - s.src)
            if s.stage == self.log2_n:
                return s._replace(fsm=fft_64pt_fsm.OUTPUTTING, out_index=0)
            return s

        # OUTPUTTING, the result is in the last buffer written
        n = s.out_index
        s = s._replace(
            out_data=s.buffers[s.src][n],
            out_valid=True,
            out_last=n == self.n_points - 1,
            out_index=n + 1,
        )
        if n == self.n_points - 1:
            return s._replace(fsm=fft_64pt_fsm.IDLE)
        return s

    def transform(self, inputs: Sequence[cint]) -> tuple[cint, ...]:
        """Stream a block in, tick until all bins are out, return them.

        Parameters
        ----------
        inputs : Sequence[tuple[int, int]]
            64 (real, imaginary) samples.

        Returns
        -------
        tuple[tuple[int, int], ...]
            The 64 bins in natural order.
        """
        if len(inputs) != self.n_points:
            raise ValueError(f"fft_64pt takes {self.n_points} inputs")
        while self.busy:
            self.tick()
        for n, sample in enumerate(inputs):
            self.tick(sample, n, True, n == self.n_points - 1)
        bins = []
        while len(bins) < self.n_points:
            self.tick()
            if self.out_valid:
                bins.append(self.out_data)
        return tuple(bins)
