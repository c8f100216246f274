# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""One FIR branch of a polyphase filterbank."""

from typing import NamedTuple, Optional, Sequence

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp.delay_line import delay_line, delay_line_state
from pfb_channelizer.dsp.mac import mac, mac_state


class fir_branch_state(NamedTuple):
    delay_line: delay_line_state
    mac: mac_state
    start_pending: bool


class fir_branch(dspg.clocked_block):
    """
    A FIR filter made of a delay line and a sequential MAC.

    On a tick with ``sample_valid`` the sample is shifted into the delay
    line. On the following tick, once the shift is visible, the MAC is
    started on the updated taps and the current coefficients. The result
    is valid ``n_taps + 1`` ticks after the sample was accepted.

    A branch takes at most one sample per MAC pass. Offering a sample
    while the MAC is busy is a caller error, checked with an assertion.

    Parameters
    ----------
    branch_id : int
        Index of the branch in its filterbank.
    n_taps : int
        Number of taps, M.
    data_width : int, optional
        Width of a sample in bits.
    coeff_width : int, optional
        Width of a coefficient in bits.
    accum_width : int, optional
        Width of the MAC accumulator in bits, the minimum safe width if
        None.

    Attributes
    ----------
    branch_id : int
        Index of the branch in its filterbank.
    n_taps : int
        Number of taps.
    delay_line : delay_line
        The sample history.
    mac : mac
        The dot product engine.
    """

    def __init__(
        self,
        branch_id: int,
        n_taps: int,
        data_width: int = dspg.DATA_WIDTH,
        coeff_width: int = dspg.COEFF_WIDTH,
        accum_width: Optional[int] = None,
    ):
        self.branch_id = branch_id
        self.n_taps = n_taps
        self.delay_line = delay_line(n_taps, data_width)
        self.mac = mac(n_taps, data_width, coeff_width, accum_width)
        self.reset_state()

    def initial_state(self) -> fir_branch_state:
        return fir_branch_state(
            self.delay_line.initial_state(), self.mac.initial_state(), False
        )

    def commit(self, state: fir_branch_state) -> None:
        self.delay_line.commit(state.delay_line)
        self.mac.commit(state.mac)
        self.state = state

    @property
    def result(self) -> int:
        """The last filtered output."""
        return self.mac.result

    @property
    def result_valid(self) -> bool:
        """High while result holds the output for the latest sample."""
        return self.mac.done and not self.state.start_pending

    @property
    def busy(self) -> bool:
        """High from accepting a sample until its result is valid."""
        return self.state.start_pending or self.mac.busy

    def next_state(
        self, sample: int = 0, sample_valid: bool = False, coeffs: Sequence[int] = ()
    ) -> fir_branch_state:
        """
        Compute the state after one tick.

        Parameters
        ----------
        sample : int
            The new sample.
        sample_valid : bool
            Accept the new sample this tick.
        coeffs : Sequence[int]
            The coefficient vector of this branch, n_taps long.

        Returns
        -------
        fir_branch_state
            The next state, to be passed to ``commit``.
        """
        assert not (sample_valid and self.busy), (
            f"branch {self.branch_id} got a new sample while computing"
        )
        next_delay = self.delay_line.next_state(sample, sample_valid)
        next_mac = self.mac.next_state(self.state.start_pending, coeffs, self.delay_line.taps)
        start_pending = bool(sample_valid) and not self.mac.busy
        return fir_branch_state(next_delay, next_mac, start_pending)

    def process(self, sample: int, coeffs: Sequence[int]) -> int:
        """Accept one sample and tick until its result is valid.

        Parameters
        ----------
        sample : int
            The new sample.
        coeffs : Sequence[int]
            The coefficient vector of this branch.

        Returns
        -------
        int
            The filtered output for this sample.
        """
        self.tick(sample, True, coeffs)
        while not self.result_valid:
            self.tick(0, False, coeffs)
        return self.result


def make_branches(
    n_branches: int,
    n_taps: int,
    data_width: int = dspg.DATA_WIDTH,
    coeff_width: int = dspg.COEFF_WIDTH,
    accum_width: Optional[int] = None,
) -> list[fir_branch]:
    """Build n_branches identical branches, numbered from 0."""
    return [
        fir_branch(n, n_taps, data_width, coeff_width, accum_width) for n in range(n_branches)
    ]
