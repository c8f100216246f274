# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The polyphase filterbank block."""

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import NamedTuple, Optional

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp.coeff_rom import coeff_rom, coeff_rom_state
from pfb_channelizer.dsp.fir_branch import fir_branch_state, make_branches


class filterbank_fsm(Enum):
    LOAD_COEFFS = 0
    WAIT_SAMPLES = 1
    COMPUTING = 2
    OUTPUT_READY = 3


class filterbank_state(NamedTuple):
    fsm: filterbank_fsm
    # next table address to read, and the address read on the previous tick
    load_address: int
    read_address: Optional[int]
    coeffs: tuple[tuple[int, ...], ...]
    commutator: int
    done_flags: tuple[bool, ...]
    outputs: tuple[int, ...]
    rom: coeff_rom_state
    branches: tuple[fir_branch_state, ...]
    # a new table is waiting for the filterbank to go idle
    reload_pending: bool


class polyphase_filterbank(dspg.clocked_block):
    """
    A polyphase FIR filterbank of ``n_channels`` branches.

    After a reset the filterbank reads its ``n_channels * n_taps``
    coefficients from the coefficient table, one per tick; table address
    ``branch * n_taps + tap`` goes to that tap of that branch. It then
    cycles through three phases:

    1. WAIT_SAMPLES: a commutator sends input sample k to branch
       ``k % n_channels``. Samples are only accepted while
       ``sample_ready`` is high.
    2. COMPUTING: once branch ``n_channels - 1`` has its sample, wait for
       every branch to finish its MAC pass.
    3. OUTPUT_READY: all branch results are presented on ``outputs``
       with ``outputs_valid`` high for exactly one tick.

    Branches never read each other's state, so they can be stepped in
    parallel threads. The outputs are identical either way.

    Parameters
    ----------
    n_channels : int
        Number of branches, N.
    n_taps : int
        Taps per branch, M.
    rom : coeff_rom
        The coefficient table, ``n_channels * n_taps`` long.
    data_width : int, optional
        Width of a sample in bits.
    coeff_width : int, optional
        Width of a coefficient in bits.
    accum_width : int, optional
        Width of the branch accumulators in bits, the minimum safe width
        if None.
    parallel : bool, optional
        Step the branches in a thread pool.

    Attributes
    ----------
    n_channels : int
        Number of branches.
    n_taps : int
        Taps per branch.
    rom : coeff_rom
        The coefficient table.
    branches : list[fir_branch]
        The FIR branches, indexed by branch id.
    """

    def __init__(
        self,
        n_channels: int,
        n_taps: int,
        rom: coeff_rom,
        data_width: int = dspg.DATA_WIDTH,
        coeff_width: int = dspg.COEFF_WIDTH,
        accum_width: Optional[int] = None,
        parallel: bool = False,
    ):
        if n_channels < 1:
            raise ValueError("A filterbank needs at least one branch")
        if len(rom) != n_channels * n_taps:
            raise ValueError(
                f"coefficient table has {len(rom)} entries, "
                f"{n_channels}x{n_taps} filterbank needs {n_channels * n_taps}"
            )
        if rom.coeff_width != coeff_width:
            raise ValueError("coefficient table width does not match the filterbank")

        self.n_channels = n_channels
        self.n_taps = n_taps
        self.rom = rom
        self.branches = make_branches(n_channels, n_taps, data_width, coeff_width, accum_width)
        self.accum_width = self.branches[0].mac.accum_width
        self._pool = ThreadPoolExecutor(max_workers=n_channels) if parallel else None

        self.reset_state()

    @classmethod
    def from_config(cls, config, rom: coeff_rom):
        """Build a filterbank from a
        :class:`pfb_channelizer.models.FilterbankConfig`.
        """
        return cls(
            config.n_channels,
            config.taps_per_branch,
            rom,
            config.data_width,
            config.coeff_width,
            config.accum_width,
            getattr(config, "parallel_branches", False),
        )

    def initial_state(self) -> filterbank_state:
        return filterbank_state(
            fsm=filterbank_fsm.LOAD_COEFFS,
            load_address=0,
            read_address=None,
            coeffs=((0,) * self.n_taps,) * self.n_channels,
            commutator=0,
            done_flags=(False,) * self.n_channels,
            outputs=(0,) * self.n_channels,
            rom=self.rom.initial_state(),
            branches=tuple(b.initial_state() for b in self.branches),
            reload_pending=False,
        )

    def commit(self, state: filterbank_state) -> None:
        self.rom.commit(state.rom)
        for branch, branch_state in zip(self.branches, state.branches):
            branch.commit(branch_state)
        self.state = state

    def close(self) -> None:
        """Shut down the branch thread pool, if there is one."""
        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def reload_coefficients(self, rom: Optional[coeff_rom] = None) -> None:
        """Go back to LOAD_COEFFS, optionally with a new table.

        The switch waits until the filterbank is idle: a partly received
        frame is still accepted and computed with the old coefficients,
        then input is held off until the new table is loaded. The branch
        delay lines are kept.
        """
        if rom is not None:
            if len(rom) != len(self.rom) or rom.coeff_width != self.rom.coeff_width:
                raise ValueError("new coefficient table does not match the filterbank")
            # the table is only read in LOAD_COEFFS
            self.rom = rom
        self.commit(self.state._replace(reload_pending=True, rom=self.rom.state))

    def _idle(self, s: filterbank_state) -> bool:
        if s.fsm == filterbank_fsm.LOAD_COEFFS:
            return True
        return (
            s.fsm == filterbank_fsm.WAIT_SAMPLES
            and s.commutator == 0
            and not any(b.busy for b in self.branches)
        )

    @property
    def loading(self) -> bool:
        """High while the coefficients are being read, or a reload is
        waiting to start.
        """
        return self.state.fsm == filterbank_fsm.LOAD_COEFFS or self.state.reload_pending

    @property
    def sample_ready(self) -> bool:
        """High when a sample offered this tick will be accepted."""
        s = self.state
        if s.fsm != filterbank_fsm.WAIT_SAMPLES:
            return False
        # a pending reload only lets the current frame finish
        return not (s.reload_pending and s.commutator == 0)

    @property
    def outputs_valid(self) -> bool:
        """High for one tick per ``n_channels`` accepted samples."""
        return self.state.fsm == filterbank_fsm.OUTPUT_READY

    @property
    def outputs(self) -> tuple[int, ...]:
        """The branch results of the last completed pass, by branch id."""
        return self.state.outputs

    @property
    def coeffs(self) -> tuple[tuple[int, ...], ...]:
        """The loaded coefficient vectors, by branch id."""
        return self.state.coeffs

    def _next_coeffs(self, s: filterbank_state):
        # write the value read on the previous tick, then issue the next read
        coeffs = s.coeffs
        if s.read_address is not None:
            branch, tap = divmod(s.read_address, self.n_taps)
            vector = list(coeffs[branch])
            vector[tap] = self.rom.data
            coeffs = coeffs[:branch] + (tuple(vector),) + coeffs[branch + 1 :]

        if s.load_address < len(self.rom):
            address = s.load_address
            return coeffs, s.load_address + 1, address
        return coeffs, s.load_address, None

    def next_state(self, sample: int = 0, sample_valid: bool = False) -> filterbank_state:
        """
        Compute the state after one tick.

        Parameters
        ----------
        sample : int
            The input sample.
        sample_valid : bool
            A sample is offered this tick. It is accepted only if
            ``sample_ready`` is high.

        Returns
        -------
        filterbank_state
            The next state, to be passed to ``commit``.
        """
        s = self.state
        fsm = s.fsm
        coeffs = s.coeffs
        load_address = s.load_address
        read_address = None
        commutator = s.commutator
        done_flags = s.done_flags
        outputs = s.outputs

        accept = bool(sample_valid) and self.sample_ready

        def step_branch(n):
            valid = accept and n == s.commutator
            return self.branches[n].next_state(sample if valid else 0, valid, s.coeffs[n])

        if self._pool is not None:
            branches = tuple(self._pool.map(step_branch, range(self.n_channels)))
        else:
            branches = tuple(step_branch(n) for n in range(self.n_channels))

        if s.reload_pending and self._idle(s):
            return s._replace(
                fsm=filterbank_fsm.LOAD_COEFFS,
                load_address=0,
                read_address=None,
                commutator=0,
                done_flags=(False,) * self.n_channels,
                rom=self.rom.next_state(None),
                branches=branches,
                reload_pending=False,
            )

        if s.fsm == filterbank_fsm.LOAD_COEFFS:
            coeffs, load_address, read_address = self._next_coeffs(s)
            if s.read_address == len(self.rom) - 1:
                fsm = filterbank_fsm.WAIT_SAMPLES

        elif s.fsm == filterbank_fsm.WAIT_SAMPLES:
            if accept:
                commutator = (s.commutator + 1) % self.n_channels
                if s.commutator == self.n_channels - 1:
                    fsm = filterbank_fsm.COMPUTING

        elif s.fsm == filterbank_fsm.COMPUTING:
            done_flags = tuple(f or b.result_valid for f, b in zip(s.done_flags, self.branches))
            if all(done_flags):
                outputs = tuple(b.result for b in self.branches)
                fsm = filterbank_fsm.OUTPUT_READY

        elif s.fsm == filterbank_fsm.OUTPUT_READY:
            done_flags = (False,) * self.n_channels
            fsm = filterbank_fsm.WAIT_SAMPLES

        return filterbank_state(
            fsm=fsm,
            load_address=load_address,
            read_address=read_address,
            coeffs=coeffs,
            commutator=commutator,
            done_flags=done_flags,
            outputs=outputs,
            rom=self.rom.next_state(read_address),
            branches=branches,
            reload_pending=s.reload_pending,
        )

    def load(self) -> int:
        """Tick until the coefficients are loaded.

        Returns
        -------
        int
            The number of ticks taken.
        """
        s = self.state
        if s.reload_pending and s.fsm == filterbank_fsm.WAIT_SAMPLES and s.commutator:
            missing = self.n_channels - s.commutator
            raise RuntimeError(f"reload waits for {missing} more samples of this frame")
        n_ticks = 0
        while self.loading:
            self.tick()
            n_ticks += 1
        return n_ticks

    def process_frame(self, samples) -> tuple[int, ...]:
        """
        Push ``n_channels`` samples through the filterbank and tick until
        the outputs are valid. The coefficients must already be loaded.

        Parameters
        ----------
        samples : Sequence[int]
            n_channels input samples, in arrival order.

        Returns
        -------
        tuple[int, ...]
            The branch outputs.
        """
        if len(samples) != self.n_channels:
            raise ValueError(f"a frame is {self.n_channels} samples")
        for sample in samples:
            while not self.sample_ready:
                self.tick()
            self.tick(sample, True)
        while not self.outputs_valid:
            self.tick()
        return self.outputs
