# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The top level channelizer: a polyphase filterbank followed by an FFT."""

from typing import NamedTuple, Optional, Union

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp.coeff_rom import coeff_rom
from pfb_channelizer.dsp.fft import cint, fft_4pt, fft_4pt_state, fft_64pt, fft_64pt_state
from pfb_channelizer.dsp.filterbank import filterbank_state, polyphase_filterbank
from pfb_channelizer.dsp.types import fixed
from pfb_channelizer.models import ChannelizerConfig


class channelizer_state(NamedTuple):
    filterbank: filterbank_state
    fft: Union[fft_4pt_state, fft_64pt_state]
    # 64 channel build only: the filterbank vector being streamed into the FFT
    pending: Optional[tuple[int, ...]]
    send_index: int
    # 64 channel build only: bins collected from the FFT output stream
    collected: tuple[cint, ...]
    outputs: tuple[cint, ...]
    outputs_valid: bool


class channelizer(dspg.clocked_block):
    """
    A polyphase channelizer, splitting one real sample stream into
    ``n_channels`` frequency channels.

    Samples go through a :class:`polyphase_filterbank`; every
    ``n_channels`` input samples its branch outputs are scaled back to the
    sample format and transformed by the FFT for that size, with the
    imaginary inputs set to zero. The FFT is :class:`fft_4pt` for 4
    channels, whose inputs come straight from the filterbank output
    register, and :class:`fft_64pt` for 64 channels, which is fed one
    sample per tick from a holding register. Input samples are held off
    while the holding register is full, so no filterbank output is lost.

    ``outputs`` holds the ``n_channels`` bins of the last transform as
    (real, imaginary) pairs, and ``outputs_valid`` is high for one tick
    per transform.

    With ``parallel_branches`` set the filterbank owns a thread pool.
    Call ``close`` when done, or use the channelizer as a context
    manager.

    Parameters
    ----------
    config : ChannelizerConfig
        The channelizer configuration.
    rom : coeff_rom, optional
        The coefficient table. If None, it is read from
        ``config.coeffs_path``.

    Attributes
    ----------
    config : ChannelizerConfig
        The channelizer configuration.
    n_channels : int
        Number of channels.
    filterbank : polyphase_filterbank
        The filterbank.
    fft : fft_4pt or fft_64pt
        The FFT.
    """

    def __init__(self, config: ChannelizerConfig, rom: Optional[coeff_rom] = None):
        self.config = config
        self.n_channels = config.n_channels

        if rom is None:
            if config.coeffs_path is None:
                raise ValueError("No coefficient table given, set coeffs_path or pass a rom")
            rom = coeff_rom.from_file(config.coeffs_path, config.coeff_width, config.n_coeffs)

        self.filterbank = polyphase_filterbank.from_config(config, rom)
        if self.n_channels == 4:
            self.fft = fft_4pt(config.data_width)
        elif self.n_channels == 64:
            self.fft = fft_64pt(config.data_width)
        else:
            raise ValueError(f"No {self.n_channels} point FFT")

        self.reset_state()

    def initial_state(self) -> channelizer_state:
        return channelizer_state(
            filterbank=self.filterbank.initial_state(),
            fft=self.fft.initial_state(),
            pending=None,
            send_index=0,
            collected=(),
            outputs=((0, 0),) * self.n_channels,
            outputs_valid=False,
        )

    def commit(self, state: channelizer_state) -> None:
        self.filterbank.commit(state.filterbank)
        self.fft.commit(state.fft)
        self.state = state

    def close(self) -> None:
        """Shut down the filterbank thread pool, if there is one."""
        self.filterbank.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def loading(self) -> bool:
        """High while the filterbank reads its coefficients."""
        return self.filterbank.loading

    @property
    def sample_ready(self) -> bool:
        """High when a sample offered this tick will be accepted."""
        return self.filterbank.sample_ready and self.state.pending is None

    @property
    def outputs(self) -> tuple[cint, ...]:
        """The bins of the last transform, channel 0 first."""
        if self.n_channels == 4:
            return self.fft.bins
        return self.state.outputs

    @property
    def outputs_valid(self) -> bool:
        """High for one tick per transform."""
        if self.n_channels == 4:
            return self.fft.valid_out
        return self.state.outputs_valid

    def to_sample(self, branch_output: int) -> int:
        """Scale a branch output back to the sample format.

        The coefficient fraction bits are shifted out, truncating, and the
        result is narrowed to ``data_width``.
        """
        acc = fixed(branch_output, self.filterbank.accum_width)
        acc = acc.shift_right(self.config.coeff_width - 1)
        return acc.resize(self.config.data_width).value

    def _fft_inputs(self) -> list[cint]:
        return [(self.to_sample(v), 0) for v in self.filterbank.outputs]

    def next_state(self, sample: int = 0, sample_valid: bool = False) -> channelizer_state:
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
        channelizer_state
            The next state, to be passed to ``commit``.
        """
        s = self.state
        accept = bool(sample_valid) and self.sample_ready
        next_fb = self.filterbank.next_state(sample, accept)

        if self.n_channels == 4:
            if self.filterbank.outputs_valid:
                next_fft = self.fft.next_state(self._fft_inputs(), True)
            else:
                next_fft = self.fft.next_state()
            return s._replace(filterbank=next_fb, fft=next_fft)

        pending = s.pending
        send_index = s.send_index
        if pending is not None and self.fft.ready_in:
            last = send_index == self.n_channels - 1
            next_fft = self.fft.next_state((pending[send_index], 0), send_index, True, last)
            send_index += 1
            if last:
                pending = None
                send_index = 0
        else:
            next_fft = self.fft.next_state()

        if self.filterbank.outputs_valid:
            assert pending is None, "filterbank output overran the FFT holding register"
            pending = tuple(re for re, _ in self._fft_inputs())
            send_index = 0

        collected = s.collected
        outputs = s.outputs
        outputs_valid = False
        if self.fft.out_valid:
            collected = collected + (self.fft.out_data,)
            if self.fft.out_last:
                outputs = collected
                collected = ()
                outputs_valid = True

        return channelizer_state(
            filterbank=next_fb,
            fft=next_fft,
            pending=pending,
            send_index=send_index,
            collected=collected,
            outputs=outputs,
            outputs_valid=outputs_valid,
        )

    def tick(self, sample: int = 0, sample_valid: bool = False) -> bool:
        """Advance one clock tick.

        Returns
        -------
        bool
            True if the sample was accepted.
        """
        accepted = bool(sample_valid) and self.sample_ready
        self.commit(self.next_state(sample, sample_valid))
        return accepted

    def load(self) -> int:
        """Tick until the coefficients are loaded, return the tick count."""
        n_ticks = 0
        while self.loading:
            self.tick()
            n_ticks += 1
        return n_ticks
