# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Utilities for streaming signals through a channelizer on the host."""

from pathlib import Path
from typing import Optional

import numpy
from matplotlib import pyplot as plt

from pfb_channelizer.dsp import utils
from pfb_channelizer.dsp.channelizer import channelizer


class ExecutionResult:
    """
    The channel outputs of streaming a signal through a channelizer.

    Parameters
    ----------
    result
        Complex array of shape (frames, n_channels).
    n_ticks
        Clock ticks taken, including the coefficient load.

    Attributes
    ----------
    data
        Complex ndarray of shape (frames, n_channels), one row per
        transform.
    n_ticks
        Clock ticks taken.
    """

    def __init__(self, result: numpy.ndarray, n_ticks: int):
        self.data = result
        self.n_ticks = n_ticks

    def power_db(self) -> numpy.ndarray:
        """The power of every bin of every frame in dB."""
        return utils.db_pow(numpy.abs(self.data) ** 2)

    def plot(self, path: Optional[str | Path] = None):
        """
        Display the channel power over time. Save to file if path is not
        None.

        Parameters
        ----------
        path
            If path is not none then the plot will be saved to a file
            and not shown.
        """
        fig, ax = plt.subplots()
        image = ax.imshow(self.power_db().T, aspect="auto", origin="lower", cmap="cividis")
        ax.set_xlabel("Frame")
        ax.set_ylabel("Channel")
        fig.colorbar(image, ax=ax, label="Power (dB)")
        if path:
            plt.savefig(path)
        else:
            plt.show()
        plt.close(fig)


class ChannelizerExecutor:
    """
    Push samples into a channelizer one tick at a time and collect every
    transform it produces.

    Parameters
    ----------
    channelizer
        The channelizer to run. It is reset at the start of every run. The
        executor does not close it, the caller does.
    max_ticks
        Give up with a TimeoutError after this many ticks. This only
        guards tests against a stuck state machine; None disables it.
    """

    def __init__(self, channelizer: channelizer, max_ticks: Optional[int] = None):
        self.channelizer = channelizer
        self.max_ticks = max_ticks
        self._n_ticks = 0

    def _tick(self, sample: int = 0, sample_valid: bool = False, frames: list = None) -> bool:
        if self.max_ticks is not None and self._n_ticks >= self.max_ticks:
            raise TimeoutError(f"channelizer did not finish within {self.max_ticks} ticks")
        accepted = self.channelizer.tick(sample, sample_valid)
        self._n_ticks += 1
        if frames is not None and self.channelizer.outputs_valid:
            frames.append([complex(re, im) for re, im in self.channelizer.outputs])
        return accepted

    def run(self, samples) -> ExecutionResult:
        """
        Reset the channelizer, load its coefficients and stream the
        samples through it. Trailing samples that do not fill a frame of
        ``n_channels`` produce no output.

        Parameters
        ----------
        samples
            1-D sequence of integer samples.

        Returns
        -------
        ExecutionResult
            The transforms, one row per ``n_channels`` input samples.
        """
        ch = self.channelizer
        ch.reset_state()
        self._n_ticks = 0
        frames = []

        while ch.loading:
            self._tick()

        for sample in samples:
            while not self._tick(int(sample), True, frames):
                pass

        n_frames = len(samples) // ch.n_channels
        while len(frames) < n_frames:
            self._tick(frames=frames)

        data = numpy.array(frames, dtype=complex).reshape(-1, ch.n_channels)
        return ExecutionResult(data, self._n_ticks)
