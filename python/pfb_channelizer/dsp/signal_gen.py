# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Signal generator utilities.

These functions return integer samples in Q1.(data_width - 1) format,
ready to be pushed into a channelizer. Frequencies are normalised, in
cycles per sample.
"""

from typing import Optional

import numpy as np

from pfb_channelizer.dsp import generic as dspg
from pfb_channelizer.dsp import utils


def quantize_signal(signal: np.ndarray, data_width: int = dspg.DATA_WIDTH) -> np.ndarray:
    """Quantize a float signal in [-1, 1) to Q1.(data_width - 1) integers.

    Parameters
    ----------
    signal : np.ndarray
        The input signal to be quantized.
    data_width : int, optional
        Width of a sample in bits.

    Returns
    -------
    np.ndarray
        The quantized signal, as int64.
    """
    return utils.float_to_fixed_array(signal, data_width - 1, data_width)


def cos(
    n_samples: int, freq: float, amplitude: float, data_width: int = dspg.DATA_WIDTH
) -> np.ndarray:
    """
    Generate a quantized cosine signal.

    Parameters
    ----------
    n_samples : int
        Length of the signal.
    freq : float
        Normalised frequency in cycles per sample.
    amplitude : float
        The amplitude of the cosine, full scale is 1.0.
    data_width : int, optional
        Width of a sample in bits.

    Returns
    -------
    np.ndarray
        The generated cosine signal.
    """
    n = np.arange(n_samples)
    return quantize_signal(amplitude * np.cos(2 * np.pi * freq * n), data_width)


def channel_tone(
    n_samples: int,
    channel: int,
    n_channels: int,
    amplitude: float,
    data_width: int = dspg.DATA_WIDTH,
) -> np.ndarray:
    """Generate a cosine at the centre frequency of a channel."""
    return cos(n_samples, channel / n_channels, amplitude, data_width)


def white_noise(
    n_samples: int,
    amplitude: float,
    data_width: int = dspg.DATA_WIDTH,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Generate a quantized, uniformly distributed white noise signal.

    Parameters
    ----------
    n_samples : int
        Length of the signal.
    amplitude : float
        The peak amplitude, full scale is 1.0.
    data_width : int, optional
        Width of a sample in bits.
    seed : int, optional
        Seed for the random generator, for repeatable signals.

    Returns
    -------
    np.ndarray
        The generated noise.
    """
    rng = np.random.default_rng(seed)
    signal = amplitude * (2 * rng.random(n_samples) - 1)
    return quantize_signal(signal, data_width)


def impulse(
    n_samples: int, amplitude: float, position: int = 0, data_width: int = dspg.DATA_WIDTH
):
    """Generate a single non zero sample at ``position``."""
    signal = np.zeros(n_samples)
    signal[position] = amplitude
    return quantize_signal(signal, data_width)
