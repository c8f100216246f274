# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Polyphase coefficient table generator."""

import argparse
import os
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import scipy.signal as spsig

from pfb_channelizer.dsp import utils
from pfb_channelizer.dsp.coeff_rom import write_coeff_table


def design_prototype(
    n_channels: int, taps_per_branch: int, cutoff: Optional[float] = None, window="hamming"
) -> np.ndarray:
    """
    Design the prototype low pass filter of a polyphase filterbank.

    Parameters
    ----------
    n_channels : int
        Number of channels, N.
    taps_per_branch : int
        Taps per branch, M. The prototype is N*M taps long.
    cutoff : float, optional
        Cutoff frequency relative to Nyquist, ``1/N`` by default, i.e.
        half a channel spacing.
    window : str or tuple, optional
        Window passed to ``scipy.signal.firwin``.

    Returns
    -------
    np.ndarray
        The prototype taps, scaled to unity gain at DC.
    """
    if cutoff is None:
        cutoff = 1 / n_channels
    return spsig.firwin(n_channels * taps_per_branch, cutoff, window=window)


def quantize_coeffs(coeffs: np.ndarray, coeff_width: int) -> np.ndarray:
    """
    Round the taps to Q1.(coeff_width - 1) integers.

    Taps outside [-1, 1) are clipped, with a warning.
    """
    q = coeff_width - 1
    quantised = np.rint(np.ldexp(np.asarray(coeffs, dtype=float), q))
    clipped = np.clip(quantised, utils.int_min(coeff_width), utils.int_max(coeff_width))
    if np.any(clipped != quantised):
        warnings.warn("Coefficients clipped to the Q1.%d range" % q, utils.OverflowWarning)
    return clipped.astype(np.int64)


def polyphase_order(coeffs: np.ndarray, n_channels: int) -> np.ndarray:
    """
    Reorder prototype taps into coefficient table order.

    Table address ``branch * M + tap`` holds prototype tap
    ``tap * N + branch``, so each branch's M taps are contiguous.
    """
    if len(coeffs) % n_channels:
        raise ValueError("prototype length must be a multiple of n_channels")
    return np.asarray(coeffs).reshape(-1, n_channels).T.reshape(-1)


def process_array(
    prototype: np.ndarray,
    n_channels: int,
    output_path: Path,
    coeff_width: int = 16,
) -> np.ndarray:
    """
    Quantise a prototype filter and write it as a coefficient table.

    Parameters
    ----------
    prototype : np.ndarray
        Floating point prototype taps, N*M long.
    n_channels : int
        Number of channels, N.
    output_path : Path
        The hex file to write.
    coeff_width : int, optional
        Width of a coefficient in bits.

    Returns
    -------
    np.ndarray
        The table values, in file order.
    """
    table = polyphase_order(quantize_coeffs(prototype, coeff_width), n_channels)
    write_coeff_table(output_path, table, coeff_width)
    return table


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate a polyphase coefficient table.")

    parser.add_argument("--channels", type=int, default=4, help="Number of channels, N.")
    parser.add_argument("--taps", type=int, default=16, help="Taps per branch, M.")
    parser.add_argument("--width", type=int, default=16, help="Coefficient width in bits.")
    parser.add_argument(
        "--cutoff", type=float, default=None, help="Cutoff relative to Nyquist (default 1/N)."
    )
    parser.add_argument("--window", type=str, default="hamming", help="scipy window name.")
    parser.add_argument("--output", type=str, default=None, help="Output hex file.")

    args = parser.parse_args()

    if args.output is None:
        output = f"coeffs_{args.channels}ch_{args.taps}tap.hex"
    else:
        output = args.output
    output_path = os.path.realpath(output)

    h = design_prototype(args.channels, args.taps, args.cutoff, args.window)
    process_array(h, args.channels, Path(output_path), args.width)
    print("Wrote", len(h), "coefficients to", output_path)
