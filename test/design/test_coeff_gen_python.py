# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
import warnings

import numpy as np
import pytest

import pfb_channelizer.design.coeff_gen as cg
from pfb_channelizer.dsp.coeff_rom import read_coeff_table
from pfb_channelizer.dsp.utils import OverflowWarning, float_to_fixed_array


def test_polyphase_order():
    # prototype tap t*N + b goes to table address b*M + t
    table = cg.polyphase_order(np.arange(12), 3)
    assert table.tolist() == [0, 3, 6, 9, 1, 4, 7, 10, 2, 5, 8, 11]

    with pytest.raises(ValueError):
        cg.polyphase_order(np.arange(10), 3)


@pytest.mark.parametrize("n_channels, n_taps", [(4, 16), (64, 24)])
def test_prototype(n_channels, n_taps):
    h = cg.design_prototype(n_channels, n_taps)
    assert len(h) == n_channels * n_taps
    assert np.sum(h) == pytest.approx(1.0)
    # linear phase
    np.testing.assert_allclose(h, h[::-1], atol=1e-12)


def test_quantize():
    q = cg.quantize_coeffs(np.array([0.5, -0.5, 0.25, -1.0]), 16)
    assert q.tolist() == [16384, -16384, 8192, -32768]

    with pytest.warns(OverflowWarning):
        q = cg.quantize_coeffs(np.array([1.0, -1.5]), 16)
    assert q.tolist() == [32767, -32768]


def test_quantize_matches_float_to_fixed():
    h = cg.design_prototype(64, 24)
    with warnings.catch_warnings():
        warnings.simplefilter("error", OverflowWarning)
        q = cg.quantize_coeffs(h, 16)
    assert q.dtype == np.int64
    np.testing.assert_array_equal(q, float_to_fixed_array(h, 15, 16))


def test_process_array(tmp_path):
    h = cg.design_prototype(4, 16)
    path = tmp_path / "coeffs.hex"
    table = cg.process_array(h, 4, path, 16)

    lines = path.read_text().splitlines()
    assert len(lines) == 64
    assert all(len(line) == 4 for line in lines)
    assert read_coeff_table(path, 16, 64) == tuple(table.tolist())
    # branch 0 tap 1 is prototype tap 4
    assert table[1] == cg.quantize_coeffs(h, 16)[4]


def test_narrow_table(tmp_path):
    h = cg.design_prototype(4, 4)
    path = tmp_path / "coeffs.hex"
    cg.process_array(h, 4, path, 8)
    assert all(len(line) == 2 for line in path.read_text().splitlines())
