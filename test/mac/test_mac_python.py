# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
import warnings

import numpy as np
import pytest

from pfb_channelizer.dsp.mac import mac, mac_fsm, min_accum_width


@pytest.mark.parametrize(
    "coeffs, samples, expected",
    [
        ([1, 1, 1, 1], [1, 2, 3, 4], 10),
        ([2, 4, 4, 2], [100, 200, 300, 400], 3000),
        ([1, -1, 1, -1], [10, 20, 30, 40], -20),
    ],
)
def test_dot_product(coeffs, samples, expected):
    dut = mac(4)
    assert dut.compute(coeffs, samples) == expected
    assert dut.done


@pytest.mark.parametrize("n_taps", [1, 2, 4, 16, 24])
def test_done_after_n_taps_ticks(n_taps):
    rng = np.random.default_rng(n_taps)
    coeffs = rng.integers(-(2**15), 2**15, n_taps).tolist()
    samples = rng.integers(-(2**15), 2**15, n_taps).tolist()

    dut = mac(n_taps)
    dut.tick(True, coeffs, samples)
    assert dut.state.fsm == mac_fsm.COMPUTING

    n_ticks = 0
    while not dut.done:
        assert dut.busy
        dut.tick(False, coeffs, samples)
        n_ticks += 1
    assert n_ticks == n_taps
    assert dut.result == sum(c * s for c, s in zip(coeffs, samples))


@pytest.mark.parametrize("n_taps, accum_width", [(16, 36), (24, 40)])
def test_full_scale_no_overflow(n_taps, accum_width):
    # the largest products, all the same sign
    coeffs = [-(2**15)] * n_taps
    samples = [-(2**15)] * n_taps
    dut = mac(n_taps, 16, 16, accum_width)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert dut.compute(coeffs, samples) == n_taps * 2**30


def test_result_held_until_next_start():
    dut = mac(2)
    dut.compute([3, 4], [5, 6])
    for _ in range(5):
        dut.tick(False, [0, 0], [0, 0])
        assert dut.done
        assert dut.result == 39

    dut.tick(True, [1, 1], [1, 1])
    assert not dut.done
    assert dut.result == 39
    dut.tick(False, [1, 1], [1, 1])
    dut.tick(False, [1, 1], [1, 1])
    assert dut.done
    assert dut.result == 2


def test_start_ignored_while_computing():
    coeffs, samples = [1, 2, 3], [4, 5, 6]
    dut = mac(3)
    dut.tick(True, coeffs, samples)
    dut.tick(True, coeffs, samples)
    dut.tick(True, coeffs, samples)
    assert not dut.done
    dut.tick(True, coeffs, samples)
    assert dut.done
    assert dut.result == 32


def test_operands_changed_mid_pass():
    dut = mac(3)
    dut.tick(True, [1, 2, 3], [4, 5, 6])
    with pytest.raises(AssertionError):
        dut.tick(False, [1, 2, 3], [7, 5, 6])


def test_accumulator_too_narrow():
    assert min_accum_width(16, 16, 16) == 36
    assert min_accum_width(24, 16, 16) == 37
    assert min_accum_width(1, 16, 16) == 32
    with pytest.raises(ValueError):
        mac(16, 16, 16, 35)
    assert mac(16).accum_width == 36
