# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
import numpy as np
import pytest

from pfb_channelizer.dsp.fft import (
    dif_butterfly,
    fft_64pt,
    fft_64pt_fsm,
    reference_dft,
    twiddle_rom,
)


def error_bound(amplitude):
    """Worst case error of the fixed point transform: up to one LSB of
    truncation per stage doubling through the later stages, plus the
    Q1.14 twiddle quantisation.
    """
    return 100 + 0.03 * amplitude


def to_complex(bins):
    return np.array([complex(re, im) for re, im in bins])


def test_twiddles():
    w = twiddle_rom(64)
    assert len(w) == 32
    assert w[0] == (16384, 0)
    assert w[16] == (0, -16384)
    assert w[8] == (11585, -11585)
    assert w[24] == (-11585, -11585)


@pytest.mark.parametrize("stage", range(6))
def test_butterfly_addresses(stage):
    addresses = []
    for b in range(32):
        p, q, k = dif_butterfly(stage, b, 6)
        assert q - p == 1 << stage
        assert 0 <= k < 32
        assert k % (1 << stage) == 0
        addresses += [p, q]
    assert sorted(addresses) == list(range(64))


@pytest.mark.parametrize("c", [1000, -1000, 1, 32767, -32768])
def test_constant(c):
    fft = fft_64pt(16)
    bins = fft.transform([(c, 0)] * 64)
    assert bins[0] == (64 * c, 0)
    assert all(b == (0, 0) for b in bins[1:])


@pytest.mark.parametrize("position", [0, 1, 17, 63])
def test_impulse(position):
    amplitude = 10000
    x = np.zeros(64, dtype=complex)
    x[position] = amplitude

    fft = fft_64pt(16)
    inputs = [(0, 0)] * 64
    inputs[position] = (amplitude, 0)
    out = to_complex(fft.transform(inputs))

    assert np.max(np.abs(out - reference_dft(x))) < error_bound(amplitude)


@pytest.mark.parametrize("seed", range(4))
def test_random_against_numpy(seed):
    amplitude = 8000
    rng = np.random.default_rng(seed)
    x = rng.integers(-amplitude, amplitude, (64, 2))

    fft = fft_64pt(16)
    out = to_complex(fft.transform([(int(re), int(im)) for re, im in x]))
    ref = reference_dft(x[:, 0] + 1j * x[:, 1])

    assert np.max(np.abs(out - ref)) < error_bound(amplitude)


def test_tone_bin():
    n = np.arange(64)
    x = np.rint(8000 * np.cos(2 * np.pi * 5 * n / 64)).astype(int)

    fft = fft_64pt(16)
    power = np.abs(to_complex(fft.transform([(int(v), 0) for v in x]))) ** 2
    assert set(np.argsort(power)[-2:]) == {5, 59}


def test_tick_counts():
    fft = fft_64pt(16)
    assert fft.ready_in
    assert not fft.busy

    for n in range(64):
        fft.tick((n, 0), n, True, n == 63)
    assert fft.state.fsm == fft_64pt_fsm.COMPUTING
    assert not fft.ready_in

    n_ticks = 0
    while fft.state.fsm == fft_64pt_fsm.COMPUTING:
        assert not fft.out_valid
        fft.tick()
        n_ticks += 1
    assert n_ticks == 6 * 32 * 2

    bins = []
    for n in range(64):
        fft.tick()
        assert fft.out_valid
        assert fft.out_index == n
        assert fft.out_last == (n == 63)
        bins.append(fft.out_data)
    assert not fft.busy

    fft.tick()
    assert not fft.out_valid

    # bin 0 of 0..63
    assert bins[0] == (sum(range(64)), 0)


def test_back_to_back():
    rng = np.random.default_rng(7)
    blocks = [
        [(int(re), int(im)) for re, im in rng.integers(-2000, 2000, (64, 2))] for _ in range(2)
    ]

    fft = fft_64pt(16)
    first = [fft.transform(b) for b in blocks]
    second = [fft_64pt(16).transform(b) for b in blocks]
    assert first == second


def test_any_index_order():
    rng = np.random.default_rng(9)
    inputs = [(int(re), int(im)) for re, im in rng.integers(-2000, 2000, (64, 2))]
    in_order = fft_64pt(16).transform(inputs)

    # each sample is placed by its index tag, not by arrival order
    fft = fft_64pt(16)
    order = rng.permutation(64)
    for n, index in enumerate(order):
        fft.tick(inputs[index], int(index), True, n == 63)
    bins = []
    while len(bins) < 64:
        fft.tick()
        if fft.out_valid:
            bins.append(fft.out_data)
    assert tuple(bins) == in_order


def test_index_out_of_range():
    fft = fft_64pt(16)
    with pytest.raises(IndexError):
        fft.tick((1, 0), 64, True)


def test_sample_too_wide():
    fft = fft_64pt(16)
    with pytest.raises(OverflowError):
        fft.tick((1 << 15, 0), 0, True)


def test_wrong_length():
    fft = fft_64pt(16)
    with pytest.raises(ValueError):
        fft.transform([(0, 0)] * 32)
