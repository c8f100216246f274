# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.

import pytest
from pathlib import Path
from filelock import FileLock

import pfb_channelizer.design.coeff_gen as cg
from pfb_channelizer.dsp.coeff_rom import write_coeff_table

gen_dir = Path(__file__).parent / "autogen"


def _write_once(path, write):
    # several xdist workers may race to create the same file
    with FileLock(str(path) + ".lock"):
        if not path.is_file():
            write(path)
    return path


@pytest.fixture(scope="session")
def coeff_dir():
    """Directory of generated coefficient tables."""
    gen_dir.mkdir(exist_ok=True, parents=True)

    for n_channels, n_taps in [(4, 16), (64, 24)]:
        h = cg.design_prototype(n_channels, n_taps)
        _write_once(
            Path(gen_dir, f"lowpass_{n_channels}ch_{n_taps}tap.hex"),
            lambda p, h=h, n=n_channels: cg.process_array(h, n, p, 16),
        )

    # only branch tap 0 is set, so each branch passes its newest sample
    for n_channels, n_taps in [(4, 16), (64, 24)]:
        table = [(1 << 15) - 1 if n % n_taps == 0 else 0 for n in range(n_channels * n_taps)]
        _write_once(
            Path(gen_dir, f"passthrough_{n_channels}ch_{n_taps}tap.hex"),
            lambda p, t=table: write_coeff_table(p, t, 16),
        )

    _write_once(
        Path(gen_dir, "ones_4ch_4tap.hex"), lambda p: write_coeff_table(p, [1] * 16, 16)
    )

    return gen_dir
