# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
import json

import pytest
from pydantic import ValidationError

from pfb_channelizer.models import (
    CHANNELIZER_4CH,
    CHANNELIZER_64CH,
    ChannelizerConfig,
    FilterbankConfig,
    load_config,
)


def test_builds():
    assert CHANNELIZER_4CH.n_coeffs == 64
    assert CHANNELIZER_4CH.accum_width == 36
    assert CHANNELIZER_64CH.n_coeffs == 64 * 24
    assert CHANNELIZER_64CH.accum_width == 40
    assert CHANNELIZER_64CH.fft_size == 64
    assert CHANNELIZER_4CH.hex_digits == 4


@pytest.mark.parametrize(
    "taps, accum_width, ok",
    [(16, 36, True), (16, 35, False), (24, 37, True), (24, 36, False), (1, 32, True)],
)
def test_accum_width(taps, accum_width, ok):
    kwargs = dict(n_channels=4, taps_per_branch=taps, accum_width=accum_width)
    if ok:
        FilterbankConfig(**kwargs)
    else:
        with pytest.raises(ValidationError, match="accum_width"):
            FilterbankConfig(**kwargs)


def test_fft_sizes():
    FilterbankConfig(n_channels=8, taps_per_branch=4, accum_width=34)
    with pytest.raises(ValidationError):
        ChannelizerConfig(n_channels=8, taps_per_branch=4, accum_width=34)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(coeff_width=18),
        dict(n_channels=0),
        dict(taps_per_branch=0),
        dict(data_width=1),
        dict(frame_size=4),
    ],
)
def test_invalid(kwargs):
    args = dict(n_channels=4, taps_per_branch=4, accum_width=48) | kwargs
    with pytest.raises(ValidationError):
        FilterbankConfig(**args)


def test_load_config(tmp_path):
    config = CHANNELIZER_4CH.model_dump(mode="json") | {"coeffs_path": "coeffs.hex"}
    path = tmp_path / "channelizer.json"
    path.write_text(json.dumps(config))

    loaded = load_config(path)
    assert loaded.coeffs_path == tmp_path / "coeffs.hex"
    assert loaded.accum_width == 36

    absolute = tmp_path / "elsewhere" / "coeffs.hex"
    path.write_text(json.dumps(config | {"coeffs_path": str(absolute)}))
    assert load_config(path).coeffs_path == absolute


def test_load_config_invalid(tmp_path):
    path = tmp_path / "channelizer.json"
    path.write_text(json.dumps(dict(n_channels=64, taps_per_branch=24, accum_width=20)))
    with pytest.raises(ValidationError):
        load_config(path)
