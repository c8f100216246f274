# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""The pydantic models of the channelizer configuration."""

from .config import (
    FFT_SIZES,
    FilterbankConfig,
    ChannelizerConfig,
    CHANNELIZER_4CH,
    CHANNELIZER_64CH,
    load_config,
)
