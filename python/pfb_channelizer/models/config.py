# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""Pydantic models of the filterbank and channelizer configuration."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from pfb_channelizer.dsp.mac import min_accum_width

# FFT sizes with an implementation
FFT_SIZES = (4, 64)


class FilterbankConfig(BaseModel, extra="forbid"):
    """Compile time configuration of a polyphase filterbank."""

    n_channels: int = Field(ge=1, description="Number of branches, N.")
    taps_per_branch: int = Field(ge=1, description="Taps per branch, M.")
    data_width: int = Field(default=16, ge=2, description="Sample width in bits.")
    coeff_width: int = Field(
        default=16, ge=4, description="Coefficient width in bits, a multiple of 4."
    )
    accum_width: int = Field(description="MAC accumulator width in bits.")

    @field_validator("coeff_width")
    @classmethod
    def _whole_hex_digits(cls, value: int) -> int:
        if value % 4:
            raise ValueError("coeff_width must be a multiple of 4 to be stored as hex")
        return value

    @model_validator(mode="after")
    def check_accum_width(self):
        """Check the accumulator cannot overflow."""
        needed = min_accum_width(self.taps_per_branch, self.data_width, self.coeff_width)
        if self.accum_width < needed:
            raise ValueError(
                f"accum_width {self.accum_width} is too small, "
                f"data_width + coeff_width + ceil(log2(taps_per_branch)) = {needed}"
            )
        return self

    @property
    def n_coeffs(self) -> int:
        """Size of the coefficient table, N*M."""
        return self.n_channels * self.taps_per_branch

    @property
    def hex_digits(self) -> int:
        """Hex digits per coefficient table line."""
        return self.coeff_width // 4


class ChannelizerConfig(FilterbankConfig):
    """Compile time configuration of a channelizer, a filterbank
    followed by an N point FFT.
    """

    coeffs_path: Optional[Path] = Field(
        default=None, description="Path to the hex coefficient table."
    )
    parallel_branches: bool = Field(
        default=False, description="Step the filterbank branches in a thread pool."
    )

    @field_validator("n_channels")
    @classmethod
    def _has_fft(cls, value: int) -> int:
        if value not in FFT_SIZES:
            raise ValueError(f"n_channels must be one of {FFT_SIZES}, the implemented FFT sizes")
        return value

    @property
    def fft_size(self) -> int:
        return self.n_channels


CHANNELIZER_4CH = ChannelizerConfig(
    n_channels=4, taps_per_branch=16, data_width=16, coeff_width=16, accum_width=36
)
CHANNELIZER_64CH = ChannelizerConfig(
    n_channels=64, taps_per_branch=24, data_width=16, coeff_width=16, accum_width=40
)


def load_config(path: Path) -> ChannelizerConfig:
    """
    Read a channelizer configuration from a JSON file.

    A relative ``coeffs_path`` is taken relative to the JSON file.

    Parameters
    ----------
    path : Path
        The JSON file.

    Returns
    -------
    ChannelizerConfig
        The validated configuration.
    """
    path = Path(path)
    config = ChannelizerConfig.model_validate_json(path.read_text())
    if config.coeffs_path is not None and not config.coeffs_path.is_absolute():
        config = config.model_copy(update={"coeffs_path": path.parent / config.coeffs_path})
    return config
