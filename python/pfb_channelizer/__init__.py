# Copyright 2026 XMOS LIMITED.
# This Software is subject to the terms of the XMOS Public Licence: Version 1.
"""
The polyphase channelizer Python library.

A bit-exact, clock-stepped model of a polyphase FIR filterbank followed
by an FFT, for splitting one sample stream into N frequency channels.
"""

from importlib import metadata as _metadata

__version__ = _metadata.version("pfb_channelizer")
