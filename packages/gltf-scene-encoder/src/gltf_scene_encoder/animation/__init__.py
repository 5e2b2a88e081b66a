# SPDX-License-Identifier: MIT
"""Animation processing module for glTF documents."""

from .animation_builder import load_animation, load_animations
from .animation_data import SRTChannel, TrackType, collect_srt_channels
from .resampler import AnimationResampler, calculate_lerp_factor

__all__ = [
    "SRTChannel",
    "TrackType",
    "collect_srt_channels",
    "AnimationResampler",
    "calculate_lerp_factor",
    "load_animation",
    "load_animations",
]
