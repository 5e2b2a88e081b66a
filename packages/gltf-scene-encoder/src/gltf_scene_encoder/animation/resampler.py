# SPDX-License-Identifier: MIT
"""Resample glTF animation channels at a fixed rate."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pygltflib

from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.errors import AccessorRangeError
from gltf_scene_encoder.parser.accessor_reader import read_float_accessor
from gltf_scene_encoder.scene.scene_file import AnimationChannel, InterpolationType
from gltf_scene_encoder.scene.transforms import quaternion_slerp

if TYPE_CHECKING:
    from gltf_scene_encoder.animation.animation_data import SRTChannel
    from gltf_scene_encoder.parser.document import SourceDocument

CUBIC_SPLINE = "CUBICSPLINE"


def calculate_lerp_factor(times: np.ndarray, time: float) -> tuple[int, int, float]:
    """Find the keys surrounding a time and the blend factor between them.

    Args:
        times: Monotonically non-decreasing key times
        time: Query time

    Returns:
        Tuple of (i0, i1, f) with i0 the last key at or before ``time``
    """
    last = len(times) - 1
    if time <= times[0]:
        return 0, 0, 0.0
    if time >= times[last]:
        return last, last, 0.0

    # Greatest i0 with times[i0] <= time, so times[i0 + 1] > time
    i0 = int(np.searchsorted(times, time, side="right")) - 1
    i1 = i0 + 1
    f = (time - float(times[i0])) / (float(times[i1]) - float(times[i0]))
    return i0, i1, f


def lerp_vector(v0: np.ndarray, v1: np.ndarray, f: float) -> tuple[float, ...]:
    """Component-wise linear interpolation."""
    return tuple(float(c) for c in v0 * (1.0 - f) + v1 * f)


class AnimationResampler:
    """Samples animation samplers of one document at arbitrary times."""

    def __init__(self, document: SourceDocument, options: EncoderOptions | None = None):
        self.document = document
        self.options = options or EncoderOptions()
        self._accessor_cache: dict[int, np.ndarray] = {}

    def sample_vector3(
        self, sampler: pygltflib.AnimationSampler, time: float
    ) -> tuple[float, float, float]:
        """Sample a scale or translation sampler by linear interpolation."""
        v0, v1, f = self._keys(sampler, time)
        return lerp_vector(v0[:3], v1[:3], f)

    def sample_quaternion(
        self, sampler: pygltflib.AnimationSampler, time: float
    ) -> tuple[float, float, float, float]:
        """Sample a rotation sampler by spherical interpolation (x, y, z, w)."""
        q0, q1, f = self._keys(sampler, time)
        return quaternion_slerp(tuple(q0[:4]), tuple(q1[:4]), f)

    def resample(self, srt_channel: SRTChannel, channel: AnimationChannel) -> None:
        """Fill a channel with keys sampled at a fixed rate.

        Keys run from the group's start time until the running time reaches
        the stop time. Values are appended as scale, rotation, translation,
        skipping absent slots; times are stored in milliseconds.
        """
        channel.target_attribute = srt_channel.target_attribute()
        channel.interpolation = InterpolationType.LINEAR
        channel.key_times.clear()
        channel.key_values.clear()

        step = self.options.sample_step
        current = srt_channel.start_time
        while current < srt_channel.stop_time:
            channel.key_times.append(current * 1000.0)

            if srt_channel.scale is not None:
                sampler = srt_channel.sampler(srt_channel.scale)
                channel.key_values.extend(self.sample_vector3(sampler, current))

            if srt_channel.rotation is not None:
                sampler = srt_channel.sampler(srt_channel.rotation)
                channel.key_values.extend(self.sample_quaternion(sampler, current))

            if srt_channel.translation is not None:
                sampler = srt_channel.sampler(srt_channel.translation)
                channel.key_values.extend(self.sample_vector3(sampler, current))

            current += step

    def _keys(
        self, sampler: pygltflib.AnimationSampler, time: float
    ) -> tuple[np.ndarray, np.ndarray, float]:
        times = self._accessor_data(sampler.input)[:, 0]
        values = self._accessor_data(sampler.output)
        if sampler.interpolation == CUBIC_SPLINE:
            # (in-tangent, value, out-tangent) triplets
            values = values[1::3]
        if len(times) == 0 or len(values) < len(times):
            raise AccessorRangeError(
                f"Sampler has {len(times)} key times but {len(values)} values"
            )
        i0, i1, f = calculate_lerp_factor(times, time)
        return values[i0], values[i1], f

    def _accessor_data(self, accessor_index: int) -> np.ndarray:
        data = self._accessor_cache.get(accessor_index)
        if data is None:
            data = read_float_accessor(self.document, accessor_index)
            self._accessor_cache[accessor_index] = data
        return data
