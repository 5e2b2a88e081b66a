# SPDX-License-Identifier: MIT
"""Per-node grouping of glTF animation channels."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import pygltflib

from gltf_scene_encoder.parser.accessor_reader import accessor_bounds
from gltf_scene_encoder.parser.document import animation_sampler
from gltf_scene_encoder.scene.scene_file import TargetAttribute

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

logger = logging.getLogger(__name__)


class TrackType(Enum):
    """Node properties a glTF channel can target that we resample."""

    SCALE = "scale"
    ROTATION = "rotation"
    TRANSLATION = "translation"


# (has scale, has rotation, has translation) -> target attribute
TARGET_ATTRIBUTES = {
    (True, True, True): TargetAttribute.SCALE_ROTATE_TRANSLATE,
    (True, True, False): TargetAttribute.SCALE_ROTATE,
    (True, False, True): TargetAttribute.SCALE_TRANSLATE,
    (True, False, False): TargetAttribute.SCALE,
    (False, True, True): TargetAttribute.ROTATE_TRANSLATE,
    (False, True, False): TargetAttribute.ROTATE,
    (False, False, True): TargetAttribute.TRANSLATE,
    (False, False, False): TargetAttribute.NONE,
}


@dataclass
class SRTChannel:
    """Scale, rotation and translation channels of one node in one animation.

    Only lives while its animation is converted.
    """

    animation: pygltflib.Animation
    scale: pygltflib.AnimationChannel | None = None
    rotation: pygltflib.AnimationChannel | None = None
    translation: pygltflib.AnimationChannel | None = None
    start_time: float = 0.0
    stop_time: float = 0.0

    def target_attribute(self) -> TargetAttribute:
        """Get the transform attribute combination driven by this channel."""
        key = (
            self.scale is not None,
            self.rotation is not None,
            self.translation is not None,
        )
        return TARGET_ATTRIBUTES[key]

    def sampler(self, channel: pygltflib.AnimationChannel) -> pygltflib.AnimationSampler:
        """Get the animation sampler a channel of this group reads from."""
        return animation_sampler(self.animation, channel.sampler)

    def set_track(
        self, track_type: TrackType, channel: pygltflib.AnimationChannel
    ) -> None:
        """Assign a channel to its slot. A later channel replaces an earlier one."""
        if track_type == TrackType.SCALE:
            self.scale = channel
        elif track_type == TrackType.ROTATION:
            self.rotation = channel
        else:
            self.translation = channel


def parse_track_type(path: str | None) -> TrackType | None:
    """Classify a glTF channel target path, None for unsupported paths."""
    try:
        return TrackType(path)
    except ValueError:
        return None


def collect_srt_channels(
    document: SourceDocument, animation: pygltflib.Animation
) -> dict[int, SRTChannel]:
    """Group an animation's channels by target node.

    Every group gets the same time window: the minimum and maximum key time
    over all channels of the animation, not just the node's own channels.

    Args:
        document: Source document owning the accessors
        animation: Animation whose channels are grouped

    Returns:
        SRTChannel per target node index, in first-seen order
    """
    result: dict[int, SRTChannel] = {}
    global_min = math.inf
    global_max = -math.inf

    for channel in animation.channels or []:
        target = channel.target
        if target is None or target.node is None:
            logger.warning("Skipping animation channel without target node")
            continue

        sampler = document.animation_sampler(animation, channel.sampler)
        srt_channel = result.get(target.node)
        if srt_channel is None:
            srt_channel = SRTChannel(animation=animation)
            result[target.node] = srt_channel

        track_type = parse_track_type(target.path)
        if track_type is None:
            logger.warning(
                "Unsupported animation path %r on node %d", target.path, target.node
            )
        else:
            srt_channel.set_track(track_type, channel)

        time_min, time_max = accessor_bounds(document, sampler.input)
        global_min = min(global_min, time_min)
        global_max = max(global_max, time_max)

    if not result:
        return result

    for srt_channel in result.values():
        srt_channel.start_time = global_min
        srt_channel.stop_time = global_max

    return result
