# SPDX-License-Identifier: MIT
"""Convert glTF animations into resampled animation channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gltf_scene_encoder.animation.animation_data import collect_srt_channels
from gltf_scene_encoder.animation.resampler import AnimationResampler
from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.scene.scene_file import (
    Animation,
    AnimationChannel,
    InterpolationType,
    Node,
)

if TYPE_CHECKING:
    from gltf_scene_encoder.parser.document import SourceDocument

logger = logging.getLogger(__name__)


def load_animations(
    document: SourceDocument,
    nodes: dict[int, Node],
    options: EncoderOptions | None = None,
) -> list[Animation]:
    """Convert every animation of a document.

    Args:
        document: Source document
        nodes: Converted nodes keyed by source node index
        options: Conversion options

    Returns:
        One Animation per source animation, in document order
    """
    resampler = AnimationResampler(document, options)
    animations = []
    for i in range(len(document.animations)):
        animations.append(load_animation(resampler, i, nodes))
    logger.info("Converted %d animations", len(animations))
    return animations


def load_animation(
    resampler: AnimationResampler,
    animation_index: int,
    nodes: dict[int, Node],
) -> Animation:
    """Convert one animation into one channel per animated node.

    Args:
        resampler: Resampler bound to the source document
        animation_index: Index of the animation in the source document
        nodes: Converted nodes keyed by source node index

    Returns:
        Animation with resampled channels
    """
    gltf_anim = resampler.document.animations[animation_index]
    animation = Animation(id=gltf_anim.name or f"Animation_{animation_index}")

    srt_channels = collect_srt_channels(resampler.document, gltf_anim)
    for node_index, srt_channel in srt_channels.items():
        node = nodes.get(node_index)
        if node is None:
            logger.warning(
                "Animation %s targets node %d outside the converted scene",
                animation.id,
                node_index,
            )
            continue

        channel = AnimationChannel(
            target_id=node.id, interpolation=InterpolationType.LINEAR
        )
        resampler.resample(srt_channel, channel)
        animation.add(channel)
        logger.debug(
            "Resampled %d keys for node %s in animation %s",
            len(channel.key_times),
            node.id,
            animation.id,
        )

    return animation
