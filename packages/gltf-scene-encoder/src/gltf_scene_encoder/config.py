# SPDX-License-Identifier: MIT
"""Options controlling a conversion pass."""

from __future__ import annotations

import dataclasses as dc


@dc.dataclass
class EncoderOptions:
    """Encapsulates the tunable parameters of one conversion."""

    sample_fps: float = 30.0
    """Rate at which animation curves are resampled, in samples per second."""

    lit_materials: bool = True
    """Whether derived materials (and their base materials) are lit."""

    default_scene_id: str = "__SCENE__"
    """Scene id used when the source scene has no name."""

    flip_texcoord_v: bool = True
    """Flip the V component of the primary texture coordinate set (v' = 1 - v)."""

    def __post_init__(self):
        if self.sample_fps <= 0:
            raise ValueError(f"sample_fps must be positive, got {self.sample_fps}")

    @property
    def sample_step(self) -> float:
        """Time between two resampled keys, in seconds."""
        return 1.0 / self.sample_fps
