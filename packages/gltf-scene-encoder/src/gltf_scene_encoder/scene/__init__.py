# SPDX-License-Identifier: MIT
"""Scene representation and builders."""

from .material_builder import MaterialBuilder
from .mesh_builder import MeshBuilder
from .scene_builder import SceneGraphBuilder
from .scene_file import (
    Animation,
    AnimationChannel,
    Material,
    Mesh,
    MeshPart,
    Node,
    Scene,
    SceneFile,
    Vertex,
)
from .transforms import Transform, parse_transform_matrix, quaternion_slerp

__all__ = [
    "SceneGraphBuilder",
    "MeshBuilder",
    "MaterialBuilder",
    "SceneFile",
    "Scene",
    "Node",
    "Mesh",
    "MeshPart",
    "Vertex",
    "Material",
    "Animation",
    "AnimationChannel",
    "Transform",
    "parse_transform_matrix",
    "quaternion_slerp",
]
