# SPDX-License-Identifier: MIT
"""glTF Scene Encoder - Convert glTF documents into an engine scene representation."""

from gltf_scene_encoder.config import EncoderOptions
from gltf_scene_encoder.encoder import GLTFSceneEncoder, encode_file
from gltf_scene_encoder.parser import SourceDocument, load_document
from gltf_scene_encoder.scene import SceneFile

__version__ = "0.1.0"
__all__ = [
    "GLTFSceneEncoder",
    "EncoderOptions",
    "SourceDocument",
    "SceneFile",
    "encode_file",
    "load_document",
]
