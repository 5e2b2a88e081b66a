# SPDX-License-Identifier: MIT
"""Parser module for glTF source documents."""

from gltf_scene_encoder.parser.accessor_reader import (
    element_count,
    read_float_accessor,
    read_index_accessor,
    read_vector,
)
from gltf_scene_encoder.parser.document import SourceDocument, load_document

__all__ = [
    "SourceDocument",
    "load_document",
    "element_count",
    "read_vector",
    "read_float_accessor",
    "read_index_accessor",
]
